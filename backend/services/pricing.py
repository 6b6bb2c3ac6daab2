from decimal import Decimal
from typing import Optional, Union
from schema import DiscountType
from utils import to_money

Number = Union[Decimal, int, float, str]

HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


def effective_price(base_price: Number, discount_value: Optional[Number] = None,
                    discount_type: Optional[Union[DiscountType, str]] = None) -> Decimal:
    """
    Computes the unit price a customer pays after the product's discount.

    PERCENTAGE discounts scale the base price, FIXED_VALUE discounts subtract from
    it. The result is never negative, even for a misconfigured fixed discount.

    Args:
        base_price: The catalog price.
        discount_value: Configured discount amount, or None.
        discount_type: PERCENTAGE or FIXED_VALUE; required for the discount to apply.

    Returns:
        The effective unit price rounded to cents.
    """
    base = to_money(base_price)
    if discount_value is None or discount_type is None:
        return base

    discount = Decimal(str(discount_value))
    kind = DiscountType(discount_type)

    if kind is DiscountType.PERCENTAGE:
        price = base * (1 - discount / HUNDRED)
    else:
        price = base - discount

    return max(ZERO, to_money(price))


def product_price(product) -> Decimal:
    """Effective price of a Product row using its current discount settings."""
    return effective_price(product.price, product.discount, product.discount_type)
