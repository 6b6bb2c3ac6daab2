import logging
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from errors import StoreError
from schema import Category, DiscountType, Product
from services.pricing import product_price
from utils import to_money

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "price", "available", "stock", "category_id", "discount", "discount_type")

FIELD_ALIASES = {
    "categoryId": "category_id",
    "discountType": "discount_type",
}


def serialize_product(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": float(product.price),
        "effectivePrice": float(product_price(product)),
        "available": product.available,
        "stock": product.stock,
        "categoryId": product.category_id,
        "category": product.category.to_dict() if product.category else None,
        "discount": float(product.discount) if product.discount is not None else None,
        "discountType": product.discount_type,
    }


def get_product(db, product_id) -> Optional[Product]:
    return db.get(Product, product_id)


def list_products(db, category_id=None, available_only: bool = False) -> List[Product]:
    query = db.query(Product).order_by(Product.id.asc())
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if available_only:
        query = query.filter(Product.available.is_(True))
    return query.all()


def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
    normalized = {}
    for key, value in data.items():
        key = FIELD_ALIASES.get(key, key)
        if key in EDITABLE_FIELDS:
            normalized[key] = value
    return normalized


def validate_product_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Checks a complete set of product attributes against the catalog invariants.

    Args:
        fields: Product attributes after merging any partial update.

    Returns:
        The fields with money values converted to Decimal.

    Raises:
        StoreError: VALIDATION_ERROR describing the first violated rule.
    """
    if not fields.get("name"):
        raise StoreError.validation("name is required", field="name")

    try:
        price = to_money(fields.get("price"))
    except ValueError:
        raise StoreError.validation("price must be a number", field="price")
    if fields.get("price") is None or price < 0:
        raise StoreError.validation("price must be a non-negative number", field="price")
    fields["price"] = price

    stock = fields.get("stock")
    if stock is not None:
        if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
            raise StoreError.validation("stock must be a non-negative integer", field="stock")

    discount = fields.get("discount")
    discount_type = fields.get("discount_type")
    if discount is None:
        fields["discount_type"] = None
        return fields

    try:
        discount = to_money(discount)
    except ValueError:
        raise StoreError.validation("discount must be a number", field="discount")
    if discount < 0:
        raise StoreError.validation("discount must be non-negative", field="discount")

    try:
        kind = DiscountType(discount_type)
    except ValueError:
        raise StoreError.validation(
            "discountType must be PERCENTAGE or FIXED_VALUE when a discount is set", field="discountType"
        )

    if kind is DiscountType.PERCENTAGE and discount > 100:
        raise StoreError.validation("percentage discount cannot exceed 100", field="discount")
    if kind is DiscountType.FIXED_VALUE and discount > price:
        raise StoreError.validation("fixed discount cannot exceed the product price", field="discount")

    fields["discount"] = discount
    fields["discount_type"] = kind.value
    return fields


def recompute_category_counters(db, category_id) -> None:
    """
    Refreshes the derived product count and tracked stock total of one category.

    Called explicitly after every product write that can affect the category.
    """
    if category_id is None:
        return
    category = db.get(Category, category_id)
    if category is None:
        return

    count, stock_total = (
        db.query(func.count(Product.id), func.coalesce(func.sum(Product.stock), 0))
        .filter(Product.category_id == category_id)
        .one()
    )
    category.product_count = count
    category.stock_total = stock_total


def create_product(db, data: Dict[str, Any]) -> Product:
    fields = validate_product_fields(_normalize(data))
    if fields.get("category_id") is not None and db.get(Category, fields["category_id"]) is None:
        raise StoreError.validation(f"Category {fields['category_id']} does not exist", field="categoryId")

    product = Product(**fields)
    db.add(product)
    db.flush()
    recompute_category_counters(db, product.category_id)
    db.commit()
    logger.info(f"Created product {product.id} ({product.name})")
    return product


def update_product(db, product_id, partial: Dict[str, Any]) -> Product:
    """
    Applies a partial update to a product and refreshes the affected categories.

    Args:
        db: SQLAlchemy session.
        product_id: Target product.
        partial: Subset of editable attributes (camelCase aliases accepted).

    Returns:
        The updated Product.
    """
    product = db.get(Product, product_id)
    if product is None:
        raise StoreError.product_not_found(product_id)

    changes = _normalize(partial)
    merged = {name: getattr(product, name) for name in EDITABLE_FIELDS}
    merged.update(changes)
    fields = validate_product_fields(merged)

    if fields.get("category_id") is not None and db.get(Category, fields["category_id"]) is None:
        raise StoreError.validation(f"Category {fields['category_id']} does not exist", field="categoryId")

    old_category_id = product.category_id
    for name, value in fields.items():
        setattr(product, name, value)
    db.flush()

    recompute_category_counters(db, product.category_id)
    if old_category_id != product.category_id:
        recompute_category_counters(db, old_category_id)

    db.commit()
    logger.info(f"Updated product {product.id}: {sorted(changes)}")
    return product


def create_category(db, name: str) -> Category:
    if not name:
        raise StoreError.validation("name is required", field="name")
    category = Category(name=name, product_count=0, stock_total=0)
    db.add(category)
    db.commit()
    return category
