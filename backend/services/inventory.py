import logging
from sqlalchemy import update, or_
from errors import StoreError, ErrorCode
from schema import Product

logger = logging.getLogger(__name__)


def check_availability(product, requested_qty: int, product_id=None):
    """
    Validates that a product can supply the requested quantity.

    The check is advisory: it reads a snapshot of the row. Callers that sell stock
    must follow it with reserve_stock, which re-checks atomically.

    Args:
        product: Product instance, or None if the reference did not resolve.
        requested_qty: Total quantity the caller wants to hold.
        product_id: Identifier used in the error payload when product is None.

    Returns:
        The product, for chaining.

    Raises:
        StoreError: PRODUCT_NOT_FOUND, PRODUCT_UNAVAILABLE or INSUFFICIENT_STOCK.
    """
    if product is None:
        raise StoreError.product_not_found(product_id)

    if not product.available:
        raise StoreError(
            ErrorCode.PRODUCT_UNAVAILABLE,
            f"Product {product.name} is not available for purchase",
            {"productId": product.id},
        )

    # Untracked stock leaves availability as the only gate
    if product.stock is not None and product.stock < requested_qty:
        raise insufficient_stock(product, requested_qty)

    return product


def insufficient_stock(product, requested_qty: int) -> StoreError:
    return StoreError(
        ErrorCode.INSUFFICIENT_STOCK,
        f"Insufficient stock for {product.name}. Available: {product.stock}",
        {"productId": product.id, "requested": requested_qty, "available": product.stock},
    )


def load_and_check(db, product_id, requested_qty: int):
    """
    Resolves a product by id and runs the availability gate on it.
    """
    product = db.get(Product, product_id)
    return check_availability(product, requested_qty, product_id=product_id)


def reserve_stock(db, product_id, quantity: int) -> None:
    """
    Atomically decrements stock for an order line.

    Issues a single conditional UPDATE so concurrent buyers can never drive stock
    below zero: the row only changes when it is still available and still holds
    at least `quantity` units. Products with untracked stock pass through unchanged.

    Args:
        db: SQLAlchemy session; the caller owns commit/rollback.
        product_id: Product being sold.
        quantity: Units to take.

    Raises:
        StoreError: the precise gate failure when the conditional update matched no row.
    """
    result = db.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.available.is_(True),
            or_(Product.stock.is_(None), Product.stock >= quantity),
        )
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 1:
        logger.info(f"Reserved {quantity} unit(s) of product {product_id}")
        return

    # Lost a race or the row changed since the advisory check: report why
    product = db.get(Product, product_id, populate_existing=True)
    logger.warning(f"Stock reservation rejected for product {product_id} (qty={quantity})")
    check_availability(product, quantity, product_id=product_id)
    raise insufficient_stock(product, quantity)
