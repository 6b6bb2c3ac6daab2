from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from base import Base
from db import engine
from schema import OrderStatusHistory, utcnow

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """
    Normalizes a numeric value into a two-place Decimal.

    Args:
        value: int, float, str or Decimal amount.

    Returns:
        The amount rounded half-up to cents.

    Raises:
        ValueError: For non-numeric input and for NaN or infinite amounts.
    """
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Invalid monetary amount: {value!r}")
    if not value.is_finite():
        raise ValueError(f"Invalid monetary amount: {value!r}")
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def write_status_entry(db, order_id, status, actor_id=None, note=None):
    """
    Appends a new record to the order's status history.

    Entries are only ever inserted; nothing in the codebase updates or deletes a
    single history row.

    Args:
        db: SQLAlchemy database session.
        order_id: The order the transition belongs to.
        status: The status the order moved into.
        actor_id: User or employee responsible for the change.
        note: Optional free-text remark.

    Returns:
        The newly created OrderStatusHistory instance.
    """
    entry = OrderStatusHistory(
        order_id=order_id,
        status=status.value if hasattr(status, "value") else status,
        actor_id=actor_id,
        note=note,
        created_at=utcnow(),
    )
    db.add(entry)
    return entry


def clear_database():
    """
    Wipes all storefront data and recreates the schema.
    """
    import schema  # Ensure all models are registered with Base
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
