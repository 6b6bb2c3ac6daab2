import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, List, Optional
from errors import StoreError, require_positive_int
from schema import Order, OrderItem, OrderStatus, utcnow
from services.inventory import load_and_check, reserve_stock
from services.pricing import product_price
from services.status import parse_status
from utils import to_money, write_status_entry

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _merge_lines(items) -> "OrderedDict[int, int]":
    """
    Validates requested lines and folds duplicates of the same product together.

    Returns:
        Product id -> total quantity, in first-seen order.
    """
    if not isinstance(items, list) or not items:
        raise StoreError.validation("An order requires at least one item", field="items")

    merged: "OrderedDict[int, int]" = OrderedDict()
    for index, line in enumerate(items):
        if not isinstance(line, dict):
            raise StoreError.validation(f"Item {index} must be an object", field="items")
        product_id = require_positive_int(line.get("productId"), f"items[{index}].productId")
        quantity = require_positive_int(line.get("quantity"), f"items[{index}].quantity")
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged


class OrderAssembler:
    """
    Turns a list of requested lines into a priced, persisted order.

    Creation is all-or-nothing: every line is gated before anything is written,
    and stock reservations run inside the same transaction as the order insert so
    a failure on any line rolls back every decrement already made.
    """
    def __init__(self, db):
        self.db = db

    def create_order(self, user_id, items, address_id=None, coupon_id=None,
                     coupon_discount=None, client_total=None) -> Order:
        """
        Args:
            user_id: Customer placing the order.
            items: List of {"productId", "quantity"} dicts.
            address_id: Optional delivery address reference.
            coupon_id: Optional coupon reference.
            coupon_discount: Precomputed coupon adjustment subtracted from the subtotal.
            client_total: Total the client expects; informational only.

        Returns:
            The persisted Order in RECEIVED status.
        """
        user_id = require_positive_int(user_id, "userId")
        if address_id is not None:
            address_id = require_positive_int(address_id, "addressId")
        if coupon_id is not None:
            coupon_id = require_positive_int(coupon_id, "couponId")

        try:
            discount = to_money(coupon_discount)
        except ValueError:
            raise StoreError.validation("coupon discount must be a number", field="discount")
        if discount < 0:
            raise StoreError.validation("coupon discount cannot be negative", field="discount")

        requested = _merge_lines(items)

        # Unparseable client totals carry no expectation
        try:
            expected = to_money(client_total) if client_total is not None else None
        except ValueError:
            expected = None

        try:
            # 1. Gate every line before touching stock
            priced = []
            for product_id, quantity in requested.items():
                product = load_and_check(self.db, product_id, quantity)
                # 2. Snapshot the effective price at creation time
                priced.append((product, quantity, product_price(product)))

            # 3. Totals
            subtotal = sum((price * quantity for _, quantity, price in priced), ZERO)
            total = max(ZERO, to_money(subtotal - discount))

            # 4. Conditional decrements; any failure aborts the whole transaction
            for product, quantity, _ in priced:
                reserve_stock(self.db, product.id, quantity)

            # 5. Persist with the initial history entry
            now = utcnow()
            order = Order(
                user_id=user_id,
                address_id=address_id,
                coupon_id=coupon_id,
                subtotal=to_money(subtotal),
                discount=discount,
                total_price=total,
                status=OrderStatus.RECEIVED.value,
                version=1,
                created_at=now,
                updated_at=now,
            )
            for product, quantity, price in priced:
                order.items.append(OrderItem(product_id=product.id, quantity=quantity, unit_price=price))
            self.db.add(order)
            self.db.flush()

            write_status_entry(self.db, order.id, OrderStatus.RECEIVED, actor_id=user_id, note="Order received")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if client_total is not None and expected != total:
            logger.warning(
                f"Order {order.id}: client total {client_total!r} differs from computed total {total}"
            )

        logger.info(f"Created order {order.order_number} for user {user_id} (total={total})")
        return order


def get_order(db, order_id) -> Order:
    order_id = require_positive_int(order_id, "orderId")
    order = db.get(Order, order_id)
    if order is None:
        raise StoreError.order_not_found(order_id)
    return order


def list_user_orders(db, user_id) -> List[Order]:
    user_id = require_positive_int(user_id, "userId")
    return (
        db.query(Order)
        .filter_by(user_id=user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_all_orders(db, status: Optional[str] = None) -> List[Order]:
    query = db.query(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if status:
        query = query.filter(Order.status == parse_status(status).value)
    return query.all()


def delete_order(db, order_id) -> Dict[str, Any]:
    """
    Administrative hard delete of an order with its items and history.

    Stock is not restored.
    """
    order = get_order(db, order_id)
    snapshot = order.to_dict()
    db.delete(order)
    db.commit()
    logger.warning(f"Order {snapshot['orderNumber']} deleted by administrative request")
    return snapshot
