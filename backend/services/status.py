import logging
from typing import Dict, FrozenSet, List, Optional
from sqlalchemy import update
from errors import ErrorCode, StoreError, require_positive_int
from schema import Order, OrderStatus, OrderStatusHistory, utcnow
from utils import write_status_entry

logger = logging.getLogger(__name__)

S = OrderStatus

TERMINAL: FrozenSet[OrderStatus] = frozenset({S.DELIVERED, S.CANCELLED})

# Forward path: each state may only advance to the next one
_FORWARD: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    S.RECEIVED: frozenset({S.PENDING_PAYMENT}),
    S.PENDING_PAYMENT: frozenset({S.PAYMENT_APPROVED}),
    S.PAYMENT_APPROVED: frozenset({S.PREPARING}),
    S.PREPARING: frozenset({S.EN_ROUTE}),
    S.EN_ROUTE: frozenset({S.DELIVERED}),
    # Failed deliveries can be dispatched again
    S.DELIVERY_FAILED: frozenset({S.EN_ROUTE}),
}

_SIDE_BRANCHES = frozenset({S.CANCELLED, S.DELIVERY_FAILED})


def _build_table() -> Dict[OrderStatus, FrozenSet[OrderStatus]]:
    table = {}
    for status in OrderStatus:
        if status in TERMINAL:
            table[status] = frozenset()
            continue
        targets = set(_FORWARD.get(status, ())) | _SIDE_BRANCHES
        targets.discard(status)
        table[status] = frozenset(targets)
    return table


TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = _build_table()


def parse_status(value) -> OrderStatus:
    """
    Resolves a raw status value into an OrderStatus.

    Raises:
        StoreError: INVALID_STATUS for anything outside the enum.
    """
    try:
        return OrderStatus(value.upper() if isinstance(value, str) else value)
    except ValueError:
        raise StoreError(
            ErrorCode.INVALID_STATUS,
            f"Invalid status: {value}",
            {"status": value, "allowed": [s.value for s in OrderStatus]},
        )


def allowed_transitions(current) -> List[str]:
    return sorted(s.value for s in TRANSITIONS[OrderStatus(current)])


def can_transition(current, target) -> bool:
    return OrderStatus(target) in TRANSITIONS[OrderStatus(current)]


class OrderStatusMachine:
    """
    Applies validated status transitions to existing orders.

    Each transition is a compare-and-set on the order's version column followed by
    a history append, committed together, so concurrent updates on one order cannot
    leave status and history disagreeing.
    """
    def __init__(self, db):
        self.db = db

    def update_status(self, order_id, new_status, actor_id, note: Optional[str] = None) -> Order:
        """
        Moves an order to a new status and records who did it.

        Args:
            order_id: Target order.
            new_status: Requested status value.
            actor_id: Employee or user performing the change.
            note: Optional remark stored with the history entry.

        Returns:
            The updated Order.

        Raises:
            StoreError: VALIDATION_ERROR without an actor; otherwise ORDER_NOT_FOUND,
                INVALID_STATUS, INVALID_TRANSITION or CONFLICT, checked in that order.
        """
        order_id = require_positive_int(order_id, "orderId")
        actor_id = require_positive_int(actor_id, "actorId")

        try:
            order = (
                self.db.query(Order)
                .filter_by(id=order_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if order is None:
                raise StoreError.order_not_found(order_id)
            target = parse_status(new_status)

            current = OrderStatus(order.status)
            if target not in TRANSITIONS[current]:
                logger.warning(f"Order {order_id}: rejected transition {current.value} -> {target.value}")
                raise StoreError(
                    ErrorCode.INVALID_TRANSITION,
                    f"Cannot change order status from {current.value} to {target.value}",
                    {"from": current.value, "to": target.value, "allowed": allowed_transitions(current)},
                )

            expected_version = order.version
            result = self.db.execute(
                update(Order)
                .where(Order.id == order_id, Order.version == expected_version)
                .values(status=target.value, version=expected_version + 1, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise StoreError(
                    ErrorCode.CONFLICT,
                    f"Order {order_id} was modified concurrently; retry the status change",
                    {"orderId": order_id},
                )

            write_status_entry(self.db, order_id, target, actor_id=actor_id, note=note)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Order {order_id}: {current.value} -> {target.value} by actor {actor_id}")
        self.db.refresh(order)
        return order

    def history(self, order_id) -> List[OrderStatusHistory]:
        order_id = require_positive_int(order_id, "orderId")
        if self.db.get(Order, order_id) is None:
            raise StoreError.order_not_found(order_id)
        return (
            self.db.query(OrderStatusHistory)
            .filter_by(order_id=order_id)
            .order_by(OrderStatusHistory.id.asc())
            .all()
        )
