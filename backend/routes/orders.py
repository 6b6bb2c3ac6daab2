import logging
from flask import Blueprint, request, jsonify
from errors import StoreError
from routes.auth import with_db
from services.orders import OrderAssembler, get_order, list_user_orders, list_all_orders, delete_order
from services.status import OrderStatusMachine, allowed_transitions

logger = logging.getLogger(__name__)

orders_bp = Blueprint("orders", __name__)


def _requested_items(data):
    """
    Maps the public line format ({produtoId, quantidade}) onto service input.
    """
    raw_items = data.get("items", data.get("produtos"))
    if not isinstance(raw_items, list):
        raise StoreError.validation("items must be a non-empty list", field="items")
    items = []
    for line in raw_items:
        if not isinstance(line, dict):
            raise StoreError.validation("each item must be an object", field="items")
        items.append({
            "productId": line.get("produtoId", line.get("productId")),
            "quantity": line.get("quantidade", line.get("quantity")),
        })
    return items


@orders_bp.route("/orders", methods=["POST"])
@with_db
def create_order(db):
    """
    Places an order from a submitted list of lines.
    ---
    Input (JSON):
        - usuarioId (int)
        - items (list): [{produtoId, quantidade}]
        - enderecoId (int, optional)
        - cupomId (int, optional)
        - desconto (number, optional): precomputed coupon adjustment
        - precoTotal (number, optional): client-side total, informational
    Output (201):
        - order (obj): created order with number, items and totals
    Errors:
        - 400: VALIDATION_ERROR, PRODUCT_UNAVAILABLE, INSUFFICIENT_STOCK
        - 404: PRODUCT_NOT_FOUND
    """
    data = request.get_json(silent=True) or {}
    order = OrderAssembler(db).create_order(
        user_id=data.get("usuarioId"),
        items=_requested_items(data),
        address_id=data.get("enderecoId"),
        coupon_id=data.get("cupomId"),
        coupon_discount=data.get("desconto"),
        client_total=data.get("precoTotal"),
    )
    return jsonify({"success": True, "order": order.to_dict(include_history=True)}), 201


@orders_bp.route("/orders", methods=["GET"])
@with_db
def get_user_orders(db):
    """
    Lists a customer's orders, newest first.
    ---
    Input (Query Params):
        - usuarioId (int)
    """
    orders = list_user_orders(db, request.args.get("usuarioId"))
    return jsonify({"success": True, "orders": [o.to_dict() for o in orders]}), 200


@orders_bp.route("/orders/all", methods=["GET"])
@with_db
def get_all_orders(db):
    """
    Dashboard listing of every order, optionally filtered by status.
    """
    orders = list_all_orders(db, request.args.get("status"))
    return jsonify({"success": True, "orders": [o.to_dict() for o in orders]}), 200


@orders_bp.route("/orders/<int:order_id>", methods=["GET"])
@with_db
def get_order_by_id(db, order_id):
    order = get_order(db, order_id)
    return jsonify({"success": True, "order": order.to_dict(include_history=True)}), 200


@orders_bp.route("/orders/<int:order_id>/status", methods=["PUT"])
@with_db
def update_order_status(db, order_id):
    """
    Advances an order through its fulfillment lifecycle.
    ---
    Input (JSON):
        - status (str)
        - criadoPor (int): employee performing the change
        - observacao (str, optional)
    Errors:
        - 400: VALIDATION_ERROR, INVALID_STATUS
        - 404: ORDER_NOT_FOUND
        - 409: INVALID_TRANSITION, CONFLICT
    """
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        raise StoreError.validation("status is required", field="status")

    order = OrderStatusMachine(db).update_status(
        order_id,
        data.get("status"),
        actor_id=data.get("criadoPor"),
        note=data.get("observacao"),
    )
    return jsonify({"success": True, "order": order.to_dict(include_history=True)}), 200


@orders_bp.route("/orders/<int:order_id>/history", methods=["GET"])
@with_db
def get_order_history(db, order_id):
    entries = OrderStatusMachine(db).history(order_id)
    return jsonify({"success": True, "history": [e.to_dict() for e in entries]}), 200


@orders_bp.route("/orders/<int:order_id>/transitions", methods=["GET"])
@with_db
def get_order_transitions(db, order_id):
    order = get_order(db, order_id)
    return jsonify({
        "success": True,
        "status": order.status,
        "allowed": allowed_transitions(order.status),
    }), 200


@orders_bp.route("/orders/<int:order_id>", methods=["DELETE"])
@with_db
def remove_order(db, order_id):
    deleted = delete_order(db, order_id)
    return jsonify({"success": True, "order": deleted}), 200
