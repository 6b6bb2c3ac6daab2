from flask import Blueprint, request, jsonify
from routes.auth import require_user
from services.cart import CartService

cart_bp = Blueprint("cart", __name__)


def _cart_payload(service, cart, message=None, status=200):
    body = {"success": True, "cart": service.to_dict(cart)}
    if message:
        body["message"] = message
    return jsonify(body), status


@cart_bp.route("/cart", methods=["GET"])
@require_user
def get_cart(user_id, db):
    """
    Returns the caller's cart with live line prices and total.
    ---
    Output (200):
        - cart (obj): items and total
    Errors:
        - 404: CART_NOT_FOUND
    """
    service = CartService(db)
    return _cart_payload(service, service.get_cart(user_id))


@cart_bp.route("/cart/items", methods=["POST"])
@require_user
def add_item(user_id, db):
    """
    Adds a product to the cart, creating the cart on first use.
    ---
    Input (JSON):
        - productId (int)
        - quantity (int, optional): defaults to 1
    Errors:
        - 400: VALIDATION_ERROR, PRODUCT_UNAVAILABLE, INSUFFICIENT_STOCK
        - 404: PRODUCT_NOT_FOUND
    """
    data = request.get_json(silent=True) or {}
    service = CartService(db)
    cart = service.add_item(user_id, data.get("productId"), data.get("quantity", 1))
    return _cart_payload(service, cart, "Product added to cart")


@cart_bp.route("/cart/items", methods=["PUT"])
@require_user
def update_item(user_id, db):
    """
    Sets a line to an absolute quantity; quantity 0 removes it.
    """
    data = request.get_json(silent=True) or {}
    service = CartService(db)
    cart = service.update_item(user_id, data.get("productId"), data.get("quantity"))
    return _cart_payload(service, cart, "Cart updated")


@cart_bp.route("/cart/items/<int:product_id>", methods=["DELETE"])
@require_user
def remove_item(user_id, db, product_id):
    service = CartService(db)
    cart = service.remove_item(user_id, product_id)
    return _cart_payload(service, cart, "Product removed from cart")


@cart_bp.route("/cart/clear", methods=["DELETE"])
@require_user
def clear_cart(user_id, db):
    service = CartService(db)
    cart = service.clear(user_id)
    return _cart_payload(service, cart, "Cart cleared")


@cart_bp.route("/cart", methods=["DELETE"])
@require_user
def delete_cart(user_id, db):
    deleted = CartService(db).delete(user_id)
    return jsonify({"success": True, "deleted": deleted, "message": "Cart removed"}), 200
