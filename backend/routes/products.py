from flask import Blueprint, request, jsonify
from errors import StoreError
from routes.auth import with_db
from services.catalog import (
    create_product, get_product, list_products, serialize_product, update_product,
)

products_bp = Blueprint("products", __name__)


@products_bp.route("/products", methods=["GET"])
@with_db
def get_products(db):
    """
    Lists catalog products with their effective prices.
    ---
    Input (Query Params):
        - categoryId (int, optional)
        - available (bool, optional): only purchasable products when "true"
    """
    category_id = request.args.get("categoryId", type=int)
    available_only = request.args.get("available", "false").lower() == "true"
    products = list_products(db, category_id=category_id, available_only=available_only)
    return jsonify({"success": True, "products": [serialize_product(p) for p in products]}), 200


@products_bp.route("/products/<int:product_id>", methods=["GET"])
@with_db
def get_product_by_id(db, product_id):
    product = get_product(db, product_id)
    if product is None:
        raise StoreError.product_not_found(product_id)
    return jsonify({"success": True, "product": serialize_product(product)}), 200


@products_bp.route("/products", methods=["POST"])
@with_db
def post_product(db):
    data = request.get_json(silent=True) or {}
    try:
        product = create_product(db, data)
    except Exception:
        db.rollback()
        raise
    return jsonify({"success": True, "product": serialize_product(product)}), 201


@products_bp.route("/products/<int:product_id>", methods=["PUT"])
@with_db
def put_product(db, product_id):
    data = request.get_json(silent=True) or {}
    try:
        product = update_product(db, product_id, data)
    except Exception:
        db.rollback()
        raise
    return jsonify({"success": True, "product": serialize_product(product)}), 200
