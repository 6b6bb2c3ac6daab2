import logging
from enum import Enum
from typing import Any, Dict, Optional

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    CART_NOT_FOUND = "CART_NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    PRODUCT_UNAVAILABLE = "PRODUCT_UNAVAILABLE"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


HTTP_STATUS = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.CART_NOT_FOUND: 404,
    ErrorCode.PRODUCT_NOT_FOUND: 404,
    ErrorCode.ORDER_NOT_FOUND: 404,
    ErrorCode.PRODUCT_UNAVAILABLE: 400,
    ErrorCode.INSUFFICIENT_STOCK: 400,
    ErrorCode.INVALID_STATUS: 400,
    ErrorCode.INVALID_TRANSITION: 409,
    ErrorCode.CONFLICT: 409,
    ErrorCode.INTERNAL_ERROR: 500,
}


class StoreError(Exception):
    """
    Typed business failure raised by the ordering services.

    The code identifies the failure kind; callers branch on it and never on the
    message text.
    """
    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    @property
    def http_status(self) -> int:
        return HTTP_STATUS.get(self.code, 500)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"success": False, "error": self.message, "code": self.code.value}
        if self.details:
            payload["details"] = self.details
        return payload

    def __repr__(self) -> str:
        return f"StoreError({self.code.value}, {self.message!r})"

    @classmethod
    def validation(cls, message: str, **details) -> "StoreError":
        return cls(ErrorCode.VALIDATION_ERROR, message, details)

    @classmethod
    def unauthorized(cls, message: str = "User not authenticated") -> "StoreError":
        return cls(ErrorCode.UNAUTHORIZED, message)

    @classmethod
    def cart_not_found(cls, user_id) -> "StoreError":
        return cls(ErrorCode.CART_NOT_FOUND, "Cart not found", {"userId": user_id})

    @classmethod
    def product_not_found(cls, product_id) -> "StoreError":
        return cls(ErrorCode.PRODUCT_NOT_FOUND, f"Product {product_id} not found", {"productId": product_id})

    @classmethod
    def order_not_found(cls, order_id) -> "StoreError":
        return cls(ErrorCode.ORDER_NOT_FOUND, f"Order {order_id} not found", {"orderId": order_id})


def _require_int(value, field_name: str, minimum: int, label: str) -> int:
    if isinstance(value, bool) or value is None:
        raise StoreError.validation(f"{field_name} is required and must be a {label}", field=field_name)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise StoreError.validation(f"{field_name} must be a {label}", field=field_name)
    if number != value and not (isinstance(value, str) and value.strip().isdigit()):
        raise StoreError.validation(f"{field_name} must be a {label}", field=field_name)
    if number < minimum:
        raise StoreError.validation(f"{field_name} must be a {label}", field=field_name)
    return number


def require_positive_int(value, field_name: str) -> int:
    """
    Coerces an identifier or quantity to a positive integer.

    Integers, integral floats and digit strings are accepted.

    Raises:
        StoreError: VALIDATION_ERROR when the value is missing, not integral or <= 0.
    """
    return _require_int(value, field_name, 1, "positive integer")


def require_non_negative_int(value, field_name: str) -> int:
    """
    Same coercion as require_positive_int, but zero is allowed.
    """
    return _require_int(value, field_name, 0, "non-negative integer")


def register_error_handlers(app) -> None:
    """
    Installs JSON error handlers translating service failures into HTTP responses.

    Args:
        app: The Flask application to configure.
    """
    @app.errorhandler(StoreError)
    def handle_store_error(error: StoreError):
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        # Routing errors (404/405) keep their own responses
        if isinstance(error, HTTPException):
            return error
        logger.exception(f"Unhandled error: {error}")
        return jsonify({
            "success": False,
            "error": "Internal server error",
            "code": ErrorCode.INTERNAL_ERROR.value,
        }), 500
