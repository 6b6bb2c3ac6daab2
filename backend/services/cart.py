import logging
from decimal import Decimal
from typing import Any, Dict, Optional
from sqlalchemy.exc import IntegrityError
from errors import StoreError, require_non_negative_int, require_positive_int
from schema import Cart, CartItem
from services.inventory import load_and_check
from services.pricing import product_price

logger = logging.getLogger(__name__)


class CartService:
    """
    Manages the single in-progress cart each user owns.

    Line items are unique per product. Every quantity change is checked against the
    product's current stock and availability; totals are live quotes computed from
    current catalog prices rather than stored.
    """
    def __init__(self, db):
        self.db = db

    def _find(self, user_id: int, lock: bool = False) -> Optional[Cart]:
        query = self.db.query(Cart).filter_by(user_id=user_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def _require_cart(self, user_id: int, lock: bool = False) -> Cart:
        cart = self._find(user_id, lock=lock)
        if cart is None:
            raise StoreError.cart_not_found(user_id)
        return cart

    @staticmethod
    def _line(cart: Cart, product_id: int) -> Optional[CartItem]:
        return next((item for item in cart.items if item.product_id == product_id), None)

    def _find_or_insert(self, user_id: int) -> Cart:
        """
        Locks the user's cart, or flushes a new one into the open transaction.

        The unique user_id constraint lets only one concurrent insert win; the loser
        rolls back and reads the winner's row. Must run before anything else in the
        transaction, since the rollback discards it.
        """
        cart = self._find(user_id, lock=True)
        if cart is not None:
            return cart

        cart = Cart(user_id=user_id)
        self.db.add(cart)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            cart = self._find(user_id, lock=True)
            if cart is None:
                raise
            return cart
        logger.info(f"Created cart {cart.id} for user {user_id}")
        return cart

    def get_or_create_cart(self, user_id) -> Cart:
        """
        Returns the user's cart, creating an empty one on first use.
        """
        user_id = require_positive_int(user_id, "userId")
        cart = self._find(user_id)
        if cart is not None:
            return cart

        try:
            cart = self._find_or_insert(user_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return cart

    def get_cart(self, user_id) -> Cart:
        user_id = require_positive_int(user_id, "userId")
        return self._require_cart(user_id)

    def add_item(self, user_id, product_id, quantity=1) -> Cart:
        """
        Adds units of a product to the cart, accumulating onto an existing line.

        The availability gate runs against the merged quantity so repeated adds can
        never hold more than the product's stock.

        Args:
            user_id: Cart owner.
            product_id: Product to add.
            quantity: Units to add (default 1).

        Returns:
            The updated cart.
        """
        user_id = require_positive_int(user_id, "userId")
        product_id = require_positive_int(product_id, "productId")
        quantity = require_positive_int(quantity, "quantity")

        try:
            # A rejected add must not leave a freshly created empty cart behind
            cart = self._find_or_insert(user_id)
            line = self._line(cart, product_id)
            merged = quantity + (line.quantity if line else 0)
            load_and_check(self.db, product_id, merged)

            if line:
                line.quantity = merged
            else:
                cart.items.append(CartItem(product_id=product_id, quantity=quantity))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"User {user_id} cart: product {product_id} quantity now {merged}")
        return cart

    def update_item(self, user_id, product_id, quantity) -> Cart:
        """
        Sets a line to an absolute quantity; zero removes the line.
        """
        user_id = require_positive_int(user_id, "userId")
        product_id = require_positive_int(product_id, "productId")
        quantity = require_non_negative_int(quantity, "quantity")

        try:
            cart = self._require_cart(user_id, lock=True)
            line = self._line(cart, product_id)

            if quantity == 0:
                if line:
                    cart.items.remove(line)
            else:
                load_and_check(self.db, product_id, quantity)
                if line:
                    line.quantity = quantity
                else:
                    cart.items.append(CartItem(product_id=product_id, quantity=quantity))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return cart

    def remove_item(self, user_id, product_id) -> Cart:
        user_id = require_positive_int(user_id, "userId")
        product_id = require_positive_int(product_id, "productId")

        cart = self._require_cart(user_id, lock=True)
        line = self._line(cart, product_id)
        if line:
            cart.items.remove(line)
            self.db.commit()
        return cart

    def clear(self, user_id) -> Cart:
        user_id = require_positive_int(user_id, "userId")

        cart = self._require_cart(user_id, lock=True)
        cart.items.clear()
        self.db.commit()
        logger.info(f"Cleared cart {cart.id} for user {user_id}")
        return cart

    def delete(self, user_id) -> bool:
        """
        Removes the cart entity entirely.

        Returns:
            True if a cart was deleted, False if the user had none.
        """
        user_id = require_positive_int(user_id, "userId")

        cart = self._find(user_id, lock=True)
        if cart is None:
            return False
        self.db.delete(cart)
        self.db.commit()
        logger.info(f"Deleted cart for user {user_id}")
        return True

    @staticmethod
    def get_total(cart: Cart) -> Decimal:
        return sum((product_price(item.product) * item.quantity for item in cart.items), Decimal("0.00"))

    def to_dict(self, cart: Cart) -> Dict[str, Any]:
        items = []
        for item in cart.items:
            unit_price = product_price(item.product)
            items.append({
                "productId": item.product_id,
                "name": item.product.name,
                "quantity": item.quantity,
                "unitPrice": float(unit_price),
                "subtotal": float(unit_price * item.quantity),
            })
        return {
            "id": cart.id,
            "userId": cart.user_id,
            "items": items,
            "total": float(self.get_total(cart)),
        }
