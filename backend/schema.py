from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Boolean, Text, ForeignKey, DateTime, Numeric, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from base import Base
from config import config


def utcnow():
    return datetime.now(timezone.utc)


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_VALUE = "FIXED_VALUE"


class OrderStatus(str, Enum):
    RECEIVED = "RECEIVED"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAYMENT_APPROVED = "PAYMENT_APPROVED"
    PREPARING = "PREPARING"
    EN_ROUTE = "EN_ROUTE"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    DELIVERY_FAILED = "DELIVERY_FAILED"


class Category(Base):
    __tablename__ = 'categories'
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    # Derived counters, refreshed by services.catalog after product writes
    product_count = Column(Integer, nullable=False, default=0)
    stock_total = Column(Integer, nullable=False, default=0)

    products = relationship("Product", back_populates="category")


class Product(Base):
    __tablename__ = 'products'
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    price = Column(Numeric(10, 2), nullable=False)
    available = Column(Boolean, nullable=False, default=True)
    # NULL means stock is not tracked for this product
    stock = Column(Integer)
    category_id = Column(Integer, ForeignKey('categories.id'))
    discount = Column(Numeric(10, 2))
    discount_type = Column(String)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="products")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
        CheckConstraint("stock IS NULL OR stock >= 0", name="ck_product_stock_non_negative"),
    )


class Cart(Base):
    __tablename__ = 'carts'
    id = Column(Integer, primary_key=True)
    # One cart per user
    user_id = Column(Integer, nullable=False, unique=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    items = relationship(
        "CartItem", back_populates="cart", cascade="all, delete-orphan", order_by="CartItem.id"
    )


class CartItem(Base):
    __tablename__ = 'cart_items'
    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey('carts.id', ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_item_cart_product"),
        CheckConstraint("quantity >= 1", name="ck_cart_item_quantity_positive"),
    )


class Order(Base):
    __tablename__ = 'orders'
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    address_id = Column(Integer)
    coupon_id = Column(Integer)
    subtotal = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String, nullable=False, default=OrderStatus.RECEIVED.value)
    # Bumped on every status change; used for compare-and-set transitions
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    history = relationship(
        "OrderStatusHistory", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderStatusHistory.id",
    )

    @property
    def order_number(self) -> str:
        year = (self.created_at or utcnow()).year
        return f"{config.ORDER_NUMBER_PREFIX}-{year}{self.id:05d}"

    def to_dict(self, include_history: bool = False):
        data = {
            "id": self.id,
            "orderNumber": self.order_number,
            "userId": self.user_id,
            "addressId": self.address_id,
            "couponId": self.coupon_id,
            "subtotal": float(self.subtotal),
            "discount": float(self.discount or 0),
            "totalPrice": float(self.total_price),
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "items": [item.to_dict() for item in self.items],
        }
        if include_history:
            data["history"] = [entry.to_dict() for entry in self.history]
        return data


class OrderItem(Base):
    __tablename__ = 'order_items'
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Effective price frozen at order time
    unit_price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    def to_dict(self):
        return {
            "productId": self.product_id,
            "name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unitPrice": float(self.unit_price),
            "lineTotal": float(self.unit_price * self.quantity),
        }


class OrderStatusHistory(Base):
    __tablename__ = 'order_status_history'
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False)
    actor_id = Column(Integer)
    note = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    order = relationship("Order", back_populates="history")

    def to_dict(self):
        return {
            "id": self.id,
            "status": self.status,
            "actorId": self.actor_id,
            "note": self.note,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
