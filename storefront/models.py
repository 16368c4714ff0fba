# storefront/models.py
from datetime import datetime, timezone
import uuid

from sqlalchemy import (
    Column, Integer, String, Numeric, JSON, DateTime, Boolean, Text, ForeignKey, func,
)
from sqlalchemy.orm import relationship

from .db import Base


def gen_uuid():
    return str(uuid.uuid4())


def utcnow() -> datetime:
    # naive UTC, comparable across sqlite and postgres
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role:
    USER = "USER"
    ADMIN = "ADMIN"


class OrderStatus:
    PENDING = "PENDING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    ALL = (PENDING, SHIPPED, DELIVERED, CANCELLED)


class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=gen_uuid)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default=Role.USER)
    is_verified = Column(Boolean, nullable=False, default=False)
    otp = Column(String, nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    reset_token = Column(String, nullable=True)
    refresh_token = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    orders = relationship("Order", back_populates="user")


class Category(Base):
    __tablename__ = "categories"
    id = Column(String, primary_key=True, default=gen_uuid)
    name = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    products = relationship("Product", back_populates="category")


class Product(Base):
    __tablename__ = "products"
    id = Column(String, primary_key=True, default=gen_uuid)
    name = Column(String, nullable=False)
    slug = Column(String, index=True)
    category_id = Column(String, ForeignKey("categories.id"), index=True)
    description = Column(Text)
    price = Column(Numeric(10, 2), nullable=False)
    discounted_price = Column(Numeric(10, 2), nullable=True)
    stock_count = Column(Integer, nullable=False, default=0)
    bestseller = Column(Boolean, nullable=False, default=False)
    featured_image = Column(String, nullable=True)
    gallery = Column(JSON, default=list)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    category = relationship("Category", back_populates="products")

    @property
    def unit_price(self):
        """Price a customer pays right now: discounted if set, else list."""
        if self.discounted_price is not None:
            return self.discounted_price
        return self.price


class Cart(Base):
    __tablename__ = "carts"
    id = Column(String, primary_key=True, default=gen_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    items = relationship("CartItem", back_populates="cart", cascade="all, delete-orphan")


class CartItem(Base):
    __tablename__ = "cart_items"
    id = Column(String, primary_key=True, default=gen_uuid)
    cart_id = Column(String, ForeignKey("carts.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(String, ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(10, 2), nullable=False)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")


class Order(Base):
    __tablename__ = "orders"
    id = Column(String, primary_key=True, default=gen_uuid)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    status = Column(String, nullable=False, default=OrderStatus.PENDING, index=True)
    first_name = Column(String)
    last_name = Column(String)
    address = Column(String)
    city = Column(String)
    postal_code = Column(String)
    phone = Column(String)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), index=True)

    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    # kept after product deletion so sales history survives
    product_id = Column(String, ForeignKey("products.id", ondelete="SET NULL"), index=True, nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")
