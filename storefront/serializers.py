# storefront/serializers.py
"""
Response shapes. Field names are camelCase, which is what the storefront
frontend reads.
"""
from typing import Any, Dict, Optional

from .models import User, Category, Product, Cart, CartItem, Order, OrderItem


def money(value) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def ts(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def user_public(u: User) -> Dict[str, Any]:
    """User record without password, otp and token fields."""
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "isVerified": bool(u.is_verified),
        "createdAt": ts(u.created_at),
    }


def user_summary(u: User) -> Dict[str, Any]:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "createdAt": ts(u.created_at),
    }


def category_out(c: Category) -> Dict[str, Any]:
    return {"id": c.id, "name": c.name, "createdAt": ts(c.created_at)}


def product_out(p: Product) -> Dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "slug": p.slug,
        "categoryId": p.category_id,
        "description": p.description,
        "price": money(p.price),
        "discountedPrice": money(p.discounted_price),
        "stockCount": p.stock_count,
        "bestseller": bool(p.bestseller),
        "featuredImage": p.featured_image,
        "gallery": list(p.gallery or []),
        "createdAt": ts(p.created_at),
    }


def cart_item_out(i: CartItem, with_product: bool = False) -> Dict[str, Any]:
    out = {
        "id": i.id,
        "cartId": i.cart_id,
        "productId": i.product_id,
        "quantity": i.quantity,
        "price": money(i.price),
    }
    if with_product:
        out["product"] = product_out(i.product) if i.product is not None else None
    return out


def cart_out(c: Cart) -> Dict[str, Any]:
    items = [cart_item_out(i, with_product=True) for i in c.items]
    subtotal = sum((i.price or 0) * i.quantity for i in c.items)
    return {
        "id": c.id,
        "userId": c.user_id,
        "items": items,
        "subtotal": money(subtotal),
    }


def order_item_out(i: OrderItem) -> Dict[str, Any]:
    return {
        "id": i.id,
        "orderId": i.order_id,
        "productId": i.product_id,
        "quantity": i.quantity,
        "price": money(i.price),
    }


def order_out(o: Order) -> Dict[str, Any]:
    return {
        "id": o.id,
        "userId": o.user_id,
        "total": money(o.total),
        "status": o.status,
        "firstName": o.first_name,
        "lastName": o.last_name,
        "address": o.address,
        "city": o.city,
        "postalCode": o.postal_code,
        "phone": o.phone,
        "createdAt": ts(o.created_at),
        "items": [order_item_out(i) for i in o.items],
    }
