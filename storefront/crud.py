# storefront/crud.py
from datetime import datetime
from typing import List, Dict, Optional, Sequence, Tuple

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import User, Category, Product, Cart, CartItem, Order, OrderItem, OrderStatus


# ---------- users ----------
async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    q = select(User).where(User.email == email)
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def get_user_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    q = select(User).where(User.id == user_id)
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def get_user_with_orders(db: AsyncSession, user_id: str) -> Optional[User]:
    q = (
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.orders).selectinload(Order.items))
    )
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def get_user_by_refresh_token(db: AsyncSession, token: str) -> Optional[User]:
    q = select(User).where(User.refresh_token == token)
    r = await db.execute(q)
    return r.scalars().first()

async def get_user_by_reset_token(db: AsyncSession, user_id: str, hashed_token: str) -> Optional[User]:
    q = select(User).where(User.id == user_id, User.reset_token == hashed_token)
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def list_users_by_role(db: AsyncSession, role: str) -> List[User]:
    q = select(User).where(User.role == role).order_by(User.created_at.desc())
    r = await db.execute(q)
    return r.scalars().all()

async def create_user(db: AsyncSession, **values) -> User:
    user = User(**values)
    db.add(user)
    await db.commit()
    return user

async def update_user(db: AsyncSession, user_id: str, **values) -> None:
    await db.execute(update(User).where(User.id == user_id).values(**values))
    await db.commit()


# ---------- categories ----------
async def list_categories(db: AsyncSession) -> List[Category]:
    q = select(Category).order_by(Category.created_at.desc())
    r = await db.execute(q)
    return r.scalars().all()

async def get_category(db: AsyncSession, category_id: str) -> Optional[Category]:
    q = select(Category).where(Category.id == category_id)
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def get_category_by_name(db: AsyncSession, name: str) -> Optional[Category]:
    """Case-insensitive lookup."""
    q = select(Category).where(func.lower(Category.name) == name.lower())
    r = await db.execute(q)
    return r.scalars().first()

async def get_category_with_products(db: AsyncSession, category_id: str) -> Optional[Category]:
    q = (
        select(Category)
        .where(Category.id == category_id)
        .options(selectinload(Category.products))
    )
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def create_category(db: AsyncSession, name: str) -> Category:
    category = Category(name=name)
    db.add(category)
    await db.commit()
    return category

async def rename_category(db: AsyncSession, category: Category, name: str) -> Category:
    category.name = name
    await db.commit()
    return category

async def count_products_in_category(db: AsyncSession, category_id: str) -> int:
    q = select(func.count()).select_from(Product).where(Product.category_id == category_id)
    r = await db.execute(q)
    return r.scalar_one()

async def delete_category(db: AsyncSession, category_id: str) -> None:
    await db.execute(delete(Category).where(Category.id == category_id))
    await db.commit()


# ---------- products ----------
async def list_products(db: AsyncSession) -> List[Product]:
    q = select(Product).order_by(Product.created_at.desc())
    r = await db.execute(q)
    return r.scalars().all()

async def get_product(db: AsyncSession, product_id: str) -> Optional[Product]:
    q = select(Product).where(Product.id == product_id)
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def get_products_by_ids(db: AsyncSession, product_ids: Sequence[str]) -> Dict[str, Product]:
    if not product_ids:
        return {}
    q = select(Product).where(Product.id.in_(list(product_ids)))
    r = await db.execute(q)
    return {p.id: p for p in r.scalars().all()}

async def create_product(db: AsyncSession, data: Dict) -> Product:
    product = Product(**data)
    db.add(product)
    await db.commit()
    return product

async def update_product(db: AsyncSession, product: Product, data: Dict) -> Product:
    for k, v in data.items():
        setattr(product, k, v)
    await db.commit()
    return product

async def delete_product(db: AsyncSession, product_id: str) -> None:
    await db.execute(delete(CartItem).where(CartItem.product_id == product_id))
    await db.execute(delete(Product).where(Product.id == product_id))
    await db.commit()

async def search_products(db: AsyncSession, query: str, limit: int) -> List[Product]:
    q = select(Product).where(Product.name.ilike(f"%{query}%")).limit(limit)
    r = await db.execute(q)
    return r.scalars().all()

async def list_bestsellers(db: AsyncSession, limit: int = 5) -> List[Product]:
    q = select(Product).where(Product.bestseller.is_(True)).limit(limit)
    r = await db.execute(q)
    return r.scalars().all()

async def top_selling_groups(db: AsyncSession, limit: int) -> List[Tuple[str, int]]:
    """(product_id, summed quantity), best sellers first, product id breaking ties."""
    total_qty = func.sum(OrderItem.quantity).label("total_qty")
    q = (
        select(OrderItem.product_id, total_qty)
        .where(OrderItem.product_id.is_not(None))
        .group_by(OrderItem.product_id)
        .order_by(total_qty.desc(), OrderItem.product_id.asc())
        .limit(limit)
    )
    r = await db.execute(q)
    return [(row.product_id, int(row.total_qty or 0)) for row in r.all()]


# ---------- stock (no commit: callers own the transaction) ----------
async def decrement_stock(db: AsyncSession, product_id: str, qty: int) -> bool:
    """
    Conditional decrement: only applies while enough stock remains.
    Returns False when no row matched.
    """
    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock_count >= qty)
        .values(stock_count=Product.stock_count - qty)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount == 1

async def increment_stock(db: AsyncSession, product_id: str, qty: int) -> None:
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock_count=Product.stock_count + qty)
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)


# ---------- cart ----------
async def get_cart(db: AsyncSession, user_id: str) -> Optional[Cart]:
    q = select(Cart).where(Cart.user_id == user_id)
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def get_cart_with_items(db: AsyncSession, user_id: str) -> Optional[Cart]:
    q = (
        select(Cart)
        .where(Cart.user_id == user_id)
        .options(selectinload(Cart.items).selectinload(CartItem.product))
        .execution_options(populate_existing=True)
    )
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def get_or_create_cart(db: AsyncSession, user_id: str) -> Cart:
    cart = await get_cart(db, user_id)
    if cart:
        return cart
    cart = Cart(user_id=user_id)
    db.add(cart)
    await db.commit()
    return cart

async def get_cart_item_for_product(db: AsyncSession, cart_id: str, product_id: str) -> Optional[CartItem]:
    q = select(CartItem).where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
    r = await db.execute(q)
    return r.scalars().first()

async def get_cart_item(db: AsyncSession, cart_id: str, item_id: str) -> Optional[CartItem]:
    q = select(CartItem).where(CartItem.cart_id == cart_id, CartItem.id == item_id)
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def add_cart_item(db: AsyncSession, cart_id: str, product_id: str, quantity: int, price) -> CartItem:
    item = CartItem(cart_id=cart_id, product_id=product_id, quantity=quantity, price=price)
    db.add(item)
    await db.commit()
    return item

async def set_cart_item_quantity(db: AsyncSession, item: CartItem, quantity: int) -> CartItem:
    item.quantity = quantity
    await db.commit()
    return item

async def remove_cart_item(db: AsyncSession, item_id: str) -> None:
    await db.execute(delete(CartItem).where(CartItem.id == item_id))
    await db.commit()

async def clear_cart(db: AsyncSession, cart_id: str) -> None:
    await db.execute(delete(CartItem).where(CartItem.cart_id == cart_id))
    await db.commit()


# ---------- orders ----------
async def list_orders(db: AsyncSession) -> List[Order]:
    q = select(Order).options(selectinload(Order.items)).order_by(Order.created_at.desc())
    r = await db.execute(q)
    return r.scalars().all()

async def get_order(db: AsyncSession, order_id: str) -> Optional[Order]:
    q = (
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items))
        .execution_options(populate_existing=True)
    )
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def insert_order(db: AsyncSession, user_id: str, total, items: List[Dict], shipping: Dict) -> str:
    """Adds the order and its lines to the current transaction; no commit."""
    order = Order(user_id=user_id, total=total, status=OrderStatus.PENDING, **shipping)
    order.items = [OrderItem(**i) for i in items]
    db.add(order)
    await db.flush()
    return order.id

async def transition_order_status(db: AsyncSession, order_id: str, from_status: str, to_status: str) -> bool:
    """
    Compare-and-set on status; False when the order is no longer in
    ``from_status``. No commit.
    """
    stmt = (
        update(Order)
        .where(Order.id == order_id, Order.status == from_status)
        .values(status=to_status)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount == 1

async def delivered_orders_since(db: AsyncSession, since: datetime) -> List[Tuple[datetime, object]]:
    q = (
        select(Order.created_at, Order.total)
        .where(Order.status == OrderStatus.DELIVERED, Order.created_at >= since)
    )
    r = await db.execute(q)
    return [(row.created_at, row.total) for row in r.all()]
