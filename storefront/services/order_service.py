# storefront/services/order_service.py
import calendar
import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Any, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from storefront import crud
from storefront.errors import (
    Forbidden, InsufficientStock, InvalidTransition, NotFound, ValidationError,
)
from storefront.models import OrderStatus, Role, utcnow
from storefront.serializers import order_out

logger = logging.getLogger(__name__)

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

REVENUE_WINDOW_MONTHS = 6

# allowed next states; anything missing is terminal
TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def months_ago(now: datetime, months: int) -> datetime:
    year, month = shift_month(now.year, now.month, -months)
    # clamp day for shorter months (Aug 31 -> Feb 28)
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def merge_lines(lines: List[Tuple[str, int]]) -> "OrderedDict[str, int]":
    merged: "OrderedDict[str, int]" = OrderedDict()
    for product_id, quantity in lines:
        if quantity is None or quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged


class OrderService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_order(self, user_id: str, lines: List[Tuple[str, int]], shipping: Dict[str, Any]) -> Dict[str, Any]:
        """
        Place an order all-or-nothing: stock for every line is taken with a
        conditional decrement and the order rows are inserted in the same
        transaction. Any shortfall rolls the whole thing back.
        """
        if not lines:
            raise ValidationError("No items in the order")
        wanted = merge_lines(lines)

        products = await crud.get_products_by_ids(self.db, list(wanted))

        total = Decimal("0")
        order_items = []
        for product_id, quantity in wanted.items():
            product = products.get(product_id)
            if product is None:
                raise NotFound(f"Product not found: {product_id}")
            if product.stock_count < quantity:
                raise InsufficientStock(f"Insufficient stock for {product.name}")
            unit_price = product.unit_price
            total += unit_price * quantity
            order_items.append({"product_id": product_id, "quantity": quantity, "price": unit_price})

        try:
            for product_id, quantity in wanted.items():
                if not await crud.decrement_stock(self.db, product_id, quantity):
                    # another order took the stock since the read above
                    logger.warning("[ORDER] stock race lost product=%s qty=%s", product_id, quantity)
                    raise InsufficientStock(f"Insufficient stock for {products[product_id].name}")
            order_id = await crud.insert_order(self.db, user_id, total, order_items, shipping)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        order = await crud.get_order(self.db, order_id)
        logger.info("[ORDER] created %s user=%s total=%s lines=%d", order_id, user_id, total, len(order_items))
        return {"success": True, "order": order_out(order)}

    async def list_orders(self) -> Dict[str, Any]:
        orders = await crud.list_orders(self.db)
        return {"success": True, "orders": [order_out(o) for o in orders]}

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        order = await crud.get_order(self.db, order_id)
        if not order:
            raise NotFound("Order not found")
        return {"success": True, "order": order_out(order)}

    async def _cancel(self, order) -> None:
        if not can_transition(order.status, OrderStatus.CANCELLED):
            raise InvalidTransition(f"Cannot cancel an order that is {order.status}")
        try:
            # the status flip is the guard: only the caller that wins it restores stock
            if not await crud.transition_order_status(self.db, order.id, order.status, OrderStatus.CANCELLED):
                raise InvalidTransition("Order status changed, please retry")
            for item in order.items:
                if item.product_id is not None:
                    await crud.increment_stock(self.db, item.product_id, item.quantity)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("[ORDER] cancelled %s, stock restored for %d lines", order.id, len(order.items))

    async def cancel_order(self, order_id: str, user_id: str, role: str) -> Dict[str, Any]:
        order = await crud.get_order(self.db, order_id)
        if not order:
            raise NotFound("Order not found")
        if role != Role.ADMIN and order.user_id != user_id:
            raise Forbidden()

        await self._cancel(order)
        return {"success": True, "message": "Order cancelled and stock updated"}

    async def update_status(self, order_id: str, status: Optional[str]) -> Dict[str, Any]:
        status = (status or "").strip().upper()
        if status not in OrderStatus.ALL:
            raise ValidationError(f"Unknown status: {status or '(empty)'}")

        order = await crud.get_order(self.db, order_id)
        if not order:
            raise NotFound("Order not found")

        if status == OrderStatus.CANCELLED:
            await self._cancel(order)
        else:
            if not can_transition(order.status, status):
                raise InvalidTransition(f"Cannot change status from {order.status} to {status}")
            try:
                if not await crud.transition_order_status(self.db, order.id, order.status, status):
                    raise InvalidTransition("Order status changed, please retry")
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise
            logger.info("[ORDER] %s %s -> %s", order.id, order.status, status)

        order = await crud.get_order(self.db, order_id)
        return {"success": True, "message": "Status Updated", "order": order_out(order)}

    async def revenue_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Delivered revenue for the trailing six calendar months, oldest
        first, months without sales reported as 0.
        """
        now = now or utcnow()
        rows = await crud.delivered_orders_since(self.db, months_ago(now, REVENUE_WINDOW_MONTHS))

        by_month: Dict[Tuple[int, int], Decimal] = {}
        for created_at, total in rows:
            key = (created_at.year, created_at.month)
            by_month[key] = by_month.get(key, Decimal("0")) + Decimal(total or 0)

        data = []
        for back in range(REVENUE_WINDOW_MONTHS - 1, -1, -1):
            year, month = shift_month(now.year, now.month, -back)
            data.append({
                "name": MONTH_NAMES[month - 1],
                "revenue": float(by_month.get((year, month), 0)),
            })
        return {"success": True, "data": data}
