# storefront/orders.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_db
from .deps import CurrentUser, get_current_user, require_admin
from .schemas import OrderCreateIn, OrderStatusIn
from .services.order_service import OrderService

router = APIRouter(prefix="/order", tags=["orders"])


def get_order_service(db: AsyncSession = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.post("/create")
async def create_order(
    payload: OrderCreateIn,
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    lines = [(i.product_id, i.quantity) for i in payload.items]
    return await svc.create_order(user.user_id, lines, payload.shipping())

@router.get("")
@router.get("/", include_in_schema=False)
async def all_orders(_: CurrentUser = Depends(require_admin), svc: OrderService = Depends(get_order_service)):
    return await svc.list_orders()

@router.get("/stats/revenue")
async def revenue_stats(_: CurrentUser = Depends(require_admin), svc: OrderService = Depends(get_order_service)):
    return await svc.revenue_stats()

@router.get("/{order_id}")
async def single_order(order_id: str, _: CurrentUser = Depends(require_admin), svc: OrderService = Depends(get_order_service)):
    return await svc.get_order(order_id)

@router.put("/{order_id}/status")
async def update_status(
    order_id: str,
    payload: OrderStatusIn,
    _: CurrentUser = Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    return await svc.update_status(order_id, payload.status)

@router.put("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    return await svc.cancel_order(order_id, user.user_id, user.role)
