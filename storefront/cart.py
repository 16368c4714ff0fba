# storefront/cart.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_db
from .deps import CurrentUser, get_current_user
from .schemas import CartAddIn, CartUpdateIn
from .services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_cart_service(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> CartService:
    return CartService(db, user.user_id)


@router.get("")
@router.get("/", include_in_schema=False)
async def get_cart(svc: CartService = Depends(get_cart_service)):
    return await svc.get_cart()

@router.post("/add")
async def add_to_cart(payload: CartAddIn, svc: CartService = Depends(get_cart_service)):
    return await svc.add(payload.product_id, payload.quantity)

@router.put("/update")
async def update_cart_item(payload: CartUpdateIn, svc: CartService = Depends(get_cart_service)):
    return await svc.update_item(payload.item_id, payload.quantity)

@router.delete("/remove/{item_id}")
async def remove_cart_item(item_id: str, svc: CartService = Depends(get_cart_service)):
    return await svc.remove_item(item_id)

@router.delete("/clear")
async def clear_cart(svc: CartService = Depends(get_cart_service)):
    return await svc.clear()
