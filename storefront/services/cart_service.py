# storefront/services/cart_service.py
from typing import Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from storefront import crud
from storefront.errors import InsufficientStock, NotFound, ValidationError
from storefront.serializers import cart_out, cart_item_out


class CartService:
    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id

    async def get_cart(self) -> Dict[str, Any]:
        cart = await crud.get_cart_with_items(self.db, self.user_id)
        if not cart:
            return {"success": True, "cart": {"items": []}}
        return {"success": True, "cart": cart_out(cart)}

    async def add(self, product_id: str, quantity: int) -> Dict[str, Any]:
        if quantity < 1:
            raise ValidationError("Quantity must be greater than 0")

        product = await crud.get_product(self.db, product_id)
        if not product:
            raise NotFound("Product not found")

        cart = await crud.get_or_create_cart(self.db, self.user_id)
        existing = await crud.get_cart_item_for_product(self.db, cart.id, product_id)
        wanted = quantity + (existing.quantity if existing else 0)
        # checked, not reserved: stock is only taken at order time
        if product.stock_count < wanted:
            raise InsufficientStock()

        if existing:
            await crud.set_cart_item_quantity(self.db, existing, wanted)
        else:
            await crud.add_cart_item(self.db, cart.id, product_id, quantity, product.unit_price)
        return {"success": True, "message": "Item added to cart"}

    async def update_item(self, item_id: str, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")

        cart = await crud.get_cart(self.db, self.user_id)
        item = await crud.get_cart_item(self.db, cart.id, item_id) if cart else None
        if not item:
            raise NotFound("Cart item not found")

        item = await crud.set_cart_item_quantity(self.db, item, quantity)
        return {"success": True, "item": cart_item_out(item)}

    async def remove_item(self, item_id: str) -> Dict[str, Any]:
        cart = await crud.get_cart(self.db, self.user_id)
        item = await crud.get_cart_item(self.db, cart.id, item_id) if cart else None
        if not item:
            raise NotFound("Cart item not found")

        await crud.remove_cart_item(self.db, item.id)
        return {"success": True, "message": "Item removed from cart"}

    async def clear(self) -> Dict[str, Any]:
        cart = await crud.get_cart(self.db, self.user_id)
        if not cart:
            return {"success": True, "message": "Cart Already empty"}

        await crud.clear_cart(self.db, cart.id)
        return {"success": True, "message": "Cart Cleared Successfully"}
