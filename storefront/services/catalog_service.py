# storefront/services/catalog_service.py
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from storefront import crud
from storefront.config import Settings
from storefront.errors import ConflictError, NotFound, ValidationError
from storefront.serializers import category_out, product_out

logger = logging.getLogger(__name__)

BESTSELLER_LIMIT = 5


def parse_money(raw, field: str) -> Decimal:
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not value.is_finite() or value < 0:
        raise ValidationError(f"{field} must be a non-negative number")
    return value.quantize(Decimal("0.01"))


def parse_count(raw, field: str) -> int:
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{field} must be an integer")
    if value < 0:
        raise ValidationError(f"{field} must not be negative")
    return value


def parse_flag(raw) -> bool:
    return str(raw).strip().lower() == "true"


class CatalogService:
    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    # ---------- categories ----------
    async def create_category(self, name: Optional[str]) -> Dict[str, Any]:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        if await crud.get_category_by_name(self.db, name):
            raise ConflictError("Category already exists")
        category = await crud.create_category(self.db, name)
        return {"success": True, "category": category_out(category)}

    async def list_categories(self) -> Dict[str, Any]:
        categories = await crud.list_categories(self.db)
        return {"success": True, "categories": [category_out(c) for c in categories]}

    async def get_category(self, category_id: str) -> Dict[str, Any]:
        category = await crud.get_category(self.db, category_id)
        if not category:
            raise NotFound("Category not found")
        return {"success": True, "category": category_out(category)}

    async def update_category(self, category_id: str, name: Optional[str]) -> Dict[str, Any]:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        category = await crud.get_category(self.db, category_id)
        if not category:
            raise NotFound("Category not found")
        clash = await crud.get_category_by_name(self.db, name)
        if clash and clash.id != category_id:
            raise ConflictError("Category already exists")
        category = await crud.rename_category(self.db, category, name)
        return {"success": True, "category": category_out(category)}

    async def delete_category(self, category_id: str) -> Dict[str, Any]:
        category = await crud.get_category(self.db, category_id)
        if not category:
            raise NotFound("Category not found")
        if await crud.count_products_in_category(self.db, category_id) > 0:
            raise ConflictError("Cannot delete category with existing products")
        await crud.delete_category(self.db, category_id)
        return {"success": True, "message": "Category deleted successfully"}

    async def category_products(self, category_id: str) -> Dict[str, Any]:
        category = await crud.get_category_with_products(self.db, category_id)
        if not category:
            raise NotFound("Category not found")
        return {
            "success": True,
            "category": category.name,
            "products": [product_out(p) for p in category.products],
        }

    # ---------- products ----------
    async def create_product(
        self,
        fields: Dict[str, Any],
        featured_image: Optional[str] = None,
        gallery: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        name = (fields.get("name") or "").strip()
        if not name:
            raise ValidationError("Product name is required")
        if fields.get("price") in (None, ""):
            raise ValidationError("price is required")

        category_id = fields.get("category_id") or None
        if category_id and not await crud.get_category(self.db, category_id):
            raise NotFound("Category not found")

        discounted = fields.get("discounted_price")
        data = {
            "name": name,
            "slug": fields.get("slug"),
            "category_id": category_id,
            "description": fields.get("description"),
            "price": parse_money(fields["price"], "price"),
            "discounted_price": parse_money(discounted, "discountedPrice") if discounted not in (None, "") else None,
            "stock_count": parse_count(fields.get("stock_count") or 0, "stockCount"),
            "bestseller": parse_flag(fields.get("bestseller")),
            "featured_image": featured_image,
            "gallery": gallery or [],
        }
        if data["discounted_price"] is not None and data["discounted_price"] > data["price"]:
            raise ValidationError("discountedPrice cannot exceed price")
        product = await crud.create_product(self.db, data)
        logger.info("[CATALOG] created product %s (%s)", product.id, product.name)
        return {"success": True, "message": "Product created successfully", "product": product_out(product)}

    async def update_product(
        self,
        product_id: str,
        fields: Dict[str, Any],
        featured_image: Optional[str] = None,
        gallery: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        data = {}
        if fields.get("name"):
            data["name"] = fields["name"]
        if fields.get("slug"):
            data["slug"] = fields["slug"]
        if fields.get("description"):
            data["description"] = fields["description"]
        if fields.get("price"):
            data["price"] = parse_money(fields["price"], "price")
        if fields.get("discounted_price") is not None:
            # present but empty clears the discount
            raw = fields["discounted_price"]
            data["discounted_price"] = parse_money(raw, "discountedPrice") if raw != "" else None
        if fields.get("stock_count"):
            data["stock_count"] = parse_count(fields["stock_count"], "stockCount")
        if fields.get("bestseller") is not None:
            data["bestseller"] = parse_flag(fields["bestseller"])
        if fields.get("category_id"):
            if not await crud.get_category(self.db, fields["category_id"]):
                raise NotFound("Category not found")
            data["category_id"] = fields["category_id"]
        if featured_image:
            data["featured_image"] = featured_image
        if gallery:
            data["gallery"] = gallery

        if not data:
            raise ValidationError("No data provided to update")

        product = await crud.get_product(self.db, product_id)
        if not product:
            raise NotFound("Product not found")
        price = data.get("price", product.price)
        discounted = data["discounted_price"] if "discounted_price" in data else product.discounted_price
        if discounted is not None and discounted > price:
            raise ValidationError("discountedPrice cannot exceed price")
        product = await crud.update_product(self.db, product, data)
        return {"success": True, "message": "Product updated successfully", "product": product_out(product)}

    async def delete_product(self, product_id: str) -> Dict[str, Any]:
        if not await crud.get_product(self.db, product_id):
            raise NotFound("Product not found")
        await crud.delete_product(self.db, product_id)
        logger.info("[CATALOG] deleted product %s", product_id)
        return {"success": True, "message": "Product deleted"}

    async def list_products(self) -> Dict[str, Any]:
        products = await crud.list_products(self.db)
        return {"success": True, "products": [product_out(p) for p in products]}

    async def get_product(self, product_id: str) -> Dict[str, Any]:
        product = await crud.get_product(self.db, product_id)
        if not product:
            raise NotFound("Product not found")
        return {"success": True, "product": product_out(product)}

    async def search(self, query: Optional[str]) -> Dict[str, Any]:
        if not query or not query.strip():
            raise ValidationError("Search query not provided")
        products = await crud.search_products(self.db, query.strip(), self.settings.search_result_limit)
        return {"success": True, "products": [product_out(p) for p in products]}

    async def best_sellers(self) -> Dict[str, Any]:
        products = await crud.list_bestsellers(self.db, BESTSELLER_LIMIT)
        return {"success": True, "topseller": [product_out(p) for p in products]}

    async def top_selling(self, limit: int = 3) -> Dict[str, Any]:
        """
        Products ranked by units sold across all order lines. Twice the
        limit is fetched so products deleted since the sale can be skipped.
        """
        if limit < 1:
            limit = 3
        groups = await crud.top_selling_groups(self.db, limit * 2)
        products = await crud.get_products_by_ids(self.db, [pid for pid, _ in groups])

        ranked = []
        for product_id, total_sold in groups:
            product = products.get(product_id)
            if product is None:
                continue
            out = product_out(product)
            out["totalSold"] = total_sold
            out["totalRevenue"] = float(product.unit_price * total_sold)
            ranked.append(out)

        return {"success": True, "topSelling": ranked[:limit]}
