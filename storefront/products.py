# storefront/products.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from .config import Settings, get_settings
from .categories import get_catalog_service
from .deps import CurrentUser, get_current_user, require_admin
from .services.catalog_service import CatalogService
from .uploads import save_images, discard

router = APIRouter(prefix="/products", tags=["products"])


async def product_form(
    request: Request,
    name: Optional[str] = Form(None),
    slug: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None, alias="categoryId"),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    discounted_price: Optional[str] = Form(None, alias="discountedPrice"),
    stock_count: Optional[str] = Form(None, alias="stockCount"),
    bestseller: Optional[str] = Form(None),
) -> dict:
    form = await request.form()
    if discounted_price is None and form.get("discountedPrice") == "":
        # empty form values arrive as None; keep "" so the discount is cleared
        discounted_price = ""
    return {
        "name": name,
        "slug": slug,
        "category_id": category_id,
        "description": description,
        "price": price,
        "discounted_price": discounted_price,
        "stock_count": stock_count,
        "bestseller": bestseller,
    }


@router.post("/createproduct")
async def create_product(
    fields: dict = Depends(product_form),
    featured_image: Optional[UploadFile] = File(None, alias="featuredImage"),
    gallery: Optional[List[UploadFile]] = File(None),
    _: CurrentUser = Depends(require_admin),
    settings: Settings = Depends(get_settings),
    svc: CatalogService = Depends(get_catalog_service),
):
    featured, gallery_paths = await save_images(featured_image, gallery, settings.upload_dir)
    try:
        return await svc.create_product(fields, featured, gallery_paths)
    except Exception:
        discard([featured, *gallery_paths], settings.upload_dir)
        raise

@router.put("/{product_id}")
async def update_product(
    product_id: str,
    fields: dict = Depends(product_form),
    featured_image: Optional[UploadFile] = File(None, alias="featuredImage"),
    gallery: Optional[List[UploadFile]] = File(None),
    _: CurrentUser = Depends(require_admin),
    settings: Settings = Depends(get_settings),
    svc: CatalogService = Depends(get_catalog_service),
):
    featured, gallery_paths = await save_images(featured_image, gallery, settings.upload_dir)
    try:
        return await svc.update_product(product_id, fields, featured, gallery_paths or None)
    except Exception:
        discard([featured, *gallery_paths], settings.upload_dir)
        raise

@router.get("/best")
async def best_sellers(svc: CatalogService = Depends(get_catalog_service)):
    return await svc.best_sellers()

@router.get("/search")
async def search(
    q: Optional[str] = Query(None),
    _: CurrentUser = Depends(get_current_user),
    svc: CatalogService = Depends(get_catalog_service),
):
    return await svc.search(q)

@router.get("/top-selling")
async def top_selling(
    limit: int = Query(3),
    _: CurrentUser = Depends(require_admin),
    svc: CatalogService = Depends(get_catalog_service),
):
    return await svc.top_selling(limit)

@router.get("")
@router.get("/", include_in_schema=False)
async def list_products(svc: CatalogService = Depends(get_catalog_service)):
    return await svc.list_products()

@router.get("/{product_id}")
async def get_product(product_id: str, svc: CatalogService = Depends(get_catalog_service)):
    return await svc.get_product(product_id)

@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    _: CurrentUser = Depends(require_admin),
    svc: CatalogService = Depends(get_catalog_service),
):
    return await svc.delete_product(product_id)
