# storefront/categories.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings, get_settings
from .db import get_db
from .deps import CurrentUser, require_admin
from .schemas import CategoryIn
from .services.catalog_service import CatalogService

router = APIRouter(prefix="/categories", tags=["categories"])


def get_catalog_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CatalogService:
    return CatalogService(db, settings)


@router.get("")
@router.get("/", include_in_schema=False)
async def list_categories(svc: CatalogService = Depends(get_catalog_service)):
    return await svc.list_categories()

@router.get("/products/{category_id}")
async def category_products(category_id: str, svc: CatalogService = Depends(get_catalog_service)):
    return await svc.category_products(category_id)

@router.get("/{category_id}")
async def get_category(category_id: str, svc: CatalogService = Depends(get_catalog_service)):
    return await svc.get_category(category_id)

@router.post("/create", status_code=201)
async def create_category(
    payload: CategoryIn,
    _: CurrentUser = Depends(require_admin),
    svc: CatalogService = Depends(get_catalog_service),
):
    return await svc.create_category(payload.name)

@router.put("/{category_id}")
async def update_category(
    category_id: str,
    payload: CategoryIn,
    _: CurrentUser = Depends(require_admin),
    svc: CatalogService = Depends(get_catalog_service),
):
    return await svc.update_category(category_id, payload.name)

@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    _: CurrentUser = Depends(require_admin),
    svc: CatalogService = Depends(get_catalog_service),
):
    return await svc.delete_category(category_id)
