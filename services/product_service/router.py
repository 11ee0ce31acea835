from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import DatabaseHealth, get_db, get_db_health, require_database
from shared.security.dependencies import require_admin, verify_internal_api_key
from .schemas import ProductCreate, ProductResponse, StockAdjust
from .service import ProductService

router = APIRouter(dependencies=[Depends(require_database)])
internal_router = APIRouter(dependencies=[Depends(require_database), Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health")
async def health_check(health: DatabaseHealth = Depends(get_db_health)):
    return {"service": "product", "status": "running", **health.snapshot()}


@router.post("/", response_model=ProductResponse, status_code=201, dependencies=[Depends(require_admin)])
async def create_product(
    product: ProductCreate,
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.create_product(db, product)

@router.get("/", response_model=list[ProductResponse])
async def list_products(db: AsyncSession = Depends(get_db)):
    return await ProductService.list_products(db)

@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db)
):
    product = await ProductService.get_product_by_id(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product

@internal_router.post("/{product_id}/adjust_stock", response_model=ProductResponse)
async def adjust_stock(
    product_id: int,
    payload: StockAdjust,
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.adjust_stock(db, product_id, payload.delta)
