from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db, require_database
from shared.security.dependencies import require_admin

from .schemas import PaymentResponse
from .service import PaymentService

# Payment ledger is admin-only; authorizations happen inside checkout
router = APIRouter(dependencies=[Depends(require_database), Depends(require_admin)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "payment", "status": "running"}


@router.get("/orders/{order_number}", response_model=list[PaymentResponse])
async def list_order_payments(order_number: str, db: AsyncSession = Depends(get_db)):
    return await PaymentService.list_for_order(db, order_number)
