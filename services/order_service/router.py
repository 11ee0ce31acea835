from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.payment_service.gateway import PaymentGateway, get_payment_gateway
from services.tracking_service.broadcaster import BroadcastPort, get_broadcaster
from shared.config.database import DatabaseHealth, get_db, get_db_health, require_database
from shared.config.settings import TRACK_RATE_LIMIT
from shared.security import CurrentUser, get_current_user, limiter, require_admin

from .schemas import (
    OrderCancel,
    OrderCreate,
    OrderEdit,
    OrderListResponse,
    OrderResponse,
    OrderStats,
    OrderStatus,
    OrderStatusUpdate,
    OrderTrackingPatch,
    TrackingView,
    TrackRequest,
)
from .service import OrderService

router = APIRouter(dependencies=[Depends(require_database)])
admin_router = APIRouter(dependencies=[Depends(require_database), Depends(require_admin)])
public_router = APIRouter()

@public_router.get("/health")
async def health_check(health: DatabaseHealth = Depends(get_db_health)):
    return {"service": "order", "status": "running", **health.snapshot()}

@public_router.post("/track", response_model=TrackingView, dependencies=[Depends(require_database)])
@limiter.limit(TRACK_RATE_LIMIT)
async def track_order(
    request: Request,                          # REQUIRED: slowapi needs this to check IP/Headers
    payload: TrackRequest,
    db: AsyncSession = Depends(get_db)
):
    return await OrderService.track_by_number(db, payload.tracking_number)


# --- ADMIN ---
@admin_router.get("/admin/stats", response_model=OrderStats)
async def order_stats(db: AsyncSession = Depends(get_db)):
    return await OrderService.stats(db)

@admin_router.get("/", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: OrderStatus | None = None,
    payment_status: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: AsyncSession = Depends(get_db)
):
    return await OrderService.list_orders(
        db, page=page, limit=limit, status=status, payment_status=payment_status,
        start_date=start_date, end_date=end_date
    )

@admin_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastPort = Depends(get_broadcaster)
):
    return await OrderService.update_status(db, order_id, payload, broadcaster)

@admin_router.put("/{order_id}/tracking", response_model=OrderResponse)
async def update_order_tracking(
    order_id: int,
    payload: OrderTrackingPatch,
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastPort = Depends(get_broadcaster)
):
    return await OrderService.update_tracking(db, order_id, payload, broadcaster)


# --- CUSTOMER ---
@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway)
):
    return await OrderService.create_order(db, user, payload, gateway)

@router.get("/my-orders", response_model=OrderListResponse)
async def my_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await OrderService.list_orders(db, page=page, limit=limit, user_id=user.id)

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await OrderService.get_order(db, order_id, user)

@router.put("/{order_id}/edit", response_model=OrderResponse)
async def edit_order(
    order_id: int,
    payload: OrderEdit,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await OrderService.edit_order(db, user, order_id, payload)

@router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    payload: OrderCancel,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastPort = Depends(get_broadcaster)
):
    return await OrderService.cancel_order(db, user, order_id, payload.reason, broadcaster)
