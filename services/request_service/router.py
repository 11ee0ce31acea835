from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.tracking_service.broadcaster import BroadcastPort, get_broadcaster
from shared.config.database import DatabaseHealth, get_db, get_db_health, require_database
from shared.security import CurrentUser, get_current_user, require_admin

from .schemas import (
    RequestCancel,
    RequestCategory,
    RequestCreate,
    RequestEdit,
    RequestListResponse,
    RequestResponse,
    RequestStats,
    RequestStatus,
    RequestStatusUpdate,
    RequestTrackingPatch,
    Urgency,
)
from .service import RequestService

router = APIRouter(dependencies=[Depends(require_database)])
admin_router = APIRouter(dependencies=[Depends(require_database), Depends(require_admin)])
public_router = APIRouter()

@public_router.get("/health")
async def health_check(health: DatabaseHealth = Depends(get_db_health)):
    return {"service": "request", "status": "running", **health.snapshot()}


# --- ADMIN ---
@admin_router.get("/admin/stats", response_model=RequestStats)
async def request_stats(db: AsyncSession = Depends(get_db)):
    return await RequestService.stats(db)

@admin_router.get("/", response_model=RequestListResponse)
async def list_requests(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: RequestStatus | None = None,
    urgency: Urgency | None = None,
    category: RequestCategory | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: AsyncSession = Depends(get_db)
):
    return await RequestService.list_requests(
        db, page=page, limit=limit, status=status, urgency=urgency, category=category,
        start_date=start_date, end_date=end_date
    )

@admin_router.put("/{request_id}/status", response_model=RequestResponse)
async def update_request_status(
    request_id: int,
    payload: RequestStatusUpdate,
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastPort = Depends(get_broadcaster)
):
    return await RequestService.update_status(db, request_id, payload, broadcaster)

@admin_router.put("/{request_id}/tracking", response_model=RequestResponse)
async def update_request_tracking(
    request_id: int,
    payload: RequestTrackingPatch,
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastPort = Depends(get_broadcaster)
):
    return await RequestService.update_tracking(db, request_id, payload, broadcaster)


# --- CUSTOMER ---
@router.post("/", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: RequestCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await RequestService.create_request(db, user, payload)

@router.get("/my-requests", response_model=RequestListResponse)
async def my_requests(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await RequestService.list_requests(db, page=page, limit=limit, user_id=user.id)

@router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await RequestService.get_request(db, request_id, user)

@router.put("/{request_id}/edit", response_model=RequestResponse)
async def edit_request(
    request_id: int,
    payload: RequestEdit,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await RequestService.edit_request(db, user, request_id, payload)

@router.put("/{request_id}/cancel", response_model=RequestResponse)
async def cancel_request(
    request_id: int,
    payload: RequestCancel,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastPort = Depends(get_broadcaster)
):
    return await RequestService.cancel_request(db, user, request_id, payload.reason, broadcaster)
