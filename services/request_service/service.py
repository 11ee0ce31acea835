import math
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.tracking_service.broadcaster import BroadcastPort, request_channel
from shared.exceptions import EntityNotFound
from shared.lifecycle import append_tracking_event, ensure_self_service_allowed, ensure_utc, utcnow
from shared.pricing import calculate_request_costs, shipping_for_urgency
from shared.security.dependencies import CurrentUser

from .lifecycle import CANCELLABLE_STATUSES, EDITABLE_STATUSES, REQUEST_MACHINE
from .models import ProductRequest
from .repository import RequestRepository
from .schemas import RequestCreate, RequestEdit, RequestStatusUpdate, RequestTrackingPatch

logger = structlog.get_logger(__name__)


def _status_payload(request: ProductRequest, previous: str, now: datetime) -> dict:
    return {
        "requestId": request.id,
        "requestNumber": request.request_number,
        "status": request.status,
        "message": f"Request status updated from {previous} to {request.status}",
        "timestamp": now.isoformat(),
    }


class RequestService:
    @staticmethod
    async def create_request(db: AsyncSession, user: CurrentUser, data: RequestCreate) -> ProductRequest:
        costs = calculate_request_costs(data.product_price, data.urgency)

        request = ProductRequest(
            request_number=await RequestRepository.next_request_number(db),
            user_id=user.id,
            product_url=str(data.product_url),
            product_name=data.product_name,
            product_price=data.product_price,
            quantity=data.quantity,
            description=data.description,
            category=data.category,
            urgency=data.urgency,
            images=list(data.images),
            estimated_price=costs.base_price,
            service_fee=costs.service_fee,
            shipping_cost=costs.shipping_cost,
            shipping_address=data.shipping_address.model_dump(),
            user_notes=data.user_notes,
            tracking_updates=[],
        )
        await RequestRepository.create_request(db, request)
        logger.info(
            "request_created",
            request_number=request.request_number,
            urgency=request.urgency,
            total_cost=request.total_cost,
        )
        return request

    @staticmethod
    async def get_request(db: AsyncSession, request_id: int, user: CurrentUser | None = None) -> ProductRequest:
        owner = None if user is None or user.is_admin else user.id
        request = await RequestRepository.get_request(db, request_id, owner)
        if not request:
            raise EntityNotFound("Request")
        return request

    @staticmethod
    async def list_requests(db: AsyncSession, page: int = 1, limit: int = 10, status: str | None = None,
                            urgency: str | None = None, category: str | None = None,
                            start_date: datetime | None = None, end_date: datetime | None = None,
                            user_id: str | None = None):
        filters = []
        if user_id is not None:
            filters.append(ProductRequest.user_id == user_id)
        if status:
            filters.append(ProductRequest.status == status)
        if urgency:
            filters.append(ProductRequest.urgency == urgency)
        if category:
            filters.append(ProductRequest.category == category)
        if start_date:
            filters.append(ProductRequest.created_at >= start_date)
        if end_date:
            filters.append(ProductRequest.created_at <= end_date)

        requests, total = await RequestRepository.list_requests(db, filters, page, limit)
        return {
            "requests": requests,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if limit else 0,
            },
        }

    @staticmethod
    async def update_status(db: AsyncSession, request_id: int, data: RequestStatusUpdate,
                            broadcaster: BroadcastPort, now: datetime | None = None) -> ProductRequest:
        now = ensure_utc(now) or utcnow()
        request = await RequestService.get_request(db, request_id)

        change = REQUEST_MACHINE.apply(
            request,
            data.status,
            message=f"Request status updated to {data.status}",
            location=data.location,
            now=now,
        )
        if data.admin_notes:
            request.admin_notes = data.admin_notes
        if data.rejection_reason:
            request.rejection_reason = data.rejection_reason
        if data.final_price:
            request.final_price = data.final_price
        if data.shipping_cost is not None:
            request.shipping_cost = data.shipping_cost
        if data.service_fee is not None:
            request.service_fee = data.service_fee
        if data.assigned_to:
            request.assigned_to = data.assigned_to

        await db.commit()

        await broadcaster.publish(
            request_channel(request.id), "requestStatusUpdate", _status_payload(request, change.previous, now)
        )
        return request

    @staticmethod
    async def update_tracking(db: AsyncSession, request_id: int, data: RequestTrackingPatch,
                              broadcaster: BroadcastPort, now: datetime | None = None) -> ProductRequest:
        request = await RequestService.get_request(db, request_id)

        if data.tracking_number:
            request.tracking_number = data.tracking_number
        if data.carrier:
            request.carrier = data.carrier
        if data.estimated_delivery:
            request.estimated_delivery = data.estimated_delivery

        update = None
        if data.status or data.message:
            update = append_tracking_event(
                request,
                status=data.status or request.status,
                message=data.message or "Tracking updated",
                location=data.location,
                now=now,
            )

        await db.commit()

        if update is not None:
            await broadcaster.publish(request_channel(request.id), "trackingUpdate", {
                "requestId": request.id,
                "requestNumber": request.request_number,
                "status": request.status,
                "update": update.to_record(),
                "currentLocation": update.location,
                "timestamp": ensure_utc(update.timestamp).isoformat(),
            })
        return request

    @staticmethod
    async def edit_request(db: AsyncSession, user: CurrentUser, request_id: int, patch: RequestEdit,
                           now: datetime | None = None) -> ProductRequest:
        request = await RequestService.get_request(db, request_id, CurrentUser(id=user.id))
        ensure_self_service_allowed(request, EDITABLE_STATUSES, "edit request", now=now)

        if patch.product_name is not None:
            request.product_name = patch.product_name
        if patch.quantity is not None:
            request.quantity = patch.quantity
        if patch.description is not None:
            request.description = patch.description
        if patch.urgency is not None and patch.urgency != request.urgency:
            request.urgency = patch.urgency
            request.shipping_cost = shipping_for_urgency(patch.urgency)
        if patch.shipping_address is not None:
            request.shipping_address = patch.shipping_address.model_dump()
        if patch.user_notes is not None:
            request.user_notes = patch.user_notes

        await db.commit()
        logger.info("request_edited", request_number=request.request_number)
        return request

    @staticmethod
    async def cancel_request(db: AsyncSession, user: CurrentUser, request_id: int, reason: str | None,
                             broadcaster: BroadcastPort, now: datetime | None = None) -> ProductRequest:
        now = ensure_utc(now) or utcnow()
        request = await RequestService.get_request(db, request_id, CurrentUser(id=user.id))
        ensure_self_service_allowed(request, CANCELLABLE_STATUSES, "cancel request", now=now)

        message = "Request cancelled by customer"
        if reason:
            message = f"{message}: {reason}"
        change = REQUEST_MACHINE.apply(request, "cancelled", message=message, now=now)

        await db.commit()

        await broadcaster.publish(
            request_channel(request.id), "requestStatusUpdate", _status_payload(request, change.previous, now)
        )
        return request

    @staticmethod
    async def stats(db: AsyncSession) -> dict:
        by_status = await RequestRepository.count_by(db, ProductRequest.status)
        by_category = await RequestRepository.count_by(db, ProductRequest.category)

        durations = [
            (ensure_utc(delivered) - ensure_utc(approved)).total_seconds() / 86400
            for approved, delivered in await RequestRepository.delivered_timelines(db)
        ]
        avg_days = round(sum(durations) / len(durations), 2) if durations else 0.0

        return {
            "total_requests": sum(by_status.values()),
            "pending_requests": by_status.get("pending", 0),
            "approved_requests": by_status.get("approved", 0),
            "completed_requests": by_status.get("delivered", 0),
            "status_distribution": by_status,
            "category_distribution": by_category,
            "avg_processing_days": avg_days,
        }
