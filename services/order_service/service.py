"""
Order lifecycle: checkout, admin status and tracking changes, owner edits and
cancellations, and the public tracking lookup.

Every method that changes status commits first and publishes afterwards, so
a subscriber can only ever observe state that is already stored.
"""
import math
from collections import OrderedDict
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.payment_service.gateway import PaymentGateway
from services.payment_service.service import PaymentService
from services.product_service.repository import ProductRepository
from services.product_service.service import ProductService
from services.tracking_service.broadcaster import BroadcastPort, order_channel
from shared.exceptions import BusinessRuleViolation, EntityNotFound, InsufficientStockError, PaymentDeclined
from shared.lifecycle import append_tracking_event, ensure_self_service_allowed, ensure_utc, utcnow
from shared.observability import ecomm_orders_created_total
from shared.pricing import calculate_order_totals
from shared.security.dependencies import CurrentUser

from .lifecycle import CANCELLABLE_STATUSES, EDITABLE_STATUSES, ORDER_MACHINE
from .models import Order, OrderItem
from .repository import OrderRepository
from .schemas import OrderCreate, OrderEdit, OrderStatusUpdate, OrderTrackingPatch

logger = structlog.get_logger(__name__)

DEFAULT_LOCATION = "Processing Center"


def _status_payload(order: Order, message: str, now: datetime) -> dict:
    return {
        "orderId": order.id,
        "orderNumber": order.order_number,
        "status": order.status,
        "message": message,
        "timestamp": now.isoformat(),
    }


def tracking_payload(order: Order, update) -> dict:
    return {
        "orderId": order.id,
        "orderNumber": order.order_number,
        "status": order.status,
        "update": update.to_record(),
        "currentLocation": update.location,
        "estimatedDelivery": order.estimated_delivery.isoformat() if order.estimated_delivery else None,
        "timestamp": ensure_utc(update.timestamp).isoformat(),
    }


class OrderService:
    @staticmethod
    async def create_order(db: AsyncSession, user: CurrentUser, data: OrderCreate,
                           gateway: PaymentGateway) -> Order:
        # Merge repeated products so the stock check sees the full quantity
        requested: "OrderedDict[int, int]" = OrderedDict()
        for item in data.items:
            requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

        products = await ProductRepository.get_products_by_ids(db, list(requested))
        for product_id, quantity in requested.items():
            product = products.get(product_id)
            if not product or not product.is_active:
                ecomm_orders_created_total.labels(status="rejected").inc()
                raise BusinessRuleViolation(f"Product {product_id} not found or inactive")
            # Admin orders do not draw on stock
            if not user.is_admin and (not product.in_stock or product.stock < quantity):
                ecomm_orders_created_total.labels(status="rejected").inc()
                raise InsufficientStockError(product.name, quantity, product.stock)

        totals = calculate_order_totals(
            (products[pid].price, qty) for pid, qty in requested.items()
        )

        card = data.payment_info.model_dump() if data.payment_info else {}
        try:
            payment = await PaymentService.authorize_checkout(
                gateway, totals.total, data.payment_method, card, user.is_admin
            )
        except PaymentDeclined:
            ecomm_orders_created_total.labels(status="payment_failed").inc()
            raise

        shipping_address = data.shipping_address.model_dump()
        billing_address = data.billing_address.model_dump() if data.billing_address else dict(shipping_address)

        order = Order(
            order_number=await OrderRepository.next_order_number(db),
            user_id=user.id,
            customer_name=user.name or shipping_address["name"],
            customer_email=user.email or shipping_address.get("email"),
            placed_by_admin=user.is_admin,
            total_amount=totals.subtotal,
            shipping_cost=totals.shipping,
            tax_amount=totals.tax,
            final_amount=totals.total,
            status=payment.order_status,
            payment_status=payment.payment_status,
            payment_method=data.payment_method,
            shipping_address=shipping_address,
            billing_address=billing_address,
            notes=data.notes,
            items=[],
            tracking_updates=[],
        )
        for product_id, quantity in requested.items():
            product = products[product_id]
            order.items.append(OrderItem(
                product_id=product.id,
                quantity=quantity,
                price=product.price,
                name=product.name,
                image=product.primary_image,
            ))
            if not user.is_admin:
                try:
                    await ProductService.adjust_stock(db, product.id, -quantity, commit=False)
                except (BusinessRuleViolation, EntityNotFound):
                    # Stock moved while the gateway was authorizing. The port has
                    # no void, so the approved charge is logged for manual reversal.
                    await db.rollback()
                    ecomm_orders_created_total.labels(status="stock_conflict").inc()
                    logger.error(
                        "order_stock_changed_after_payment",
                        product_id=product_id,
                        quantity=quantity,
                        payment_status=payment.payment_status,
                        payment_reference=payment.result.reference if payment.result else None,
                        amount=totals.total,
                    )
                    raise

        db.add(order)
        if payment.result is not None:
            PaymentService.record_payment(
                db, order.order_number, totals.total, data.payment_method, payment.result
            )
        await db.commit()

        ecomm_orders_created_total.labels(status="created").inc()
        logger.info(
            "order_created",
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
            final_amount=order.final_amount,
        )
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int, user: CurrentUser | None = None) -> Order:
        """Owner-scoped lookup; missing and foreign orders look the same."""
        owner = None if user is None or user.is_admin else user.id
        order = await OrderRepository.get_order(db, order_id, owner)
        if not order:
            raise EntityNotFound("Order")
        return order

    @staticmethod
    async def list_orders(db: AsyncSession, page: int = 1, limit: int = 10, status: str | None = None,
                          payment_status: str | None = None, start_date: datetime | None = None,
                          end_date: datetime | None = None, user_id: str | None = None):
        filters = []
        if user_id is not None:
            filters.append(Order.user_id == user_id)
        if status:
            filters.append(Order.status == status)
        if payment_status:
            filters.append(Order.payment_status == payment_status)
        if start_date:
            filters.append(Order.created_at >= start_date)
        if end_date:
            filters.append(Order.created_at <= end_date)

        orders, total = await OrderRepository.list_orders(db, filters, page, limit)
        return {
            "orders": orders,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if limit else 0,
            },
        }

    @staticmethod
    async def _restore_stock(db: AsyncSession, order: Order) -> None:
        if order.placed_by_admin:
            return
        for item in order.items:
            try:
                await ProductService.adjust_stock(db, item.product_id, item.quantity, commit=False)
            except EntityNotFound:
                logger.error("stock_restore_failed", order_number=order.order_number, product_id=item.product_id)
                await db.rollback()
                raise BusinessRuleViolation("Unable to restore stock for this order. Please contact support.")

    @staticmethod
    async def _mark_cancelled(db: AsyncSession, order: Order, reason: str | None, now: datetime) -> None:
        await OrderService._restore_stock(db, order)
        if order.payment_status == "paid":
            order.payment_status = "refunded"
            await PaymentService.mark_refunded(db, order.order_number)
        order.cancellation_reason = reason
        order.cancelled_at = now

    @staticmethod
    async def update_status(db: AsyncSession, order_id: int, data: OrderStatusUpdate,
                            broadcaster: BroadcastPort, now: datetime | None = None) -> Order:
        now = ensure_utc(now) or utcnow()
        order = await OrderService.get_order(db, order_id)

        change = ORDER_MACHINE.apply(
            order,
            data.status,
            message=f"Order status updated to {data.status}",
            location=data.location or DEFAULT_LOCATION,
            now=now,
        )
        if data.admin_notes:
            order.admin_notes = data.admin_notes
        if change.changed and change.current == "cancelled":
            await OrderService._mark_cancelled(db, order, data.admin_notes, now)

        await db.commit()

        await broadcaster.publish(
            order_channel(order.id),
            "orderStatusUpdate",
            _status_payload(order, f"Order status updated from {change.previous} to {change.current}", now),
        )
        return order

    @staticmethod
    async def update_tracking(db: AsyncSession, order_id: int, data: OrderTrackingPatch,
                              broadcaster: BroadcastPort, now: datetime | None = None) -> Order:
        order = await OrderService.get_order(db, order_id)

        if data.tracking_number:
            order.tracking_number = data.tracking_number
        if data.carrier:
            order.carrier = data.carrier
        if data.estimated_delivery:
            order.estimated_delivery = data.estimated_delivery

        update = None
        if data.status or data.message:
            update = append_tracking_event(
                order,
                status=data.status or order.status,
                message=data.message or "Tracking updated",
                location=data.location,
                now=now,
            )

        await db.commit()

        if update is not None:
            await broadcaster.publish(order_channel(order.id), "trackingUpdate", tracking_payload(order, update))
        return order

    @staticmethod
    async def edit_order(db: AsyncSession, user: CurrentUser, order_id: int, patch: OrderEdit,
                         now: datetime | None = None) -> Order:
        order = await OrderService.get_order(db, order_id, CurrentUser(id=user.id))
        ensure_self_service_allowed(order, EDITABLE_STATUSES, "edit order", now=now)

        if patch.shipping_address is not None:
            order.shipping_address = patch.shipping_address.model_dump()
        if patch.billing_address is not None:
            order.billing_address = patch.billing_address.model_dump()
        if patch.notes is not None:
            order.notes = patch.notes

        await db.commit()
        logger.info("order_edited", order_number=order.order_number)
        return order

    @staticmethod
    async def cancel_order(db: AsyncSession, user: CurrentUser, order_id: int, reason: str | None,
                           broadcaster: BroadcastPort, now: datetime | None = None) -> Order:
        now = ensure_utc(now) or utcnow()
        order = await OrderService.get_order(db, order_id, CurrentUser(id=user.id))
        ensure_self_service_allowed(order, CANCELLABLE_STATUSES, "cancel order", now=now)

        message = "Order cancelled by customer"
        if reason:
            message = f"{message}: {reason}"
        change = ORDER_MACHINE.apply(order, "cancelled", message=message, location=None, now=now)
        await OrderService._mark_cancelled(db, order, reason, now)

        await db.commit()
        logger.info("order_cancelled", order_number=order.order_number, previous=change.previous)

        await broadcaster.publish(
            order_channel(order.id),
            "orderStatusUpdate",
            _status_payload(order, f"Order status updated from {change.previous} to cancelled", now),
        )
        return order

    @staticmethod
    async def track_by_number(db: AsyncSession, number: str) -> dict:
        order = await OrderRepository.get_by_public_number(db, number.strip())
        if not order:
            raise EntityNotFound("Order")

        updates = [u.to_record() for u in order.tracking_updates]
        if not updates:
            updates = [{
                "status": "ordered",
                "message": "Order confirmed and payment received",
                "location": DEFAULT_LOCATION,
                "timestamp": ensure_utc(order.created_at).isoformat(),
                "completed": True,
            }]
        current_location = (
            order.tracking_updates[-1].location if order.tracking_updates else None
        ) or "Order Processing Center"

        address = order.shipping_address or {}
        return {
            "order_number": order.order_number,
            "status": order.status,
            "estimated_delivery": order.estimated_delivery.isoformat() if order.estimated_delivery else None,
            "current_location": current_location,
            "customer": {
                "name": order.customer_name,
                "email": order.customer_email,
                "phone": address.get("phone"),
            },
            "shipping_address": {
                "street": address.get("street"),
                "city": address.get("city"),
                "country": address.get("country"),
            },
            "items": [
                {
                    "id": item.id,
                    "name": item.name,
                    "quantity": item.quantity,
                    "price": f"€{item.price:.2f}",
                    "image": item.image,
                }
                for item in order.items
            ],
            "tracking": {
                "carrier": order.carrier or "Standard Shipping",
                "tracking_number": order.tracking_number or order.order_number,
                "updates": updates,
            },
        }

    @staticmethod
    async def stats(db: AsyncSession) -> dict:
        distribution = await OrderRepository.count_by_status(db)
        return {
            "total_orders": sum(distribution.values()),
            "pending_orders": distribution.get("pending", 0),
            "completed_orders": distribution.get("delivered", 0),
            "total_revenue": await OrderRepository.paid_revenue(db),
            "status_distribution": distribution,
        }
