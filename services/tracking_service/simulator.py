"""
Demo tracking feed.

Every ``interval`` seconds the simulator picks up to ``batch_size`` orders that
are neither delivered nor cancelled and moves each one stage further along
``TRACKING_STAGES``. An order's position is the length of its tracking log.
It stands in for a carrier integration and can be switched off by config.
"""
import asyncio
import time
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker

from services.order_service.lifecycle import TRACKING_STAGES
from services.order_service.models import ORDER_STATUSES, TERMINAL_ORDER_STATUSES
from services.order_service.repository import OrderRepository
from services.order_service.service import tracking_payload
from shared.config.settings import TRACKING_SIMULATION_BATCH, TRACKING_SIMULATION_INTERVAL
from shared.lifecycle import append_tracking_event
from shared.observability import ecomm_simulator_advances_total

from .broadcaster import BroadcastPort, order_channel

logger = structlog.get_logger(__name__)

DEMO_CARRIER = "Demo Express"


def _is_ahead(stage_status: str, current: str) -> bool:
    # Carrier-only stages (in_transit, out_for_delivery) never move the order status
    if stage_status not in ORDER_STATUSES or current not in ORDER_STATUSES:
        return False
    return ORDER_STATUSES.index(stage_status) > ORDER_STATUSES.index(current)


class TrackingSimulator:
    def __init__(self, session_factory: async_sessionmaker, broadcaster: BroadcastPort,
                 interval: float = TRACKING_SIMULATION_INTERVAL,
                 batch_size: int = TRACKING_SIMULATION_BATCH,
                 stages=TRACKING_STAGES):
        self.session_factory = session_factory
        self.broadcaster = broadcaster
        self.interval = interval
        self.batch_size = batch_size
        self.stages = tuple(stages)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        logger.info("tracking_simulation_started", interval=self.interval, batch_size=self.batch_size)
        self._task = asyncio.create_task(self._run(), name="tracking-simulator")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("tracking_simulation_stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.tick()
            except Exception:
                logger.exception("tracking_simulation_tick_failed")

    async def tick(self, now: datetime | None = None) -> int:
        """Runs one simulation round and returns how many orders advanced."""
        async with self.session_factory() as db:
            order_ids = await OrderRepository.get_active_order_ids(db, self.batch_size)

        advanced = 0
        for order_id in order_ids:
            try:
                if await self.advance(order_id, now=now):
                    advanced += 1
            except Exception:
                # One broken order must not stall the rest of the batch
                ecomm_simulator_advances_total.labels(outcome="error").inc()
                logger.exception("tracking_simulation_order_failed", order_id=order_id)
        return advanced

    async def advance(self, order_id: int, now: datetime | None = None) -> bool:
        async with self.session_factory() as db:
            order = await OrderRepository.get_order(db, order_id)
            if order is None:
                return False
            # Picked up by tick() before a cancel or delivery landed
            if order.status in TERMINAL_ORDER_STATUSES:
                ecomm_simulator_advances_total.labels(outcome="terminal").inc()
                logger.info("tracking_simulation_order_closed", order_number=order.order_number, status=order.status)
                return False

            position = len(order.tracking_updates)
            if position >= len(self.stages):
                ecomm_simulator_advances_total.labels(outcome="exhausted").inc()
                logger.info("tracking_simulation_no_more_stages", order_number=order.order_number)
                return False
            stage = self.stages[position]

            if not order.tracking_number:
                order.tracking_number = f"TRK{int(time.time() * 1000)}"
            if not order.carrier:
                order.carrier = DEMO_CARRIER

            update = append_tracking_event(
                order, status=stage["status"], message=stage["message"], location=stage["location"], now=now
            )
            # The log still grows, but status only moves forward
            if _is_ahead(stage["status"], order.status):
                order.status = stage["status"]

            await db.commit()
            payload = tracking_payload(order, update)

        await self.broadcaster.publish(order_channel(order_id), "trackingUpdate", payload)
        ecomm_simulator_advances_total.labels(outcome="advanced").inc()
        logger.info("tracking_simulation_advanced", order_number=payload["orderNumber"], stage=stage["status"])
        return True
