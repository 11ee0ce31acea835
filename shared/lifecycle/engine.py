"""
Status transition engine shared by orders and sourcing requests.

A ``StatusMachine`` owns one entity type's status set and transition table.
Applying a change sets the status, stamps first-reached timestamps and appends
exactly one event to the entity's tracking log. Publishing the change is left
to the caller, which must do it after the write is committed.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Mapping

import structlog

from shared.config.settings import EDIT_WINDOW_MINUTES, STRICT_STATUS_TRANSITIONS
from shared.exceptions import BusinessRuleViolation, EditWindowExpired, InvalidStatusTransition, ValidationFailed
from shared.observability import ecomm_status_transitions_total

from .clock import ensure_utc, utcnow

logger = structlog.get_logger(__name__)


@dataclass
class StatusChange:
    previous: str
    current: str
    update: object

    @property
    def changed(self) -> bool:
        return self.previous != self.current


def append_tracking_event(entity, status: str, message: str, location: str | None = None,
                          now: datetime | None = None):
    """Appends one event to ``entity.tracking_updates`` and returns it.

    Timestamps never go backwards: an event stamped earlier than the last one
    in the log is clamped to the last timestamp.
    """
    timestamp = ensure_utc(now) or utcnow()
    updates = entity.tracking_updates
    if updates:
        last = ensure_utc(updates[-1].timestamp)
        if last and timestamp < last:
            timestamp = last

    update = entity.tracking_update_class(
        status=status,
        message=message,
        location=location,
        timestamp=timestamp,
    )
    updates.append(update)
    return update


class StatusMachine:
    def __init__(self, entity: str, statuses: Iterable[str], transitions: Mapping[str, Iterable[str]],
                 first_reached: Mapping[str, str] | None = None, strict: bool | None = None):
        self.entity = entity
        self.statuses = frozenset(statuses)
        self.transitions = {k: frozenset(v) for k, v in transitions.items()}
        self.first_reached = dict(first_reached or {})
        self.strict = STRICT_STATUS_TRANSITIONS if strict is None else strict

        unknown = set(self.transitions) - self.statuses
        for targets in self.transitions.values():
            unknown |= set(targets) - self.statuses
        if unknown:
            raise ValueError(f"Unknown {entity} statuses in transition table: {sorted(unknown)}")

    def allowed_from(self, current: str) -> frozenset:
        if not self.strict:
            return self.statuses
        return self.transitions.get(current, frozenset()) | {current}

    def can_transition(self, current: str, new: str) -> bool:
        return new in self.statuses and new in self.allowed_from(current)

    def ensure_transition(self, current: str, new: str) -> None:
        if new not in self.statuses:
            raise ValidationFailed(f"Invalid {self.entity} status '{new}'")
        if not self.can_transition(current, new):
            raise InvalidStatusTransition(self.entity, current, new)

    def stamp(self, entity, status: str, now: datetime) -> None:
        field = self.first_reached.get(status)
        if field and getattr(entity, field) is None:
            setattr(entity, field, now)

    def apply(self, entity, new_status: str, message: str | None = None, location: str | None = None,
              now: datetime | None = None) -> StatusChange:
        """Validates and applies ``new_status`` to ``entity`` in memory."""
        previous = entity.status
        self.ensure_transition(previous, new_status)
        now = ensure_utc(now) or utcnow()

        entity.status = new_status
        self.stamp(entity, new_status, now)
        update = append_tracking_event(
            entity,
            status=new_status,
            message=message or f"{self.entity.capitalize()} status updated to {new_status}",
            location=location,
            now=now,
        )

        ecomm_status_transitions_total.labels(entity=self.entity, status=new_status).inc()
        logger.info("status_transition", entity=self.entity, previous=previous, status=new_status)
        return StatusChange(previous=previous, current=new_status, update=update)


def ensure_self_service_allowed(entity, allowed_statuses: Iterable[str], action: str,
                                now: datetime | None = None,
                                window_minutes: int = EDIT_WINDOW_MINUTES) -> None:
    """Owner edits and cancellations are limited to a short window after creation."""
    now = ensure_utc(now) or utcnow()
    created_at = ensure_utc(entity.created_at)
    if now - created_at > timedelta(minutes=window_minutes):
        raise EditWindowExpired(
            f"Cannot {action}: outside edit window of {window_minutes} minutes"
        )
    allowed = set(allowed_statuses)
    if entity.status not in allowed:
        raise BusinessRuleViolation(
            f"Cannot {action} when status is '{entity.status}'"
        )
