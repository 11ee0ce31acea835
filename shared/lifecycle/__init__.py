from .clock import ensure_utc, utcnow
from .engine import StatusChange, StatusMachine, append_tracking_event, ensure_self_service_allowed
from .models import TrackingUpdateMixin

__all__ = [
    "ensure_utc",
    "utcnow",
    "StatusChange",
    "StatusMachine",
    "append_tracking_event",
    "ensure_self_service_allowed",
    "TrackingUpdateMixin",
]
