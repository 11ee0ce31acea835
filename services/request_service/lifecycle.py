from shared.lifecycle import StatusMachine

from .models import REQUEST_STATUSES

REQUEST_TRANSITIONS = {
    "pending": {"reviewing", "approved", "rejected", "cancelled"},
    "reviewing": {"approved", "rejected", "cancelled"},
    "approved": {"processing", "ordered", "cancelled"},
    "processing": {"ordered", "cancelled"},
    "ordered": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "rejected": set(),
    "delivered": set(),
    "cancelled": set(),
}

FIRST_REACHED_FIELDS = {
    "approved": "approved_at",
    "processing": "processed_at",
    "ordered": "processed_at",
    "delivered": "delivered_at",
}

EDITABLE_STATUSES = {"pending"}
CANCELLABLE_STATUSES = {"pending"}

REQUEST_MACHINE = StatusMachine("request", REQUEST_STATUSES, REQUEST_TRANSITIONS, FIRST_REACHED_FIELDS)
