from shared.lifecycle import StatusMachine

from .models import ORDER_STATUSES

ORDER_TRANSITIONS = {
    "pending": {"confirmed", "processing", "cancelled"},
    "confirmed": {"processing", "shipped", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}

# Self-service actions owners may take inside the edit window
EDITABLE_STATUSES = {"pending"}
CANCELLABLE_STATUSES = {"pending", "confirmed"}

ORDER_MACHINE = StatusMachine("order", ORDER_STATUSES, ORDER_TRANSITIONS)

# Demo carrier feed replayed by the tracking simulator, one stage per tick
TRACKING_STAGES = (
    {"status": "confirmed", "message": "Order confirmed and being prepared", "location": "Processing Center"},
    {"status": "processing", "message": "Order is being processed", "location": "Fulfillment Center"},
    {"status": "shipped", "message": "Package has been shipped", "location": "Origin Hub"},
    {"status": "in_transit", "message": "Package is in transit", "location": "Transit Hub"},
    {"status": "out_for_delivery", "message": "Out for delivery", "location": "Local Delivery Center"},
    {"status": "delivered", "message": "Package delivered successfully", "location": "Customer Address"},
)
