from .setup import setup_observability
from .metrics import (
    ecomm_orders_created_total,
    ecomm_payment_authorizations_total,
    ecomm_status_transitions_total,
    ecomm_stock_adjustments_total,
    ecomm_tracking_broadcasts_total,
    ecomm_simulator_advances_total,
    ecomm_tracking_subscribers
)
