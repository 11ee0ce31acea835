from prometheus_client import Counter, Gauge

# Business Metrics
ecomm_orders_created_total = Counter(
    "ecomm_orders_created_total",
    "Orders submitted at checkout",
    ["status"] # Labels: 'created', 'payment_failed', 'rejected', 'stock_conflict'
)

ecomm_payment_authorizations_total = Counter(
    "ecomm_payment_authorizations_total",
    "Payment authorization attempts",
    ["outcome"] # Labels: 'approved', 'declined', 'error', 'bypassed'
)

ecomm_status_transitions_total = Counter(
    "ecomm_status_transitions_total",
    "Status changes applied by the lifecycle engine",
    ["entity", "status"]
)

ecomm_stock_adjustments_total = Counter(
    "ecomm_stock_adjustments_total",
    "Stock adjustments applied to products",
    ["direction"] # Labels: 'decrement', 'restore'
)

ecomm_tracking_broadcasts_total = Counter(
    "ecomm_tracking_broadcasts_total",
    "Events published on the tracking channel",
    ["event"]
)

ecomm_simulator_advances_total = Counter(
    "ecomm_simulator_advances_total",
    "Orders advanced by the tracking simulator",
    ["outcome"] # Labels: 'advanced', 'exhausted', 'terminal', 'error'
)

ecomm_tracking_subscribers = Gauge(
    "ecomm_tracking_subscribers",
    "Currently connected tracking subscribers"
)
