from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from shared.exceptions import DomainError, domain_error_handler
from shared.observability import setup_observability
from shared.security import limiter
from .router import router, admin_router, public_router
from .models import Order # Import to register with Base

order_app = FastAPI(title="Order Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(order_app, "order_service")

# --- SECURITY SETUP ---
order_app.state.limiter = limiter
order_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
order_app.add_exception_handler(DomainError, domain_error_handler)

order_app.include_router(public_router)
order_app.include_router(admin_router)
order_app.include_router(router)
