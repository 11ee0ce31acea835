from fastapi import FastAPI

from shared.exceptions import DomainError, domain_error_handler
from shared.observability.setup import setup_observability

from .models import Payment # Import to register with Base
from .router import router, public_router


payment_app = FastAPI(title="Payment Service", version="2.0.0")

setup_observability(payment_app, "payment_service")

payment_app.add_exception_handler(DomainError, domain_error_handler)

payment_app.include_router(router)
payment_app.include_router(public_router)
