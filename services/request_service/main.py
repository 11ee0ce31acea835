from fastapi import FastAPI
from shared.exceptions import DomainError, domain_error_handler
from shared.observability import setup_observability
from .router import router, admin_router, public_router
from .models import ProductRequest # Import to register with Base

request_app = FastAPI(title="Request Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(request_app, "request_service")

request_app.add_exception_handler(DomainError, domain_error_handler)

request_app.include_router(public_router)
request_app.include_router(admin_router)
request_app.include_router(router)
