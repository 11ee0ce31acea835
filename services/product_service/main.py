from fastapi import FastAPI
from shared.exceptions import DomainError, domain_error_handler
from shared.observability import setup_observability
from .router import router, internal_router, public_router
from .models import Product # Import to register with Base

product_app = FastAPI(
    title="Product Service",
    version="1.0.0"
)

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(product_app, "product_service")

product_app.add_exception_handler(DomainError, domain_error_handler)

product_app.include_router(public_router)
product_app.include_router(internal_router)
product_app.include_router(router)
