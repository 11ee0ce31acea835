"""Domain error taxonomy shared by every service.

Services raise these; each FastAPI sub-app installs ``domain_error_handler``
so routers do not translate them one by one.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse


class DomainError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "domain_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationFailed(DomainError):
    """Malformed or out-of-range input, rejected before persistence."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_failed"


class BusinessRuleViolation(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "business_rule_violation"


class InsufficientStockError(BusinessRuleViolation):
    code = "insufficient_stock"

    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for product {product_name}")


class EditWindowExpired(BusinessRuleViolation):
    code = "outside_edit_window"


class InvalidStatusTransition(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_status_transition"

    def __init__(self, entity: str, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move {entity} from '{current}' to '{requested}'")


class PaymentDeclined(DomainError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    code = "payment_failed"


class EntityNotFound(DomainError):
    # Same message whether the record is missing or owned by someone else
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )
