"""
Pricing policy for checkout orders and sourcing requests.

Money is computed with ``Decimal`` and rounded half-up to cents, then handed
back as floats because that is what the ORM columns store.
"""
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Tuple

CENT = Decimal("0.01")

# Germany: 19% VAT on the goods, free shipping strictly above 50
TAX_RATE = Decimal("0.19")
FREE_SHIPPING_THRESHOLD = Decimal("50")
FLAT_SHIPPING = Decimal("9.99")

SERVICE_FEE_RATE = Decimal("0.15")
URGENCY_SHIPPING = {
    "low": Decimal("20"),
    "medium": Decimal("35"),
    "high": Decimal("55"),
}

_LEADING_NUMBER = re.compile(r"^\d*\.?\d*")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _dec(value) -> Decimal:
    return Decimal(str(value or 0))


@dataclass(frozen=True)
class OrderTotals:
    subtotal: float
    shipping: float
    tax: float
    total: float


@dataclass(frozen=True)
class RequestCosts:
    base_price: float
    service_fee: float
    shipping_cost: float
    total: float


def calculate_order_totals(lines: Iterable[Tuple[float, int]]) -> OrderTotals:
    """Totals for ``(unit_price, quantity)`` lines. Tax applies to goods only."""
    subtotal = _money(sum((_dec(price) * int(qty) for price, qty in lines), Decimal("0")))
    shipping = Decimal("0") if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING
    tax = _money(subtotal * TAX_RATE)
    total = subtotal + shipping + tax
    return OrderTotals(
        subtotal=float(subtotal),
        shipping=float(shipping),
        tax=float(tax),
        total=float(total),
    )


def order_final_amount(subtotal, shipping, tax) -> float:
    return float(_money(_dec(subtotal) + _dec(shipping) + _dec(tax)))


def parse_price(value) -> float:
    """Lenient price parsing for free-text prices such as ``"€1,299.99"``.

    Everything but digits and dots is dropped and the leading number is read,
    so unparseable input yields 0 rather than an error.
    """
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = re.sub(r"[^0-9.]", "", str(value or ""))
    match = _LEADING_NUMBER.match(cleaned).group(0)
    if match in ("", "."):
        return 0.0
    return float(match.rstrip(".") or 0)


def shipping_for_urgency(urgency: str) -> float:
    return float(URGENCY_SHIPPING.get(urgency, URGENCY_SHIPPING["low"]))


def calculate_request_costs(product_price, urgency: str) -> RequestCosts:
    """Sourcing requests pay a service fee and a flat urgency tier, no tax."""
    base = _money(_dec(parse_price(product_price)))
    fee = _money(base * SERVICE_FEE_RATE)
    shipping = URGENCY_SHIPPING.get(urgency, URGENCY_SHIPPING["low"])
    return RequestCosts(
        base_price=float(base),
        service_fee=float(fee),
        shipping_cost=float(shipping),
        total=float(base + fee + shipping),
    )


def request_total(base_price, shipping_cost, service_fee) -> float:
    return float(_money(_dec(base_price) + _dec(shipping_cost) + _dec(service_fee)))
