from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel

CENTS = Decimal("0.01")


def format_amount(amount: Decimal) -> str:
    """Two-decimal string as the processor expects it ("10" -> "10.00")."""
    return str(Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP))


def to_cents(amount) -> Optional[Decimal]:
    """Amount rounded to cents, or None when it cannot be (too many digits, not a number)."""
    try:
        return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        return None


class OrderStatus(str, Enum):
    CREATED = "CREATED"
    APPROVED = "APPROVED"
    CAPTURED = "CAPTURED"


class Order(BaseModel):
    # Never persisted server-side; the id round-trips through the client.
    order_id: str
    amount: Decimal
    currency: str = "USD"
    description: str = "Purchase"
    status: OrderStatus = OrderStatus.CREATED


class CreateOrderRequest(BaseModel):
    amount: Optional[Decimal] = None
    currency: str = "USD"
    description: str = "Purchase"


class OrderCreated(BaseModel):
    orderID: str
    status: str


class OrderCaptured(BaseModel):
    orderID: str
    status: str
    payer: Optional[Any] = None
    purchase_units: Optional[List[Any]] = None


class Health(BaseModel):
    status: str = "OK"
    mode: str
