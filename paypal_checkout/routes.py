from fastapi import APIRouter, Depends, Request

from paypal_checkout.config import Settings
from paypal_checkout.errors import InvalidInput
from paypal_checkout.models import CreateOrderRequest, Health, OrderCaptured, OrderCreated, to_cents
from paypal_checkout.paypal_service import PayPalGateway

router = APIRouter(prefix="/api")


def get_gateway(request: Request) -> PayPalGateway:
    return request.app.state.gateway


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.post("/orders", response_model=OrderCreated)
def create_order_api(
    request: CreateOrderRequest,
    gateway: PayPalGateway = Depends(get_gateway)
):
    # Checked after rounding: PayPal only ever sees the two-decimal value.
    amount = to_cents(request.amount) if request.amount is not None else None
    if amount is None or amount <= 0:
        raise InvalidInput("Invalid amount")

    return gateway.create_order(amount, request.currency, request.description)


@router.post("/orders/{order_id}/capture", response_model=OrderCaptured)
def capture_order_api(order_id: str, gateway: PayPalGateway = Depends(get_gateway)):
    return gateway.capture_order(order_id)


@router.get("/orders/{order_id}")
def get_order_api(order_id: str, gateway: PayPalGateway = Depends(get_gateway)):
    return gateway.get_order(order_id)


@router.get("/health", response_model=Health)
def health(settings: Settings = Depends(get_settings)):
    return {"status": "OK", "mode": settings.mode}
