import logging
from dataclasses import dataclass
from decimal import Decimal

from paypalcheckoutsdk.core import LiveEnvironment, PayPalHttpClient, SandboxEnvironment
from paypalcheckoutsdk.orders import OrdersCaptureRequest, OrdersCreateRequest, OrdersGetRequest
from paypalhttp.http_error import HttpError

from paypal_checkout.config import Settings
from paypal_checkout.errors import UpstreamFailure
from paypal_checkout.models import format_amount

logger = logging.getLogger(__name__)


def environment(settings: Settings):
    if settings.is_live:
        return LiveEnvironment(client_id=settings.client_id, client_secret=settings.client_secret)
    return SandboxEnvironment(client_id=settings.client_id, client_secret=settings.client_secret)


def _describe(exc: Exception) -> str:
    return getattr(exc, "message", None) or str(exc) or exc.__class__.__name__


@dataclass(frozen=True)
class PayPalGateway:
    """One processor client bound to one environment, shared by every request."""

    settings: Settings
    client: PayPalHttpClient

    @classmethod
    def from_settings(cls, settings: Settings) -> "PayPalGateway":
        return cls(settings=settings, client=PayPalHttpClient(environment(settings)))

    def _execute(self, request, failure: str):
        try:
            return self.client.execute(request).result
        except (HttpError, IOError) as exc:
            logger.error(f"{failure}: {_describe(exc)}")
            raise UpstreamFailure(failure, details=_describe(exc))

    def order_body(self, amount: Decimal, currency: str, description: str) -> dict:
        return {
            "intent": "CAPTURE",
            "purchase_units": [{
                "amount": {
                    "currency_code": currency,
                    "value": format_amount(amount),
                },
                "description": description,
            }],
            "application_context": {
                "brand_name": self.settings.brand_name,
                "landing_page": "NO_PREFERENCE",
                "user_action": "PAY_NOW",
                "return_url": self.settings.return_url,
                "cancel_url": self.settings.cancel_url,
            },
        }

    def create_order(self, amount: Decimal, currency: str = "USD", description: str = "Purchase") -> dict:
        request = OrdersCreateRequest()
        request.prefer("return=representation")
        request.request_body(self.order_body(amount, currency, description))

        result = self._execute(request, "Failed to create order")
        logger.info(f"Order created: {result.id} ({currency} {format_amount(amount)})")
        return {"orderID": result.id, "status": result.status}

    def capture_order(self, order_id: str) -> dict:
        # No local guard against repeated captures: every call reaches PayPal.
        request = OrdersCaptureRequest(order_id)
        request.request_body({})

        result = self._execute(request, "Failed to capture order")
        logger.info(f"Order captured: {result.id} status={result.status}")
        body = result.dict()
        return {
            "orderID": result.id,
            "status": result.status,
            "payer": body.get("payer"),
            "purchase_units": body.get("purchase_units"),
        }

    def get_order(self, order_id: str) -> dict:
        request = OrdersGetRequest(order_id)
        # Result.dict() is the JSON exactly as PayPal sent it.
        return self._execute(request, "Failed to get order details").dict()
