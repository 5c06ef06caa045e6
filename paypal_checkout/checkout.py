"""
Checkout client: the payer-facing half of the flow.

Collects an amount, asks the gateway to create an order, sends the payer to
PayPal's approval page and, when PayPal redirects back with ``token`` and
``PayerID``, asks the gateway to capture. Everything the browser would do
(session storage, navigation, history, the message banner) goes through a
``Page`` so the same client runs under a terminal, a test, or a real UI.

State is an explicit variant::

    Idle -> AwaitingRedirect -> (navigated away to PayPal)
    Idle -> AwaitingCapture -> Done(success | error)

A failed creation returns to Idle. From Done the payer may start a new
payment or land on a return URL again. Nothing is retried automatically.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import MutableMapping, Optional, Protocol
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

import httpx

from paypal_checkout.models import Order, OrderStatus, to_cents

logger = logging.getLogger(__name__)

SESSION_KEYS = ("pendingOrderID", "orderAmount", "orderCurrency")

APPROVAL_HOSTS = {
    "sandbox": "https://www.sandbox.paypal.com",
    "live": "https://www.paypal.com",
}

SUCCESS_DISMISS_SECONDS = 5.0

INVALID_AMOUNT = "Please enter a valid amount"
CREATE_FAILED = "Payment failed. Please try again."
CAPTURE_FAILED = "Failed to complete payment. Please contact support."
CONNECTIVITY_ERROR = "Unable to connect to payment server. Please try again later."


@dataclass(frozen=True)
class Message:
    text: str
    kind: str = "error"

    @property
    def dismiss_after(self) -> Optional[float]:
        # Errors stay up until the next action.
        return SUCCESS_DISMISS_SECONDS if self.kind == "success" else None


class Page(Protocol):
    session: MutableMapping[str, str]

    def navigate(self, url: str) -> None: ...

    def replace_url(self, url: str) -> None: ...

    def show_message(self, message: Message) -> None: ...


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingRedirect:
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class AwaitingCapture:
    order_id: str
    payer_id: str


@dataclass(frozen=True)
class Done:
    success: bool
    message: str
    order: Optional[Order] = None


TRANSITIONS = {
    Idle: (AwaitingRedirect, AwaitingCapture),
    AwaitingRedirect: (Idle,),
    AwaitingCapture: (Done,),
    Done: (AwaitingRedirect, AwaitingCapture),
}


class InvalidTransition(RuntimeError):
    pass


class CheckoutError(Exception):
    """The gateway answered with a non-2xx status or a body that is not JSON."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def parse_amount(raw) -> Optional[Decimal]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def display_amount(raw) -> str:
    """What the amount display shows while the payer types."""
    cents = to_cents(parse_amount(raw) or 0)
    return str(cents) if cents is not None else "0.00"


def approval_url(order_id: str, mode: Optional[str] = None) -> str:
    host = APPROVAL_HOSTS.get(mode or "sandbox", APPROVAL_HOSTS["sandbox"])
    return f"{host}/checkoutnow?{urlencode({'token': order_id})}"


def _first(query: dict, key: str) -> Optional[str]:
    values = query.get(key) or [None]
    return values[0] or None


class GatewayClient:
    """Thin HTTP wrapper around the order gateway's JSON API."""

    def __init__(self, http: httpx.Client, api_base: str = "/api"):
        self.http = http
        self.api_base = api_base.rstrip("/")

    def _check(self, response: httpx.Response, default: str) -> dict:
        if response.is_success:
            try:
                return response.json()
            except ValueError:
                raise CheckoutError(default, response.status_code)
        try:
            message = response.json().get("error") or default
        except ValueError:
            message = default
        raise CheckoutError(message, response.status_code)

    def create_order(self, amount: Decimal, currency: str, description: str) -> str:
        response = self.http.post(
            f"{self.api_base}/orders",
            json={"amount": str(amount), "currency": currency, "description": description},
        )
        return self._check(response, "Failed to create order")["orderID"]

    def capture_order(self, order_id: str) -> dict:
        response = self.http.post(f"{self.api_base}/orders/{order_id}/capture")
        return self._check(response, "Failed to capture order")

    def health(self) -> dict:
        return self._check(self.http.get(f"{self.api_base}/health"), "Health check failed")


class CheckoutClient:

    def __init__(self, http: httpx.Client, page: Page, api_base: str = "/api"):
        self.gateway = GatewayClient(http, api_base)
        self.page = page
        self.state = Idle()
        self.mode: Optional[str] = None
        self.order: Optional[Order] = None

    @property
    def busy(self) -> bool:
        """Loading indicator on, submit disabled."""
        return isinstance(self.state, (AwaitingRedirect, AwaitingCapture))

    def _allowed(self, target: type) -> bool:
        return target in TRANSITIONS[type(self.state)]

    def _transition(self, new_state):
        if not self._allowed(type(new_state)):
            raise InvalidTransition(f"{type(self.state).__name__} -> {type(new_state).__name__}")
        logger.debug(f"{type(self.state).__name__} -> {new_state!r}")
        self.state = new_state

    def check_health(self) -> bool:
        try:
            self.mode = self.gateway.health().get("mode")
        except (CheckoutError, httpx.HTTPError) as exc:
            logger.error(f"Server not responding: {exc}")
            self.page.show_message(Message(CONNECTIVITY_ERROR))
            return False
        logger.info(f"Server status: OK (mode={self.mode})")
        return True

    def load(self, url: str):
        """Page load: ping the gateway, then capture if PayPal sent the payer back."""
        self.check_health()

        query = parse_qs(urlsplit(url).query)
        token = _first(query, "token")
        payer_id = _first(query, "PayerID")
        if token and payer_id:
            self.handle_return(url, token, payer_id)
        return self.state

    def submit(self, amount, currency: str = "USD", description: str = "Purchase"):
        if not self._allowed(AwaitingRedirect):
            raise InvalidTransition(f"cannot submit while {type(self.state).__name__}")

        value = to_cents(parse_amount(amount) or 0)
        if value is None or value <= 0:
            self.page.show_message(Message(INVALID_AMOUNT))
            return self.state

        self._transition(AwaitingRedirect(value, currency))
        try:
            order_id = self.gateway.create_order(value, currency, description)
        except (CheckoutError, httpx.HTTPError) as exc:
            logger.error(f"Create order error: {exc}")
            self._transition(Idle())
            self.page.show_message(Message(getattr(exc, "message", None) or CREATE_FAILED))
            return self.state

        logger.info(f"Order created: {order_id}")
        self.order = Order(order_id=order_id, amount=value, currency=currency, description=description)

        self.page.session["pendingOrderID"] = order_id
        self.page.session["orderAmount"] = str(amount)
        self.page.session["orderCurrency"] = currency
        self.page.navigate(approval_url(order_id, self.mode))
        return self.state

    def handle_return(self, url: str, order_id: str, payer_id: str):
        self._transition(AwaitingCapture(order_id, payer_id))
        try:
            capture = self.gateway.capture_order(order_id)
        except (CheckoutError, httpx.HTTPError) as exc:
            # Session data is left alone; there is no resume.
            logger.error(f"Capture order error: {exc}")
            self._transition(Done(success=False, message=CAPTURE_FAILED))
            self.page.show_message(Message(CAPTURE_FAILED))
            return self.state

        logger.info(f"Payment captured: {capture.get('orderID')}")
        units = capture.get("purchase_units") or [{}]
        paid = units[0].get("amount") or {}
        value = paid.get("value") or self.page.session.get("orderAmount")
        currency = paid.get("currency_code") or self.page.session.get("orderCurrency")

        for key in SESSION_KEYS:
            self.page.session.pop(key, None)

        self.order = Order(
            order_id=capture.get("orderID") or order_id,
            amount=parse_amount(value) or Decimal(0),
            currency=currency or "USD",
            status=OrderStatus.CAPTURED,
        )
        text = (
            f"Payment successful! Amount: {currency} {value}. "
            f"Transaction ID: {self.order.order_id}"
        )
        self._transition(Done(success=True, message=text, order=self.order))
        self.page.show_message(Message(text, kind="success"))

        parts = urlsplit(url)
        self.page.replace_url(urlunsplit((parts.scheme, parts.netloc, parts.path, "", "")))
        return self.state
