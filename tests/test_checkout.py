import httpx
import pytest
from fastapi.testclient import TestClient

from paypal_checkout.checkout import (
    CAPTURE_FAILED,
    CONNECTIVITY_ERROR,
    INVALID_AMOUNT,
    AwaitingCapture,
    AwaitingRedirect,
    CheckoutClient,
    Done,
    Idle,
    InvalidTransition,
    approval_url,
    display_amount,
)
from paypal_checkout.config import Settings
from paypal_checkout.errors import UpstreamFailure
from paypal_checkout.main import create_app
from paypal_checkout.models import OrderStatus

ORDER_ID = "5O190127TN364715T"
RETURN_URL = f"http://localhost:3000/success.html?token={ORDER_ID}&PayerID=X"


class FakePage:
    """Records what a browser would have done."""

    def __init__(self, session=None):
        self.session = dict(session or {})
        self.navigations = []
        self.replaced = []
        self.messages = []

    def navigate(self, url):
        self.navigations.append((url, dict(self.session)))

    def replace_url(self, url):
        self.replaced.append(url)

    def show_message(self, message):
        self.messages.append(message)


def captured(order_id=ORDER_ID, currency="EUR", value="10.00"):
    return {
        "orderID": order_id,
        "status": "COMPLETED",
        "payer": {"payer_id": "X"},
        "purchase_units": [{"amount": {"currency_code": currency, "value": value}}],
    }


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def checkout(client, page):
    return CheckoutClient(client, page)


@pytest.mark.parametrize("raw, shown", [
    ("19.99", "19.99"),
    ("10", "10.00"),
    ("", "0.00"),
    ("abc", "0.00"),
    ("1e30", "0.00"),
])
def test_display_amount(raw, shown):
    assert display_amount(raw) == shown


def test_approval_url_follows_mode():
    assert approval_url(ORDER_ID, "sandbox") == f"https://www.sandbox.paypal.com/checkoutnow?token={ORDER_ID}"
    assert approval_url(ORDER_ID, "live") == f"https://www.paypal.com/checkoutnow?token={ORDER_ID}"
    assert approval_url(ORDER_ID) == f"https://www.sandbox.paypal.com/checkoutnow?token={ORDER_ID}"


def test_submit_redirects_to_sandbox_approval(checkout, page, gateway):
    gateway.create_order.return_value = {"orderID": ORDER_ID, "status": "CREATED"}

    checkout.load("http://localhost:3000/")
    state = checkout.submit("10", "EUR", "Concert ticket")

    assert isinstance(state, AwaitingRedirect)
    assert checkout.busy
    url, session_at_redirect = page.navigations[0]
    assert url == f"https://www.sandbox.paypal.com/checkoutnow?token={ORDER_ID}"
    assert session_at_redirect == {
        "pendingOrderID": ORDER_ID,
        "orderAmount": "10",
        "orderCurrency": "EUR",
    }
    assert checkout.order.status == OrderStatus.CREATED


def test_submit_uses_live_approval_page_in_live_mode(gateway, page):
    gateway.create_order.return_value = {"orderID": ORDER_ID, "status": "CREATED"}
    app = create_app(Settings(mode="live"), gateway=gateway)

    with TestClient(app) as c:
        checkout = CheckoutClient(c, page)
        checkout.load("http://localhost:3000/")
        checkout.submit("10", "EUR")

    assert page.navigations[0][0] == f"https://www.paypal.com/checkoutnow?token={ORDER_ID}"


def test_client_is_busy_while_order_is_created(checkout, gateway):
    seen = []

    def create_order(amount, currency, description):
        seen.append(checkout.busy)
        return {"orderID": ORDER_ID, "status": "CREATED"}

    gateway.create_order.side_effect = create_order

    checkout.submit("5")

    assert seen == [True]


@pytest.mark.parametrize("amount", ["", "0", "-3", "abc", None, "1e30", "0.004"])
def test_invalid_amount_is_rejected_locally(checkout, page, gateway, amount):
    state = checkout.submit(amount)

    assert isinstance(state, Idle)
    assert page.messages[-1].text == INVALID_AMOUNT
    assert page.navigations == []
    gateway.create_order.assert_not_called()


def test_create_failure_reenables_form(checkout, page, gateway):
    gateway.create_order.side_effect = UpstreamFailure("Failed to create order", details="boom")

    state = checkout.submit("25", "USD")

    assert isinstance(state, Idle)
    assert not checkout.busy
    assert page.messages[-1].text == "Failed to create order"
    assert page.messages[-1].dismiss_after is None
    assert page.navigations == []
    assert page.session == {}


def test_return_with_token_and_payer_captures(client, gateway):
    gateway.capture_order.return_value = captured()
    page = FakePage({"pendingOrderID": ORDER_ID, "orderAmount": "10", "orderCurrency": "EUR"})
    checkout = CheckoutClient(client, page)

    state = checkout.load(RETURN_URL)

    assert isinstance(state, Done) and state.success
    gateway.capture_order.assert_called_once_with(ORDER_ID)
    assert page.session == {}
    message = page.messages[-1]
    assert message.kind == "success"
    assert message.text == f"Payment successful! Amount: EUR 10.00. Transaction ID: {ORDER_ID}"
    assert message.dismiss_after == 5.0
    assert page.replaced == ["http://localhost:3000/success.html"]
    assert state.order.status == OrderStatus.CAPTURED
    assert not checkout.busy


def test_capture_failure_shows_support_message_and_keeps_session(client, gateway):
    gateway.capture_order.side_effect = UpstreamFailure("Failed to capture order", details="ORDER_NOT_APPROVED")
    stored = {"pendingOrderID": ORDER_ID, "orderAmount": "10", "orderCurrency": "EUR"}
    page = FakePage(stored)
    checkout = CheckoutClient(client, page)

    state = checkout.load(RETURN_URL)

    assert isinstance(state, Done) and not state.success
    assert page.messages[-1].text == CAPTURE_FAILED
    assert page.session == stored
    assert page.replaced == []


@pytest.mark.parametrize("url", [
    "http://localhost:3000/success.html",
    f"http://localhost:3000/success.html?token={ORDER_ID}",
    "http://localhost:3000/success.html?PayerID=X",
    "http://localhost:3000/success.html?token=&PayerID=X",
])
def test_capture_needs_both_token_and_payer(checkout, gateway, url):
    state = checkout.load(url)

    assert isinstance(state, Idle)
    gateway.capture_order.assert_not_called()


def test_capture_message_falls_back_to_session_amount(client, gateway):
    gateway.capture_order.return_value = {"orderID": ORDER_ID, "status": "COMPLETED", "purchase_units": []}
    page = FakePage({"pendingOrderID": ORDER_ID, "orderAmount": "12.50", "orderCurrency": "GBP"})

    CheckoutClient(client, page).load(RETURN_URL)

    assert page.messages[-1].text == f"Payment successful! Amount: GBP 12.50. Transaction ID: {ORDER_ID}"


def test_returning_twice_captures_twice(client, gateway):
    gateway.capture_order.return_value = captured()

    CheckoutClient(client, FakePage()).load(RETURN_URL)
    CheckoutClient(client, FakePage()).load(RETURN_URL)

    assert gateway.capture_order.call_count == 2


def test_unreachable_gateway_shows_connectivity_error_and_form_stays_usable(page):
    def handler(request):
        if request.url.path == "/api/health":
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"orderID": ORDER_ID, "status": "CREATED"})

    with httpx.Client(transport=httpx.MockTransport(handler), base_url="http://gateway.test") as http:
        checkout = CheckoutClient(http, page)
        state = checkout.load("http://localhost:3000/")

        assert isinstance(state, Idle)
        assert page.messages[-1].text == CONNECTIVITY_ERROR
        assert not checkout.busy

        checkout.submit("10", "EUR")

    assert page.navigations[0][0] == f"https://www.sandbox.paypal.com/checkoutnow?token={ORDER_ID}"


def test_gateway_error_body_is_shown(page):
    def handler(request):
        return httpx.Response(500, text="Internal Server Error")

    with httpx.Client(transport=httpx.MockTransport(handler), base_url="http://gateway.test") as http:
        CheckoutClient(http, page).submit("10")

    assert page.messages[-1].text == "Failed to create order"


def test_cannot_submit_while_capturing(checkout):
    checkout.state = AwaitingCapture(ORDER_ID, "X")

    with pytest.raises(InvalidTransition):
        checkout.submit("10")


def test_new_payment_after_done(client, gateway, page):
    gateway.capture_order.return_value = captured()
    gateway.create_order.return_value = {"orderID": "NEXT-ORDER", "status": "CREATED"}
    checkout = CheckoutClient(client, page)

    checkout.load(RETURN_URL)
    checkout.submit("3")

    assert isinstance(checkout.state, AwaitingRedirect)
    assert page.navigations[-1][0].endswith("token=NEXT-ORDER")


def test_non_json_health_reply_is_a_connectivity_error(page):
    def handler(request):
        if request.url.path == "/api/health":
            return httpx.Response(200, text="<html>not the gateway</html>")
        return httpx.Response(200, json={"orderID": ORDER_ID, "status": "CREATED"})

    with httpx.Client(transport=httpx.MockTransport(handler), base_url="http://gateway.test") as http:
        checkout = CheckoutClient(http, page)
        state = checkout.load("http://localhost:3000/")

        assert isinstance(state, Idle)
        assert page.messages[-1].text == CONNECTIVITY_ERROR

        checkout.submit("10")

    assert page.navigations[0][0].endswith(f"token={ORDER_ID}")


def test_loading_the_return_url_again_captures_again(client, gateway, page):
    gateway.capture_order.return_value = captured()
    checkout = CheckoutClient(client, page)

    checkout.load(RETURN_URL)
    state = checkout.load(RETURN_URL)

    assert isinstance(state, Done) and state.success
    assert gateway.capture_order.call_count == 2
