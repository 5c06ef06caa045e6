import pytest
from fastapi.testclient import TestClient

from paypal_checkout.config import Settings
from paypal_checkout.main import create_app
from paypal_checkout.paypal_service import PayPalGateway


@pytest.fixture
def settings():
    return Settings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        mode="sandbox",
        port=3000,
    )


@pytest.fixture
def gateway(mocker):
    # Stands in for PayPal: every route reaches it through the dependency.
    return mocker.Mock(spec=PayPalGateway)


@pytest.fixture
def fastapi_app(settings, gateway):
    return create_app(settings, gateway=gateway)


@pytest.fixture
def client(fastapi_app):
    with TestClient(fastapi_app) as c:
        yield c
