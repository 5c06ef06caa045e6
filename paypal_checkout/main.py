import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from paypal_checkout.config import Settings, configure_logging
from paypal_checkout.errors import GatewayError, gateway_error_handler, validation_error_handler
from paypal_checkout.paypal_service import PayPalGateway
from paypal_checkout.routes import router

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    logger.info(f"Server running on {settings.base_url}")
    logger.info(f"PayPal Mode: {settings.mode}")
    yield


def create_app(settings: Optional[Settings] = None, gateway: Optional[PayPalGateway] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings)

    app = FastAPI(title="PayPal Checkout Gateway", lifespan=lifespan)
    app.state.settings = settings
    app.state.gateway = gateway or PayPalGateway.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(router)

    # Return/cancel pages for the approval redirect; API routes match first.
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")
    return app


# uvicorn paypal_checkout.main:app
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
