"""
Errors surfaced by the order gateway.

Both kinds are HTTPExceptions so FastAPI maps them to a status code; the
handler registered in main.py renders them as {"error": ..., "details": ...}.
"""
from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class GatewayError(HTTPException):
    def __init__(self, message: str, status_code: int, details: Optional[Any] = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidInput(GatewayError):
    """Request rejected before any processor call (400)."""

    def __init__(self, message: str = "Invalid amount", details: Optional[Any] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class UpstreamFailure(GatewayError):
    """Any processor or SDK failure: auth, network, or business rejection (500)."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR, details)


async def gateway_error_handler(request: Request, exc: GatewayError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # A body that does not parse (or an amount that is not a number) is
    # reported like any other invalid amount.
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    message = "Invalid amount" if any(f.endswith("amount") for f in fields) else "Invalid request"
    return await gateway_error_handler(request, InvalidInput(message, details=", ".join(fields) or None))
