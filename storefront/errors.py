# storefront/errors.py
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logger import logger


class StoreNotProvisioned(Exception):
    """Raised when a backing table is missing instead of leaking a driver error."""

    def __init__(self, table: str, cause: Exception | None = None) -> None:
        self.table = table
        self.message = (
            f"Backing store is not provisioned: table '{table}' is missing. "
            "Run `python -m storefront.seed_db` (or create the tables) and retry."
        )
        super().__init__(self.message)
        self.__cause__ = cause


class TicketConflict(Exception):
    """A ticket write lost to a concurrent one, or the ticket no longer allows it."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def error_body(message: str) -> dict:
    return {"error": message, "message": message}


async def http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    detail = getattr(exc, "detail", None) or "Request failed"
    status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(
        status_code=status_code,
        content=error_body(str(detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    missing = []
    if isinstance(exc, RequestValidationError):
        missing = [str(err["loc"][-1]) for err in exc.errors() if err.get("type") == "missing"]
    message = f"Missing required fields: {', '.join(missing)}" if missing else "Invalid request body"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(message))


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"[STORE] {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(str(exc)),
    )


async def conflict_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.info(f"[TICKETS] conflict on {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=error_body(str(exc)))


async def general_500_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"[APP] unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error"),
    )


EXCEPTION_HANDLERS = {
    StarletteHTTPException: http_error_handler,
    RequestValidationError: validation_error_handler,
    StoreNotProvisioned: store_error_handler,
    TicketConflict: conflict_handler,
    Exception: general_500_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
