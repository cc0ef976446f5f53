# barberbook/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from barberbook.db import init_db
from barberbook.errors import BookingError, Conflict, Forbidden, Internal, InvalidRequest, NotFound
from barberbook.logging_config import configure_logging
from barberbook.routers import (
    auth_routes,
    blocks_routes,
    loyalty_routes,
    reservations_routes,
    users_routes,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    yield


app = FastAPI(title="barberbook", lifespan=lifespan)

app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(blocks_routes.router)
app.include_router(reservations_routes.router)
app.include_router(loyalty_routes.router)


HTTP_KINDS = {
    400: InvalidRequest.kind,
    401: "unauthorized",
    403: Forbidden.kind,
    404: NotFound.kind,
    405: "method_not_allowed",
    409: Conflict.kind,
}


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.kind}: {exc.message}", extra={"request_path": request.url.path})
    return JSONResponse(
        status_code=exc.status_code,
        content={"kind": exc.kind, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query parameters are invalid requests, not 422s."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=InvalidRequest.status_code,
        content={
            "kind": InvalidRequest.kind,
            "message": message,
            "details": jsonable_encoder(errors),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"kind": HTTP_KINDS.get(exc.status_code, "http_error"), "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "Unhandled store error",
        extra={"request_path": request.url.path},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=Internal.status_code,
        content={"kind": Internal.kind, "message": "Server error. Please try again later."},
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}
