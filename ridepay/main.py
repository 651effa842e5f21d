import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ridepay.config import Settings, load_settings
from ridepay.database import init_db, make_engine, make_session_factory
from ridepay.errors import GatewayError, StoreError, ValidationError
from ridepay.routes import router
from ridepay.stripe_service import StripeGateway

logger = logging.getLogger(__name__)

# Stripe statuses passed through to the client; anything else is an upstream failure
CLIENT_GATEWAY_STATUSES = (400, 402, 404)


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "kind": "invalid", "details": details},
    )


async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": exc.message, "kind": exc.kind, "details": exc.fields},
    )


async def gateway_error_handler(request: Request, exc: GatewayError):
    status = exc.http_status if exc.http_status in CLIENT_GATEWAY_STATUSES else 502
    return JSONResponse(
        status_code=status,
        content={"error": "Payment gateway error", "details": exc.message, "code": exc.code},
    )


async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "details": str(exc)},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "details": str(exc)},
    )


def create_app(settings: Settings = None) -> FastAPI:
    """Build the app with its Stripe gateway and database bound once.

    Run with ``uvicorn ridepay.main:create_app --factory``.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Ride Booking Payment Service")

    engine = make_engine(settings.database_url)
    init_db(engine)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.gateway = StripeGateway(
        api_key=settings.stripe_secret_key,
        api_version=settings.stripe_api_version,
        currency=settings.currency,
    )

    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)

    return app
