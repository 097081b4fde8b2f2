import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from securepay.auth import TokenIssuer
from securepay.config import Settings
from securepay.database import Base, build_engine, build_session_factory
from securepay.exceptions import PaymentServiceError, error_body
from securepay.payments import OutcomeStrategy, RandomOutcome
from securepay.routes import SERVICE_NAME, SERVICE_VERSION, auth_router, info_router, payments_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=app.state.engine)
    logger.info("%s %s started", SERVICE_NAME, SERVICE_VERSION)
    yield
    logger.info("%s shutting down", SERVICE_NAME)
    app.state.engine.dispose()


async def service_error_handler(request: Request, exc: PaymentServiceError):
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.status_code))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'][1:]) or 'body'}: {err['msg']}"
        for err in exc.errors()
    )
    logger.warning("%s %s -> 400: %s", request.method, request.url.path, details)
    return JSONResponse(status_code=400, content=error_body(f"Validation failed: {details}", 400))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body(str(exc), 500))


def create_app(settings: Optional[Settings] = None, outcome: Optional[OutcomeStrategy] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    app = FastAPI(title=SERVICE_NAME, version=SERVICE_VERSION, lifespan=lifespan)

    app.state.settings = settings
    app.state.engine = build_engine(settings.database_url)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.token_issuer = TokenIssuer(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(hours=settings.token_ttl_hours),
    )
    app.state.payment_outcome = outcome or RandomOutcome(settings.payment_success_rate)

    app.include_router(auth_router)
    app.include_router(payments_router)
    app.include_router(info_router)

    app.add_exception_handler(PaymentServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    return app


app = create_app()
