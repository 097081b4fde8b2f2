import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from sqlalchemy.orm import Session

from securepay.auth import TokenIssuer, get_token_issuer, require_user
from securepay.database import get_db
from securepay.exceptions import InvalidPaymentStateError, PaymentNotFoundError
from securepay.ledger import PaymentLedger
from securepay.models import Payment
from securepay.payments import InvalidState, NotFound, PaymentEngine, PaymentResult
from securepay.schemas import (
    ErrorResponse,
    PaymentCreate,
    PaymentRead,
    UserCredentials,
    UserRead,
)
from securepay.users import CredentialStore

logger = logging.getLogger(__name__)

SERVICE_NAME = "Secure Payment Service"
SERVICE_VERSION = "1.0.0"

errors = {
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}

auth_router = APIRouter(prefix="/auth", tags=["auth"])
payments_router = APIRouter(
    prefix="/payments",
    tags=["payments"],
    dependencies=[Depends(require_user)],
    responses=errors,
)
info_router = APIRouter(dependencies=[Depends(require_user)])


def get_payment_engine(request: Request, db: Session = Depends(get_db)) -> PaymentEngine:
    settings = request.app.state.settings
    return PaymentEngine(
        PaymentLedger(db),
        outcome=request.app.state.payment_outcome,
        max_amount=settings.payment_max_amount,
        prefix=settings.transaction_prefix,
    )


def unwrap(result: PaymentResult) -> Payment:
    if isinstance(result, NotFound):
        raise PaymentNotFoundError(result.payment_id)
    if isinstance(result, InvalidState):
        raise InvalidPaymentStateError(result.payment_id, result.status.value)
    return result.payment


@auth_router.post("/register", response_model=UserRead, status_code=201, responses={409: {"model": ErrorResponse}})
def register(credentials: UserCredentials, db: Session = Depends(get_db)):
    logger.info("POST /auth/register - Registering user %s", credentials.username)
    return CredentialStore(db).register(credentials.username, credentials.password)


@auth_router.post("/login", response_class=PlainTextResponse, responses={401: {"model": ErrorResponse}})
def login(
    credentials: UserCredentials,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    logger.info("POST /auth/login - Login attempt for %s", credentials.username)
    user = CredentialStore(db).authenticate(credentials.username, credentials.password)
    return PlainTextResponse(issuer.issue(user.username))


@payments_router.post("", response_model=PaymentRead, status_code=201)
def create_payment(request: PaymentCreate, engine: PaymentEngine = Depends(get_payment_engine)):
    logger.info("POST /payments - Creating new payment")
    return engine.create(request.user_id, request.amount, request.currency, request.payment_method)


@payments_router.get("", response_model=List[PaymentRead])
def get_all_payments(engine: PaymentEngine = Depends(get_payment_engine)):
    logger.info("GET /payments - Fetching all payments")
    return engine.get_all()


@payments_router.get("/user/{user_id}", response_model=List[PaymentRead])
def get_payments_by_user(user_id: int, engine: PaymentEngine = Depends(get_payment_engine)):
    logger.info("GET /payments/user/%s - Fetching payments for user", user_id)
    return engine.get_by_user_id(user_id)


@payments_router.get("/{payment_id}", response_model=PaymentRead)
def get_payment(payment_id: int, engine: PaymentEngine = Depends(get_payment_engine)):
    logger.info("GET /payments/%s - Fetching payment", payment_id)
    return unwrap(engine.get_by_id(payment_id))


@payments_router.post("/{payment_id}/refund", response_model=PaymentRead)
def refund(payment_id: int, engine: PaymentEngine = Depends(get_payment_engine)):
    logger.info("POST /payments/%s/refund - Processing refund", payment_id)
    return unwrap(engine.refund(payment_id))


ENDPOINTS = {
    "Register": "POST /auth/register",
    "Login": "POST /auth/login",
    "Create Payment": "POST /payments",
    "Get All Payments": "GET /payments",
    "Get Payment by ID": "GET /payments/{id}",
    "Get Payments by User": "GET /payments/user/{userId}",
    "Refund Payment": "POST /payments/{id}/refund",
}

SECURITY = {
    "Password Encryption": "BCrypt",
    "Authentication": "JWT",
    "Session": "Stateless",
}

HOME_PAGE = """<!DOCTYPE html>
<html>
<head><title>{name}</title></head>
<body>
<h1>{name}</h1>
<p>Running | Version {version}</p>
<h2>API Endpoints</h2>
<ul>
{endpoints}
</ul>
<h2>Security</h2>
<ul>
{security}
</ul>
<p>Every route outside <code>/auth</code> needs <code>Authorization: Bearer &lt;token&gt;</code>
from <code>POST /auth/login</code>.</p>
</body>
</html>
"""


@info_router.get("/", response_class=HTMLResponse)
def home():
    page = HOME_PAGE.format(
        name=SERVICE_NAME,
        version=SERVICE_VERSION,
        endpoints="\n".join(
            f"<li><code>{route}</code> - {label}</li>" for label, route in ENDPOINTS.items()
        ),
        security="\n".join(f"<li>{key}: {value}</li>" for key, value in SECURITY.items()),
    )
    return HTMLResponse(page)


@info_router.get("/api")
def api_info():
    return {
        "application": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "Running",
        "endpoints": ENDPOINTS,
        "security": SECURITY,
    }
