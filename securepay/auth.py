import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, Request
from jose import JWTError, jwt
from passlib.context import CryptContext

from securepay.exceptions import NotAuthenticatedError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenIssuer:
    """Mints and validates HMAC-signed bearer tokens for a username."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(hours=24)):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, username: str) -> str:
        now = datetime.now(timezone.utc)
        claims = {"sub": username, "iat": now, "exp": now + self.ttl}
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def validate(self, token: str) -> Optional[str]:
        """Return the token subject, or None if the token is expired, malformed or forged."""
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except JWTError as exc:
            logger.debug("Rejected bearer token: %s", exc)
            return None
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            return None
        return subject


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def authenticate(
    authorization: Optional[str] = Header(None),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Optional[str]:
    """Resolve the caller from ``Authorization: Bearer <token>``; None means anonymous."""
    if not authorization:
        return None
    try:
        scheme, token = authorization.split()
    except ValueError:
        return None
    if scheme.lower() != "bearer":
        return None
    return issuer.validate(token)


def require_user(username: Optional[str] = Depends(authenticate)) -> str:
    if username is None:
        raise NotAuthenticatedError()
    return username
