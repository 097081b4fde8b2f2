import logging
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from securepay.auth import pwd_context
from securepay.exceptions import DuplicateUserError, InvalidCredentialsError
from securepay.models import User

logger = logging.getLogger(__name__)


class CredentialStore:
    """Username to password-hash records, backed by the ``users`` table."""

    def __init__(self, db: Session, hasher: CryptContext = pwd_context):
        self.db = db
        self.hasher = hasher

    def find_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter_by(username=username).first()

    def register(self, username: str, raw_password: str) -> User:
        if self.find_by_username(username) is not None:
            logger.warning("Registration rejected, username taken: %s", username)
            raise DuplicateUserError(username)

        user = User(username=username, password_hash=self.hasher.hash(raw_password))
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # another request registered the same name in between
            self.db.rollback()
            raise DuplicateUserError(username)
        self.db.refresh(user)

        logger.info("Registered user %s with ID: %s", username, user.id)
        return user

    def authenticate(self, username: str, raw_password: str) -> User:
        user = self.find_by_username(username)
        if user is None:
            logger.warning("Login failed, unknown user: %s", username)
            raise InvalidCredentialsError()
        if not self.hasher.verify(raw_password, user.password_hash):
            logger.warning("Login failed, bad password for user: %s", username)
            raise InvalidCredentialsError()
        return user
