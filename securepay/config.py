import os
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH)


SUCCESS_RATE = 0.75
MAX_AMOUNT = Decimal("100000")
TRANSACTION_PREFIX = "HD"
TOKEN_TTL_HOURS = 24


@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_ttl_hours: int = TOKEN_TTL_HOURS
    payment_success_rate: float = SUCCESS_RATE
    payment_max_amount: Decimal = MAX_AMOUNT
    transaction_prefix: str = TRANSACTION_PREFIX
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL is not set. Check your .env file.")

        jwt_secret = os.getenv("JWT_SECRET")
        if not jwt_secret:
            raise RuntimeError("JWT_SECRET is not set. Check your .env file.")

        return cls(
            database_url=database_url,
            jwt_secret=jwt_secret,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            token_ttl_hours=int(os.getenv("TOKEN_TTL_HOURS", TOKEN_TTL_HOURS)),
            payment_success_rate=float(os.getenv("PAYMENT_SUCCESS_RATE", SUCCESS_RATE)),
            payment_max_amount=Decimal(os.getenv("PAYMENT_MAX_AMOUNT", MAX_AMOUNT)),
            transaction_prefix=os.getenv("TRANSACTION_PREFIX", TRANSACTION_PREFIX),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
