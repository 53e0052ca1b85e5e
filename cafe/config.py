import os
from dataclasses import dataclass

from dotenv import load_dotenv

# constants
EXIT_CHOICE = 9
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_BCRYPT_ROUNDS = 12
DEFAULT_HISTORY_LIMIT = 5
NEW_ITEM_STATUS = "Hasn't started"
CENTS = "0.01"
MAX_AMOUNT = "99999999.99"

def _env_int(name: str, default: int) -> int:
    """read an int env var, falling back on junk"""
    raw = os.getenv(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        return default

def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    try:
        return float(raw) if raw else default
    except ValueError:
        return default

@dataclass(frozen=True)
class Settings:
    """runtime settings, pulled from the environment (and .env if present)"""
    db_password: str = ""
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    log_level: str = "WARNING"
    log_file: str | None = None
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    admin_login: str = "admin"
    admin_password: str = "admin"
    history_limit: int = DEFAULT_HISTORY_LIMIT

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            db_password=os.getenv("CAFE_DB_PASSWORD", ""),
            connect_timeout=_env_float("CAFE_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
            log_level=os.getenv("CAFE_LOG_LEVEL", "WARNING").upper(),
            log_file=os.getenv("CAFE_LOG_FILE") or None,
            # bcrypt refuses anything outside 4..31
            bcrypt_rounds=min(max(_env_int("CAFE_BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS), 4), 31),
            admin_login=os.getenv("CAFE_ADMIN_LOGIN", "admin"),
            admin_password=os.getenv("CAFE_ADMIN_PASSWORD", "admin"),
            history_limit=max(_env_int("CAFE_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT), 1),
        )
