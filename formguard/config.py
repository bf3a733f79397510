from dataclasses import dataclass
from functools import lru_cache
import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Invalid {name}: {raw!r}. Must be an integer")


def is_testing() -> bool:
    return os.getenv("TESTING", "").lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Settings:
    """CSRF token policy and session settings."""

    session_name: str = "default"
    input_name: str = "key-awesome"
    token_ttl: int = 0
    token_size: int = 64
    max_tokens: int = 5
    session_secret_key: str = ""


@lru_cache()
def get_settings() -> Settings:
    """Load settings from the environment (and a .env file if present)."""
    secret = os.getenv("SESSION_SECRET_KEY", "")
    if not secret:
        if not is_testing():
            raise ValueError("SESSION_SECRET_KEY must be set")
        secret = "testing-secret-key"

    return Settings(
        session_name=os.getenv("CSRF_SESSION_NAME", "default"),
        input_name=os.getenv("CSRF_INPUT_NAME", "key-awesome"),
        token_ttl=_int_env("CSRF_TOKEN_TTL", 0),
        token_size=_int_env("CSRF_TOKEN_SIZE", 64),
        max_tokens=_int_env("CSRF_MAX_TOKENS", 5),
        session_secret_key=secret,
    )
