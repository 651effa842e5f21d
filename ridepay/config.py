import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"


@dataclass(frozen=True)
class Settings:
    database_url: str
    stripe_secret_key: str = ""
    stripe_api_version: str = "2024-06-20"
    currency: str = "usd"
    jwt_secret: str = ""
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Read the process configuration once, at startup."""
    # Force-load .env (Windows-safe, reload-safe)
    load_dotenv(dotenv_path=ENV_PATH)

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is not set. Check your .env file.")

    return Settings(
        database_url=database_url,
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY", ""),
        stripe_api_version=os.getenv("STRIPE_API_VERSION", "2024-06-20"),
        currency=os.getenv("STRIPE_CURRENCY", "usd"),
        jwt_secret=os.getenv("JWT_SECRET", ""),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
