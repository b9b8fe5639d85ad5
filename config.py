import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv


def _origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass
class Settings:
    port: int = 8000
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "inventory"
    frontend_urls: List[str] = field(default_factory=lambda: ["*"])
    app_env: str = "development"
    jwt_secret: str = "dev-secret"
    jwt_alg: str = "HS256"
    token_expire_min: int = 60
    refresh_token_expire_days: int = 7

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


def load_settings() -> Settings:
    """Read settings from the environment (and a local .env if present)."""
    load_dotenv()
    return Settings(
        port=int(os.getenv("PORT", "8000")),
        database_url=os.getenv("DATABASE_URL", "mongodb://localhost:27017"),
        database_name=os.getenv("DATABASE_NAME", "inventory"),
        frontend_urls=_origins(os.getenv("FRONTEND_URLS", "*")),
        app_env=os.getenv("APP_ENV", "development"),
        jwt_secret=os.getenv("JWT_SECRET", "dev-secret"),
        token_expire_min=int(os.getenv("TOKEN_EXPIRE_MIN", "60")),
        refresh_token_expire_days=int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7")),
    )
