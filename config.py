"""
Application settings.

``Settings`` is built once at startup (see ``main.create_app``) and handed
to whatever needs it: the database layer, the token service, the CORS
middleware and the login cookie.  Nothing else reads the environment.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Default CORS allow-lists per deployment environment.
ALLOWED_ORIGINS: Dict[str, List[str]] = {
    "development": [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:3001",
        "http://127.0.0.1:5173",
    ],
    "staging": [
        "https://staging.example.com",
        "https://stage.example.com",
    ],
    "production": [
        "https://example.com",
        "https://www.example.com",
    ],
}


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime configuration for the API."""

    environment: str = "development"
    project_name: str = "Fashion Shop API"
    log_level: str = "INFO"
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "fashion_shop"
    server_selection_timeout_ms: int = 5000
    jwt_secret: str = "dev_secret"
    jwt_algorithm: str = "HS256"
    jwt_expires_days: int = 7
    bcrypt_rounds: int = 10
    product_id_retries: int = 3
    cors_origins: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.cors_origins:
            self.cors_origins = list(
                ALLOWED_ORIGINS.get(self.environment, ALLOWED_ORIGINS["development"])
            )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def token_max_age_seconds(self) -> int:
        return self.jwt_expires_days * 24 * 60 * 60

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Unset variables keep the dataclass defaults.  ``environ`` defaults
        to ``os.environ`` and exists so callers can pass a plain dict.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            environment=env.get("APP_ENV", defaults.environment).lower(),
            project_name=env.get("PROJECT_NAME", defaults.project_name),
            log_level=env.get("LOG_LEVEL", defaults.log_level),
            database_url=env.get("DATABASE_URL", defaults.database_url),
            database_name=env.get("DATABASE_NAME", defaults.database_name),
            server_selection_timeout_ms=int(
                env.get("DB_TIMEOUT_MS", defaults.server_selection_timeout_ms)
            ),
            jwt_secret=env.get("JWT_SECRET", defaults.jwt_secret),
            jwt_expires_days=int(env.get("JWT_EXPIRES_DAYS", defaults.jwt_expires_days)),
            bcrypt_rounds=int(env.get("BCRYPT_ROUNDS", defaults.bcrypt_rounds)),
            cors_origins=_split_csv(env.get("CORS_ORIGINS", "")),
        )
