"""Runtime settings read from the environment.

Settings are loaded once and cached. Tests swap them with
``override_settings()`` and restore the defaults with ``reset_settings()``.
"""

import os
from dataclasses import dataclass, field, replace

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def _env_list(name: str) -> frozenset[str]:
    raw = os.getenv(name, "")
    return frozenset(part.strip().lower() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    log_level: str | None = None
    log_dir: str | None = "logs"
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    admin_emails: frozenset[str] = field(default_factory=frozenset)
    allow_unlisted_items: bool = False
    payment_success_rate: float = 0.9

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_deployed(self) -> bool:
        return self.environment in ("production", "staging")

    @classmethod
    def from_env(cls) -> "Settings":
        environment = (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()
        return cls(
            environment=environment,
            log_level=os.getenv("LOG_LEVEL"),
            log_dir=os.getenv("STOREFRONT_LOG_DIR", "logs") or None,
            jwt_secret=os.getenv("STOREFRONT_JWT_SECRET", "dev-secret-change-me"),
            jwt_algorithm=os.getenv("STOREFRONT_JWT_ALGORITHM", "HS256"),
            admin_emails=_env_list("STOREFRONT_ADMIN_EMAILS"),
            allow_unlisted_items=_env_flag("STOREFRONT_ALLOW_UNLISTED_ITEMS"),
            payment_success_rate=float(os.getenv("STOREFRONT_PAYMENT_SUCCESS_RATE", "0.9")),
        )


_current_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the active settings, loading them from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = Settings.from_env()
    return _current_settings


def override_settings(**changes) -> Settings:
    """Replace individual settings (useful for tests)."""
    global _current_settings
    _current_settings = replace(get_settings(), **changes)
    return _current_settings


def reset_settings() -> None:
    """Drop cached settings so the next read reloads the environment."""
    global _current_settings
    _current_settings = None
