import os
from dataclasses import dataclass, field


def _env(name: str, default: str) -> str:
    return os.environ.get(name, default)


@dataclass(frozen=True)
class AppConfig:
    # Storage
    DATABASE_URL: str = field(default_factory=lambda: _env("DATABASE_URL", "sqlite:///storefront.db"))

    # HTTP
    PORT: int = field(default_factory=lambda: int(_env("PORT", "8000")))
    CORS_ORIGINS: str = field(default_factory=lambda: _env("CORS_ORIGINS", "*"))

    # Logging
    LOG_LEVEL: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO").upper())

    # Orders
    ORDER_NUMBER_PREFIX: str = field(default_factory=lambda: _env("ORDER_NUMBER_PREFIX", "PED"))


def load_config() -> AppConfig:
    """
    Builds a configuration snapshot from the current process environment.

    Returns:
        An immutable AppConfig instance.
    """
    return AppConfig()


config = load_config()
