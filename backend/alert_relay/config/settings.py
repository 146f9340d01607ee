"""
PURPOSE: Configuration settings for Alert Relay.

This module uses Pydantic Settings to manage configuration from environment
variables and .env files. All settings are validated and typed.
"""

from typing import FrozenSet

from pydantic_settings import BaseSettings


def _split_csv(raw: str) -> FrozenSet[str]:
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


class Settings(BaseSettings):
    """
    PURPOSE: Central configuration class for Alert Relay.

    Manages the shared secret, queue and dedup sizing, channel allow-lists
    and rate limits. Settings are loaded from environment variables and
    .env file.
    """

    # Shared secret expected in the ?key= query parameter of every call
    SECRET_KEY: str = "change-me-in-production"

    # Queue & Dedup Configuration
    MAX_QUEUE: int = 200
    SEEN_TTL_SECONDS: float = 300.0
    CONTENT_DEDUP_WINDOW_SECONDS: float = 2.0
    CONTENT_DEDUP_PURGE_MULTIPLE: int = 5

    # Free-text Channel Configuration
    POSITION_COUNT: int = 3
    DEFAULT_SYMBOL: str = "GOLD"
    # Comma-separated; empty means every room / author is accepted
    C_ALLOWED_ROOMS: str = ""
    D_ALLOWED_AUTHORS: str = ""
    # Log every queued channel-c item at debug level
    DEBUG_C: bool = True

    # Rate Limits (slowapi syntax)
    WEBHOOK_RATE_LIMIT: str = "120/minute"
    READ_RATE_LIMIT: str = "600/minute"

    # System Settings
    APP_ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Default insecure values that must be changed for non-dev environments
    _INSECURE_DEFAULTS: dict[str, str] = {
        "SECRET_KEY": "change-me-in-production",
    }

    def is_production(self) -> bool:
        """
        PURPOSE: Determine whether the app is running in production mode.

        Returns:
            bool: True when APP_ENV indicates production.
        """
        return self.APP_ENV.strip().lower() in {"prod", "production"}

    def is_development(self) -> bool:
        """
        PURPOSE: Determine whether the app is running in development mode.

        Returns:
            bool: True when APP_ENV indicates development or debug is on.
        """
        return self.APP_ENV.strip().lower() in {"dev", "development"} or self.DEBUG

    def allowed_rooms_c(self) -> FrozenSet[str]:
        return _split_csv(self.C_ALLOWED_ROOMS)

    def allowed_authors_d(self) -> FrozenSet[str]:
        return _split_csv(self.D_ALLOWED_AUTHORS)

    def get_insecure_defaults(self) -> list[str]:
        """
        PURPOSE: Return list of settings that still use insecure default values.

        Returns:
            list[str]: Setting names that are still at their insecure defaults.
        """
        return [
            name for name, default_val in self._INSECURE_DEFAULTS.items()
            if getattr(self, name) == default_val
        ]

    def validate_credentials(self) -> None:
        """
        PURPOSE: Enforce that the shared secret is not left empty or at its default.

        CALLED BY: create_app()

        An empty SECRET_KEY is refused in every environment, otherwise a
        request without ?key= would authenticate. The placeholder default is
        refused outside development; in development it is only logged.

        Raises:
            ValueError: If the secret is empty, or a default in non-dev mode.
        """
        if not self.SECRET_KEY:
            raise ValueError("SECURITY: SECRET_KEY must not be empty.")

        insecure = self.get_insecure_defaults()
        if not insecure:
            return

        hint = (
            "Set these in your .env file or as environment variables:\n"
            + "\n".join(f"  {name}=<your-secure-value>" for name in insecure)
        )

        if not self.is_development():
            raise ValueError(
                f"SECURITY: Insecure default credentials detected for: "
                f"{', '.join(insecure)}.\n{hint}"
            )

    class Config:
        """Pydantic model configuration."""

        env_file: str = ".env"
        env_file_encoding: str = "utf-8"
        case_sensitive: bool = True


settings: Settings = Settings()
