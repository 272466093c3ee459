"""Application configuration using pydantic-settings."""

from typing import Any

from pydantic import field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Load secret fields from the OS keychain via ``keyring``.

    Only fields whose uppercase name appears in
    :data:`~services.credential_manager.CREDENTIAL_KEYS` are looked up.
    All other fields return ``None`` so the next source in the chain
    handles them.
    """

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        env_name = field_name.upper()
        if env_name not in CREDENTIAL_KEYS:
            return None, field_name, False
        value = get_credential(env_name)
        return value, field_name, False

    def __call__(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        for field_name, field_info in self.settings_cls.model_fields.items():
            value, key, is_complex = self.get_field_value(field_info, field_name)
            if value is not None:
                d[key] = value
        return d


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            KeychainSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    # Database
    DATABASE_URL: str = "sqlite:///./analytics.db"

    # Bearer token verification (issued by the account service)
    AUTH_SECRET_KEY: str = ""
    AUTH_ALGORITHM: str = "HS256"

    # Review prompt thresholds
    REVIEW_TARGET_ACTIVITY_COUNT: int = 10
    REVIEW_MEANINGFUL_ACTIONS_THRESHOLD: int = 3
    REVIEW_PAGE_VIEW_THRESHOLD: int = 15
    REVIEW_ACTIVE_MINUTES_THRESHOLD: int = 30
    REVIEW_DISMISS_COOLDOWN_HOURS: int = 4
    REVIEW_MIN_DAYS_BETWEEN_PROMPTS: int = 7
    REVIEW_DEFAULT_REMIND_DAYS: int = 7
    REVIEW_FEATURED_LIMIT: int = 3

    # Rate limiting (per client IP)
    RATE_LIMIT_ENABLED: bool = True
    ACTIVITY_RATE_LIMIT: int = 10
    ACTIVITY_RATE_WINDOW_SECONDS: int = 60
    SUBMIT_RATE_LIMIT: int = 3
    SUBMIT_RATE_WINDOW_SECONDS: int = 3600

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    @field_validator("REVIEW_DEFAULT_REMIND_DAYS")
    @classmethod
    def validate_remind_days(cls, v: int) -> int:
        """Keep the default snooze inside the range the API accepts."""
        if not 1 <= v <= 365:
            raise ValueError(f"REVIEW_DEFAULT_REMIND_DAYS must be between 1 and 365, got {v}")
        return v

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()
