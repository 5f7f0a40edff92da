# automation_flows/config.py
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AUTOMATION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Automation Flow Builder"
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", description="console or json")

    storage_backend: str = Field(default="sqlite", description="memory or sqlite")
    database_url: str = Field(default="sqlite:///./automations.db")

    # Editor behaviour
    strict_editing: bool = Field(default=False)
    reject_multiple_triggers: bool = Field(default=False)
    default_split_ratio: int = Field(default=50)

    @field_validator("default_split_ratio")
    @classmethod
    def _clamp_split_ratio(cls, value: int) -> int:
        return max(1, min(99, value))

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return value


class Features:
    def __init__(self, settings: Settings):
        self._settings = settings

    @property
    def strict_editing(self) -> bool:
        return self._settings.strict_editing

    @property
    def reject_multiple_triggers(self) -> bool:
        return self._settings.reject_multiple_triggers

    @property
    def default_split_ratio(self) -> int:
        return self._settings.default_split_ratio


@lru_cache()
def get_settings() -> Settings:
    return Settings()


@lru_cache()
def get_features() -> Features:
    return Features(get_settings())
