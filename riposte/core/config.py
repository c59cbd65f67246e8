from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide defaults, read from the environment (``RIPOSTE_*``) or ``.env``."""

    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)
    LOG_REQUEST_LEVEL: str | None = "trace"
    LOG_REPLY_LEVEL: str | None = "trace"
    LOG_ERROR_LEVEL: str | None = "error"

    # Serialization
    INCLUDE_STACK: bool | None = None  # None follows DEBUG
    DEFAULT_LOCALE: str | None = None

    @property
    def include_stack(self) -> bool:
        return self.DEBUG if self.INCLUDE_STACK is None else self.INCLUDE_STACK

    model_config = SettingsConfigDict(env_prefix="RIPOSTE_", env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()


class RiposteOptions(BaseModel):
    """Runtime option surface of a dispatcher.

    Accepted at construction and by ``Dispatcher.set``. Keys that are not
    fields here are silently dropped.
    """

    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True, validate_assignment=True)

    logger: Any = None
    translator: Any = None
    debug: bool = False
    default_locale: str | None = None

    log_request_level: str | None = "trace"
    log_reply_level: str | None = "trace"
    log_error_level: str | None = "error"

    default_create_client_error_options: dict = Field(default_factory=dict)
    default_create_error_options: dict = Field(default_factory=dict)
    default_create_ok_options: dict = Field(default_factory=dict)
    default_create_redirection_error_options: dict = Field(default_factory=dict)
    default_create_server_error_options: dict = Field(default_factory=dict)
    default_error_to_object_options: dict = Field(default_factory=dict)
    default_sanitize_reply_data_options: dict = Field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RiposteOptions":
        return cls(
            debug=settings.DEBUG,
            default_locale=settings.DEFAULT_LOCALE,
            log_request_level=settings.LOG_REQUEST_LEVEL,
            log_reply_level=settings.LOG_REPLY_LEVEL,
            log_error_level=settings.LOG_ERROR_LEVEL,
            default_error_to_object_options={"include_stack": settings.include_stack},
        )

    def merged(self, options: dict | None) -> "RiposteOptions":
        """Return a copy with ``options`` applied on top; unknown keys are ignored."""
        if not options:
            return self.model_copy()
        fields = type(self).model_fields
        current = {name: getattr(self, name) for name in fields}
        current.update((k, v) for k, v in options.items() if k in fields)
        return type(self)(**current)
