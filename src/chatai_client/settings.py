from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://chatai.abstraxn.com/api/v1/chat/"


class ClientConfig(BaseSettings):
    """Connection settings, read from keyword arguments or ``CHATAI_*`` variables.

    ``log_level`` is not used by the client itself. Pass it to
    :func:`chatai_client.configure_logging` when the application wants the same
    source to drive the SDK's log output.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHATAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    api_key: str
    timeout_seconds: float = Field(default=30.0, gt=0)
    origin: str = "*"
    headers: dict[str, str] = Field(default_factory=dict)
    base_url: str = DEFAULT_BASE_URL
    log_level: str = "INFO"

    @field_validator("api_key")
    @classmethod
    def _api_key_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("API key is required")
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    def public_view(self) -> dict:
        return self.model_dump(exclude={"api_key"})
