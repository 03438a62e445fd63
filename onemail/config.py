from typing import Literal, Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_empty=True, extra="ignore"
    )
    PROJECT_NAME: str = "One Mail"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # Remote One Mail API
    ONEMAIL_BASE_URL: str = "https://api.onestop.bizdev.vn"
    ONEMAIL_API_KEY: Optional[SecretStr] = None

    # Seconds before an outgoing request is abandoned
    HTTP_TIMEOUT: float = 30.0

    # Defaults to <repo>/node_packages when unset
    NODE_PACKAGES_DIR: Optional[str] = None

    @field_validator("ONEMAIL_BASE_URL")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


settings = Settings()  # type: ignore
