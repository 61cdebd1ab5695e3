from functools import lru_cache

from pydantic import AliasChoices, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_ENVIRONMENTS = frozenset({"development", "dev", "local", "test"})
DEFAULT_VK_API_BASE = "https://api.vk.com/method"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    app_name: str = Field(default="vkbridge", validation_alias="APP_NAME")
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    vk_secret_key: SecretStr | None = Field(
        default=None,
        validation_alias="VK_SECRET_KEY",
    )
    vk_group_id: str | None = Field(default=None, validation_alias="VK_GROUP_ID")
    vk_confirmation: str | None = Field(default=None, validation_alias="VK_CONFIRMATION")
    vk_access_token: SecretStr | None = Field(
        default=None,
        validation_alias="VK_ACCESS_TOKEN",
    )
    vk_api_version: str = Field(default="5.131", validation_alias="VK_API_VERSION")
    vk_lang: str = Field(default="ru", validation_alias="VK_LANG")
    vk_api_base: str = Field(default=DEFAULT_VK_API_BASE, validation_alias="VK_API_BASE")
    vk_api_timeout_seconds: float = Field(
        default=10.0,
        validation_alias="VK_API_TIMEOUT_SECONDS",
        gt=0,
    )
    allow_insecure_vk_webhook: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "ALLOW_INSECURE_VK_WEBHOOK",
            "ALLOW_INSECURE_WEBHOOK",
        ),
    )

    @field_validator("vk_group_id", mode="before")
    @classmethod
    def normalize_group_id(cls, value: object) -> str | None:
        """VK sends numeric group ids; keep a string form for comparisons."""
        if value is None:
            return None
        normalized = str(value).strip()
        return normalized or None

    @field_validator("vk_api_base", mode="before")
    @classmethod
    def normalize_api_base(cls, value: str) -> str:
        """Strip the trailing slash so endpoint URLs join predictably."""
        return str(value).strip().rstrip("/")

    @model_validator(mode="after")
    def validate_vk_credentials(self) -> "Settings":
        """Require webhook and API credentials outside local environments."""
        environment = self.environment.strip().lower()
        if environment in LOCAL_ENVIRONMENTS:
            return self

        if self.vk_secret_key is None and not self.allow_insecure_vk_webhook:
            raise ValueError(
                "VK_SECRET_KEY is required outside development/local/test unless "
                "ALLOW_INSECURE_VK_WEBHOOK=true"
            )
        if self.vk_access_token is None:
            raise ValueError("VK_ACCESS_TOKEN is required outside development/local/test")
        return self

    @property
    def is_configured(self) -> bool:
        """Return whether the send API can be called at all."""
        token = self.vk_access_token.get_secret_value() if self.vk_access_token else ""
        return bool(token) and bool(self.vk_api_version)

    @property
    def secret_key(self) -> str | None:
        """Plain configured callback secret, if any."""
        if self.vk_secret_key is None:
            return None
        return self.vk_secret_key.get_secret_value()


@lru_cache
def get_settings() -> Settings:
    """Build settings from environment variables."""
    return Settings()
