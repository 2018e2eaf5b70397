import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .instructions import DEFAULT_SYSTEM_INSTRUCTIONS, LANGUAGE_PLACEHOLDER
from .pipeline.providers import ProviderKind


CLOUDFLARE_BASE_URL_TEMPLATE = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/{model}"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1/chat/completions"


class Settings(BaseSettings):
    """Global configuration for the Iris backend."""

    provider: ProviderKind = ProviderKind.CLOUDFLARE

    cloudflare_account_id: str = Field(default_factory=lambda: os.getenv("CLOUDFLARE_ACCOUNT_ID", ""))
    cloudflare_model: str = "@cf/google/gemma-3-12b-it"
    cloudflare_base_url_template: str = CLOUDFLARE_BASE_URL_TEMPLATE
    cloudflare_api_key: str = Field(default_factory=lambda: os.getenv("CLOUDFLARE_API_KEY", ""))

    openrouter_base_url: str = OPENROUTER_BASE_URL
    openrouter_model: str = "google/gemma-3-12b-it"
    openrouter_api_key: str = Field(default_factory=lambda: os.getenv("OPENROUTER_API_KEY", ""))

    max_tokens: int = Field(default=1000, gt=0)
    request_timeout: float = Field(default=60.0, gt=0)
    image_scale: float = 0.5
    image_quality: float = 0.5
    locale: str = "en"
    system_instructions: str = DEFAULT_SYSTEM_INSTRUCTIONS

    model_config = SettingsConfigDict(env_prefix="IRIS_", extra="ignore")

    @field_validator("image_scale", "image_quality")
    @classmethod
    def validate_fraction(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError("Image scale and quality must be in (0, 1].")
        return value

    @field_validator("system_instructions")
    @classmethod
    def validate_instructions(cls, value: str) -> str:
        if LANGUAGE_PLACEHOLDER not in value:
            raise ValueError(f"System instructions must contain the {LANGUAGE_PLACEHOLDER} placeholder.")
        return value

    def provider_base_url(self) -> str:
        if self.provider is ProviderKind.OPENROUTER:
            return self.openrouter_base_url
        if not self.cloudflare_account_id:
            raise RuntimeError(
                "Cloudflare account id is unavailable. Set IRIS_CLOUDFLARE_ACCOUNT_ID or CLOUDFLARE_ACCOUNT_ID."
            )
        return self.cloudflare_base_url_template.format(
            account_id=self.cloudflare_account_id,
            model=self.cloudflare_model,
        )

    def provider_api_key(self) -> str:
        if self.provider is ProviderKind.OPENROUTER:
            return self.openrouter_api_key
        return self.cloudflare_api_key

    def provider_model(self) -> str | None:
        if not self.provider.sends_model_id:
            return None
        return self.openrouter_model


settings = Settings()  # type: ignore[call-arg]
