"""Configuration schema and validation using Pydantic.

Settings are read from ``CV_TAILOR_*`` environment variables (and an
optional ``.env`` file), with the provider-standard ``OPENAI_API_KEY`` and
``GEMINI_API_KEY`` accepted as fallbacks for the keys.
"""

from typing import Any, Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from cv_tailor.core.exceptions import ConfigurationError
from cv_tailor.core.types import ParseConfig, RetryPolicy

Provider = Literal["openai", "gemini"]

DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o-2024-08-06",
    "gemini": "gemini-2.0-flash",
}


class TailorSettings(BaseSettings):
    """Pydantic settings schema for the tailoring service.

    Handles validation, type coercion, and defaults for every field. The
    retry and parse fields are turned into ``RetryPolicy`` and
    ``ParseConfig`` value objects on demand.
    """

    model_config = SettingsConfigDict(
        env_prefix="CV_TAILOR_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_by_name=True,  # Allows TailorSettings(openai_api_key=...)
    )

    # --- Provider ---

    provider: Provider = Field(default="openai", description="LLM provider")
    model: str | None = Field(
        default=None,
        description="Model identifier; the provider default when unset",
    )
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("CV_TAILOR_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    gemini_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("CV_TAILOR_GEMINI_API_KEY", "GEMINI_API_KEY"),
    )
    request_timeout_s: float = Field(
        default=30.0, gt=0, description="Per-request network timeout"
    )

    # --- Retry ---

    max_retries: int = Field(default=3, ge=0)
    initial_delay_ms: int = Field(default=1000, gt=0)
    exponential_base: float = Field(default=2.0, gt=1)
    max_delay_ms: int = Field(default=30_000, gt=0)
    jitter: bool = True

    # --- Parsing ---

    parse_attempt_repair: bool = True
    parse_extract_from_markdown: bool = True
    parse_max_length: int = Field(default=100_000, gt=0)

    debug: bool = False

    @property
    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]

    def api_key(self) -> str:
        """Return the key for the configured provider.

        Raises:
            ConfigurationError: If the key is not configured.
        """
        secret = self.openai_api_key if self.provider == "openai" else self.gemini_api_key
        if secret is None or not secret.get_secret_value():
            env_var = "OPENAI_API_KEY" if self.provider == "openai" else "GEMINI_API_KEY"
            raise ConfigurationError(
                f"{env_var} is not configured. Set {env_var} (or "
                f"CV_TAILOR_{env_var}) in the environment or .env file."
            )
        return secret.get_secret_value()

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay_ms=self.initial_delay_ms,
            exponential_base=self.exponential_base,
            max_delay_ms=self.max_delay_ms,
            jitter=self.jitter,
        )

    def parse_config(self) -> ParseConfig:
        return ParseConfig(
            attempt_repair=self.parse_attempt_repair,
            extract_from_markdown=self.parse_extract_from_markdown,
            max_length=self.parse_max_length,
            debug=self.debug,
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain dictionary with secrets redacted, for audit logging."""
        data = self.model_dump()
        for key in ("openai_api_key", "gemini_api_key"):
            data[key] = "***" if data.get(key) else None
        data["model"] = self.resolved_model
        return data
