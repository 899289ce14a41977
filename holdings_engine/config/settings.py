"""Typed runtime settings with dotenv support and startup validation."""

from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SettingsLoadError(RuntimeError):
    """Raised when runtime settings cannot be loaded or validated."""


class EngineSettings(BaseSettings):
    """Runtime settings for lot computation and holdings assembly.

    Environment variable names are the field names in uppercase with the
    `HOLDINGS_ENGINE_` prefix. Example: `reporting_currency` reads from
    `HOLDINGS_ENGINE_REPORTING_CURRENCY`.

    Attributes:
        reporting_currency: Currency that holdings values are converted into.
        fx_data_dir: Optional root directory of per-pair `rates.json` files.
        classification_file: Optional YAML symbol classification file.
        unmatched_sell_policy: `fail_fast` aborts on the first unmatched sell, `collect` reports and continues.
        long_term_holding_days: Day-count threshold for long-term holdings.
    """

    model_config = SettingsConfigDict(
        env_prefix="HOLDINGS_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    reporting_currency: str = Field(default="USD")
    fx_data_dir: Path | None = Field(default=None)
    classification_file: Path | None = Field(default=None)
    unmatched_sell_policy: Literal["fail_fast", "collect"] = Field(default="fail_fast")
    long_term_holding_days: int = Field(default=365, ge=1)

    @field_validator("reporting_currency")
    @classmethod
    def _validate_currency_code(cls, value: str) -> str:
        normalized_value = value.strip().upper()
        if len(normalized_value) != 3 or not normalized_value.isalpha():
            raise ValueError("reporting_currency must be a three-letter currency code")
        return normalized_value

    @field_validator("unmatched_sell_policy", mode="before")
    @classmethod
    def _normalize_policy(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


def config_load_settings() -> EngineSettings:
    """Load and validate runtime settings from environment and dotenv.

    Returns:
        EngineSettings: Validated runtime settings object.

    Raises:
        SettingsLoadError: Raised when settings are invalid.
    """

    try:
        return EngineSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Startup configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error
