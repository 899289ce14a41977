"""Symbol classification side-table and manual cash adjustments.

The classification file is YAML:

    version: v1
    symbols:
      - name: NET
        category: EQUITY
        type: STOCK
        sector: TECH
        geo: US
    cash_adjustments:
      - currency: USD
        amount: "1250.50"

It is consumed read-only by holdings assembly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from holdings_engine.domain import FixedDecimal, FixedPointError, fixed_parse

CLASSIFICATION_CONFIG_VERSION = "v1"


class ClassificationLoadError(ValueError):
    """Raised when the classification file cannot be read or validated."""


@dataclass(frozen=True)
class SymbolClassification:
    """Classification metadata for one symbol.

    Attributes:
        category: Asset category such as `EQUITY`.
        type: Asset type such as `STOCK` or `ETF`.
        sector: Sector such as `TECH`.
        geo: Geography such as `US` or `INTL`.
    """

    category: str = ""
    type: str = ""
    sector: str = ""
    geo: str = ""


@dataclass(frozen=True)
class ClassificationConfig:
    """Validated runtime classification configuration.

    Attributes:
        symbol_classifications: Classification per ticker symbol.
        cash_adjustments: Manual cash amount per currency code.
    """

    symbol_classifications: Mapping[str, SymbolClassification] = field(default_factory=dict)
    cash_adjustments: Mapping[str, FixedDecimal] = field(default_factory=dict)


class _ExternalSymbolConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    category: str = ""
    type: str = ""
    sector: str = ""
    geo: str = ""

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError("symbol name is required")
        return stripped_value


class _ExternalCashAdjustment(BaseModel):
    model_config = ConfigDict(extra="forbid")

    currency: str = Field(min_length=1)
    amount: str

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount_text(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class _ExternalClassificationConfig(BaseModel):
    """YAML-serializable classification file structure."""

    model_config = ConfigDict(extra="forbid")

    version: str
    symbols: list[_ExternalSymbolConfig] = Field(default_factory=list)
    cash_adjustments: list[_ExternalCashAdjustment] = Field(default_factory=list)

    @field_validator("version")
    @classmethod
    def _validate_version(cls, value: str) -> str:
        if value != CLASSIFICATION_CONFIG_VERSION:
            raise ValueError(f"unsupported config version {value!r}, must be {CLASSIFICATION_CONFIG_VERSION}")
        return value


def config_parse_classification(yaml_text: str) -> ClassificationConfig:
    """Parse and validate classification YAML text.

    Args:
        yaml_text: YAML document text.

    Returns:
        ClassificationConfig: Validated runtime classification.

    Raises:
        ClassificationLoadError: Raised when YAML is malformed or violates the schema.
    """

    try:
        raw_document = yaml.safe_load(yaml_text)
    except yaml.YAMLError as error:
        raise ClassificationLoadError(f"classification file is not valid YAML: {error}") from error

    if not isinstance(raw_document, dict):
        raise ClassificationLoadError("classification file must contain a mapping at the top level")

    try:
        external_config = _ExternalClassificationConfig.model_validate(raw_document)
    except ValidationError as error:
        raise ClassificationLoadError(f"classification file validation failed: {error}") from error

    return _config_build_classification(external_config)


def config_load_classification(file_path: Path | str) -> ClassificationConfig:
    """Read and validate a classification file.

    Args:
        file_path: Path to the YAML classification file.

    Returns:
        ClassificationConfig: Validated runtime classification.

    Raises:
        ClassificationLoadError: Raised when the file is unreadable or invalid.
    """

    try:
        yaml_text = Path(file_path).read_text(encoding="utf-8")
    except OSError as error:
        raise ClassificationLoadError(f"cannot read classification file {file_path}: {error}") from error
    return config_parse_classification(yaml_text)


def _config_build_classification(external_config: _ExternalClassificationConfig) -> ClassificationConfig:
    """Build runtime classification, rejecting duplicate symbols and currencies.

    Raises:
        ClassificationLoadError: Raised when a symbol or currency repeats or an amount does not parse.
    """

    symbol_classifications: dict[str, SymbolClassification] = {}
    for symbol_config in external_config.symbols:
        if symbol_config.name in symbol_classifications:
            raise ClassificationLoadError(f"duplicate symbol name {symbol_config.name!r}")
        symbol_classifications[symbol_config.name] = SymbolClassification(
            category=symbol_config.category,
            type=symbol_config.type,
            sector=symbol_config.sector,
            geo=symbol_config.geo,
        )

    cash_adjustments: dict[str, FixedDecimal] = {}
    for adjustment in external_config.cash_adjustments:
        currency_code = adjustment.currency.strip().upper()
        if currency_code in cash_adjustments:
            raise ClassificationLoadError(f"duplicate cash adjustment currency {currency_code!r}")
        try:
            cash_adjustments[currency_code] = fixed_parse(adjustment.amount)
        except FixedPointError as error:
            raise ClassificationLoadError(f"invalid cash adjustment for {currency_code}: {error}") from error

    return ClassificationConfig(symbol_classifications=symbol_classifications, cash_adjustments=cash_adjustments)


__all__ = [
    "CLASSIFICATION_CONFIG_VERSION",
    "ClassificationConfig",
    "ClassificationLoadError",
    "SymbolClassification",
    "config_load_classification",
    "config_parse_classification",
]
