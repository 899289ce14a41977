"""Backing-storage loaders for per-pair FX rates."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from holdings_engine.domain import ExchangeRate, FixedPointError, InvalidDateError, domain_parse_date, fixed_parse

FX_RATES_FILE_NAME = "rates.json"


class FxRateFileError(RuntimeError):
    """Raised when a rate file exists but cannot be read or validated."""


class FxRateLoaderPort(Protocol):
    """Port definition for reading all stored rates of one currency pair."""

    def fx_load_pair_rates(self, base_currency: str, quote_currency: str) -> list[ExchangeRate]:
        """Return every stored rate for one pair.

        Args:
            base_currency: Upper-case base currency code.
            quote_currency: Upper-case quote currency code.

        Returns:
            list[ExchangeRate]: Stored rates, empty when the pair has no data.

        Raises:
            FxRateFileError: Raised when stored data exists but is unreadable.
        """


class InMemoryFxRateLoader:
    """Loader over rates supplied up front, for tests and embedded callers."""

    def __init__(self, rates: Iterable[ExchangeRate] = ()):
        self._rates: dict[tuple[str, str], list[ExchangeRate]] = {}
        for rate in rates:
            key = (rate.base_currency.upper(), rate.quote_currency.upper())
            self._rates.setdefault(key, []).append(rate)

    def fx_load_pair_rates(self, base_currency: str, quote_currency: str) -> list[ExchangeRate]:
        return list(self._rates.get((base_currency, quote_currency), []))


class _FxRateFileRecord(BaseModel):
    """One newline-delimited JSON rate entry as stored on disk."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    date: str
    base_currency: str
    quote_currency: str
    rate: str
    source: str = ""

    @field_validator("rate", mode="before")
    @classmethod
    def _coerce_rate_text(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class DirectoryFxRateLoader:
    """Loader reading `{fx_dir}/{BASE}.{QUOTE}/rates.json` files.

    Each file holds one JSON object per line with `date` (`YYYY-MM-DD`),
    `base_currency`, `quote_currency`, `rate` and optional `source` keys.
    """

    def __init__(self, fx_dir: Path | str):
        """Initialize directory loader.

        Args:
            fx_dir: Root directory holding one sub-directory per pair.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when fx_dir is blank.
        """

        if not str(fx_dir).strip():
            raise ValueError("fx_dir must not be blank")
        self._fx_dir = Path(fx_dir)

    def fx_pair_file_path(self, base_currency: str, quote_currency: str) -> Path:
        return self._fx_dir / f"{base_currency}.{quote_currency}" / FX_RATES_FILE_NAME

    def fx_load_pair_rates(self, base_currency: str, quote_currency: str) -> list[ExchangeRate]:
        """Read and validate every rate entry of one pair file.

        Args:
            base_currency: Upper-case base currency code.
            quote_currency: Upper-case quote currency code.

        Returns:
            list[ExchangeRate]: Parsed rates, empty when the file does not exist.

        Raises:
            FxRateFileError: Raised when the file is unreadable, one entry is malformed,
                or an entry names a different currency pair than the file.
        """

        file_path = self.fx_pair_file_path(base_currency, quote_currency)
        if not file_path.is_file():
            return []

        try:
            file_text = file_path.read_text(encoding="utf-8")
        except OSError as error:
            raise FxRateFileError(f"cannot read fx rate file {file_path}: {error}") from error

        rates: list[ExchangeRate] = []
        for line_number, line in enumerate(file_text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                record = _FxRateFileRecord.model_validate(json.loads(line))
                rates.append(
                    ExchangeRate(
                        rate_date=domain_parse_date(record.date),
                        base_currency=record.base_currency.strip().upper(),
                        quote_currency=record.quote_currency.strip().upper(),
                        rate=fixed_parse(record.rate),
                        source=record.source,
                    )
                )
            except (json.JSONDecodeError, ValidationError, FixedPointError, InvalidDateError) as error:
                raise FxRateFileError(f"malformed fx rate entry {file_path}:{line_number}: {error}") from error
            record_pair = (rates[-1].base_currency, rates[-1].quote_currency)
            if record_pair != (base_currency.strip().upper(), quote_currency.strip().upper()):
                raise FxRateFileError(
                    f"fx rate entry {file_path}:{line_number} is for pair {record_pair[0]}.{record_pair[1]}"
                )
        return rates


__all__ = [
    "DirectoryFxRateLoader",
    "FX_RATES_FILE_NAME",
    "FxRateFileError",
    "FxRateLoaderPort",
    "InMemoryFxRateLoader",
]
