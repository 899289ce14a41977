"""Typed interfaces for ledger-layer collaborators."""

from datetime import date
from typing import Protocol

from holdings_engine.domain import Money


class CurrencyConverterPort(Protocol):
    """Port definition for converting amounts into the reporting currency."""

    @property
    def reporting_currency(self) -> str:
        """Return the reporting currency code.

        Returns:
            str: Upper-case ISO currency code.

        Raises:
            RuntimeError: Raised when currency metadata is unavailable.
        """

    def fx_convert_to_reporting(self, money: Money | None) -> Money | None:
        """Convert one amount into the reporting currency.

        Args:
            money: Amount to convert.

        Returns:
            Money | None: Converted amount, or None when no usable rate exists.

        Raises:
            RuntimeError: This port signals unavailability with None rather than raising.
        """

    def fx_convert_to_reporting_on(self, money: Money | None, on_date: date) -> Money | None:
        """Convert one amount into the reporting currency at the rate of one date.

        Args:
            money: Amount to convert.
            on_date: Rate date; the latest rate applies when that date has none.

        Returns:
            Money | None: Converted amount, or None when no usable rate exists.

        Raises:
            RuntimeError: This port signals unavailability with None rather than raising.
        """
