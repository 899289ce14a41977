"""Lazily loaded FX rate store and monetary conversion.

Rates are read per currency pair on first access and cached for the lifetime
of the store. A pair with no data is cached as `FxPairNotFound` so backing
storage is not read again. First-access loads are serialized by a lock; once a
pair state is cached it is never mutated in place, only replaced.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping, Union

from holdings_engine.domain import ExchangeRate, FixedDecimal, Money, fixed_multiply

from .loaders import FxRateFileError, FxRateLoaderPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FxPairKey:
    """Typed currency-pair key: one unit of base is quoted in quote currency."""

    base_currency: str
    quote_currency: str

    def __str__(self) -> str:
        return f"{self.base_currency}.{self.quote_currency}"


@dataclass(frozen=True)
class FxPairLoaded:
    """Loaded rate data for one pair.

    Attributes:
        rates: Rates keyed by rate date.
        latest_date: Most recent rate date.
        latest_rate: Rate on `latest_date`.
    """

    rates: Mapping[date, FixedDecimal] = field(hash=False)
    latest_date: date
    latest_rate: FixedDecimal


@dataclass(frozen=True)
class FxPairNotFound:
    """Backing storage has no rate data for the pair."""


@dataclass(frozen=True)
class FxPairNotYetLoaded:
    """The pair has not been requested yet."""


FxPairState = Union[FxPairLoaded, FxPairNotFound, FxPairNotYetLoaded]

_FX_PAIR_NOT_FOUND = FxPairNotFound()
_FX_PAIR_NOT_YET_LOADED = FxPairNotYetLoaded()


class FxRateStore:
    """Per-pair FX rate cache with conversion helpers."""

    def __init__(self, loader: FxRateLoaderPort, reporting_currency: str = "USD"):
        """Initialize rate store dependencies.

        Args:
            loader: Backing rate loader, consulted once per pair.
            reporting_currency: Default conversion target currency.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when loader or reporting currency is invalid.
        """

        if loader is None:
            raise ValueError("loader must not be None")
        normalized_currency = reporting_currency.strip().upper()
        if not normalized_currency:
            raise ValueError("reporting_currency must not be blank")

        self._loader = loader
        self._reporting_currency = normalized_currency
        self._lock = threading.Lock()
        self._pairs: dict[FxPairKey, FxPairLoaded | FxPairNotFound] = {}

    @property
    def reporting_currency(self) -> str:
        return self._reporting_currency

    def fx_pair_state(self, base_currency: str, quote_currency: str) -> FxPairState:
        """Return the cached state of one pair without triggering a load."""

        key = _fx_build_pair_key(base_currency, quote_currency)
        with self._lock:
            return self._pairs.get(key, _FX_PAIR_NOT_YET_LOADED)

    def fx_latest_rate(self, base_currency: str, quote_currency: str) -> ExchangeRate | None:
        """Return the most recent rate for a pair.

        Args:
            base_currency: Base currency code.
            quote_currency: Quote currency code.

        Returns:
            ExchangeRate | None: Latest rate, or None when the pair has no data.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        key = _fx_build_pair_key(base_currency, quote_currency)
        state = self._fx_load_pair(key)
        if not isinstance(state, FxPairLoaded):
            return None
        return ExchangeRate(
            rate_date=state.latest_date,
            base_currency=key.base_currency,
            quote_currency=key.quote_currency,
            rate=state.latest_rate,
        )

    def fx_rate_on(
        self,
        base_currency: str,
        quote_currency: str,
        on_date: date,
        fallback_to_latest: bool = False,
    ) -> FixedDecimal | None:
        """Return the rate for an exact date.

        Rates are never interpolated between adjacent dates.

        Args:
            base_currency: Base currency code.
            quote_currency: Quote currency code.
            on_date: Requested rate date.
            fallback_to_latest: Use the latest rate when the exact date is absent.

        Returns:
            FixedDecimal | None: Rate, or None when unavailable.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        state = self._fx_load_pair(_fx_build_pair_key(base_currency, quote_currency))
        if not isinstance(state, FxPairLoaded):
            return None
        rate = state.rates.get(on_date)
        if rate is None and fallback_to_latest:
            return state.latest_rate
        return rate

    def fx_convert(
        self,
        money: Money | None,
        target_currency: str | None = None,
        on_date: date | None = None,
        fallback_to_latest: bool = False,
    ) -> Money | None:
        """Convert a monetary amount into another currency.

        Same-currency conversion is an identity. Otherwise the amount is
        multiplied by the pair rate using the overflow-safe decomposition.

        Args:
            money: Amount to convert.
            target_currency: Target currency, defaults to the reporting currency.
            on_date: Rate date; the latest rate is used when None.
            fallback_to_latest: Use the latest rate when `on_date` has no rate.

        Returns:
            Money | None: Converted amount, or None when no usable (non-zero) rate exists.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if money is None:
            return None

        resolved_target = (target_currency or self._reporting_currency).strip().upper()
        source_currency = money.currency_code.strip().upper()
        if source_currency == resolved_target:
            return money

        if on_date is None:
            latest_rate = self.fx_latest_rate(source_currency, resolved_target)
            rate = latest_rate.rate if latest_rate is not None else None
        else:
            rate = self.fx_rate_on(source_currency, resolved_target, on_date, fallback_to_latest=fallback_to_latest)

        if rate is None or rate.is_zero():
            logger.debug("fx conversion unavailable pair=%s.%s date=%s", source_currency, resolved_target, on_date)
            return None
        return Money(currency_code=resolved_target, amount=fixed_multiply(money.amount, rate))

    def fx_convert_to_reporting(self, money: Money | None) -> Money | None:
        """Convert an amount into the reporting currency using the latest rate."""

        return self.fx_convert(money)

    def fx_convert_to_reporting_on(self, money: Money | None, on_date: date) -> Money | None:
        """Convert an amount into the reporting currency at the rate of `on_date`, else the latest rate."""

        return self.fx_convert(money, on_date=on_date, fallback_to_latest=True)

    def fx_supplement_rates(self, rates: Iterable[ExchangeRate]) -> int:
        """Merge externally fetched rates into the store.

        Rates are append-only: an existing (date, base, quote) entry is kept and
        the supplied duplicate ignored.

        Args:
            rates: Supplied rates.

        Returns:
            int: Number of rate entries added.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        rates_by_pair: dict[FxPairKey, list[ExchangeRate]] = {}
        for rate in rates:
            key = _fx_build_pair_key(rate.base_currency, rate.quote_currency)
            rates_by_pair.setdefault(key, []).append(rate)

        added_count = 0
        for key, pair_rates in rates_by_pair.items():
            self._fx_load_pair(key)
            with self._lock:
                current_state = self._pairs.get(key)
                merged_rates = dict(current_state.rates) if isinstance(current_state, FxPairLoaded) else {}
                for rate in pair_rates:
                    if rate.rate_date in merged_rates:
                        continue
                    merged_rates[rate.rate_date] = rate.rate
                    added_count += 1
                if merged_rates:
                    self._pairs[key] = _fx_build_loaded_state(merged_rates)
        return added_count

    def _fx_load_pair(self, key: FxPairKey) -> FxPairLoaded | FxPairNotFound:
        """Return the cached pair state, loading it from the loader on first access.

        Args:
            key: Currency pair key.

        Returns:
            FxPairLoaded | FxPairNotFound: Cached pair state.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        cached_state = self._pairs.get(key)
        if cached_state is not None:
            return cached_state

        with self._lock:
            cached_state = self._pairs.get(key)
            if cached_state is not None:
                return cached_state

            try:
                loaded_rates = self._loader.fx_load_pair_rates(key.base_currency, key.quote_currency)
            except FxRateFileError as error:
                logger.warning("failed to load fx rates pair=%s: %s", key, error)
                loaded_rates = []

            rates_by_date = {rate.rate_date: rate.rate for rate in loaded_rates}
            state: FxPairLoaded | FxPairNotFound
            if rates_by_date:
                state = _fx_build_loaded_state(rates_by_date)
            else:
                state = _FX_PAIR_NOT_FOUND
            logger.debug("loaded fx pair=%s entries=%d", key, len(rates_by_date))
            self._pairs[key] = state
            return state


def _fx_build_pair_key(base_currency: str, quote_currency: str) -> FxPairKey:
    return FxPairKey(
        base_currency=base_currency.strip().upper(),
        quote_currency=quote_currency.strip().upper(),
    )


def _fx_build_loaded_state(rates_by_date: dict[date, FixedDecimal]) -> FxPairLoaded:
    latest_date = max(rates_by_date)
    return FxPairLoaded(rates=rates_by_date, latest_date=latest_date, latest_rate=rates_by_date[latest_date])


__all__ = [
    "FxPairKey",
    "FxPairLoaded",
    "FxPairNotFound",
    "FxPairNotYetLoaded",
    "FxPairState",
    "FxRateStore",
]
