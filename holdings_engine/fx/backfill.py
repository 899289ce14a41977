"""Planning and application of FX rate backfills for trade currencies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Protocol

from holdings_engine.domain import ExchangeRate, Trade

from .rate_store import FxRateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class FxRateRequest:
    """One (pair, date) rate that trades need but the store lacks.

    Attributes:
        base_currency: Trade currency.
        quote_currency: Target currency.
        rate_date: Trade date needing a rate.
    """

    base_currency: str
    quote_currency: str
    rate_date: date


class FxRateFetcherPort(Protocol):
    """Port definition for an external FX rate provider."""

    def fx_fetch_rates(
        self,
        base_currency: str,
        quote_currency: str,
        start_date: date,
        end_date: date,
    ) -> list[ExchangeRate]:
        """Fetch rates for one pair over an inclusive date range.

        Args:
            base_currency: Base currency code.
            quote_currency: Quote currency code.
            start_date: First date of the range.
            end_date: Last date of the range.

        Returns:
            list[ExchangeRate]: Rates the provider has for the range.

        Raises:
            ConnectionError: Raised when the provider is unreachable.
            TimeoutError: Raised when the provider does not respond in time.
        """


def fx_plan_missing_rates(
    trades: Iterable[Trade],
    store: FxRateStore,
    quote_currency: str | None = None,
) -> list[FxRateRequest]:
    """List (currency, date) rates referenced by trades but absent from the store.

    Args:
        trades: Trades whose currency and trade date need a rate.
        store: Rate store consulted for exact-date rates.
        quote_currency: Target currency, defaults to the store reporting currency.

    Returns:
        list[FxRateRequest]: Sorted, de-duplicated missing-rate requests.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    resolved_quote = (quote_currency or store.reporting_currency).strip().upper()
    requests: set[FxRateRequest] = set()
    for trade in trades:
        base_currency = trade.currency_code.strip().upper()
        if not base_currency or base_currency == resolved_quote:
            continue
        if store.fx_rate_on(base_currency, resolved_quote, trade.trade_date) is not None:
            continue
        requests.add(FxRateRequest(base_currency=base_currency, quote_currency=resolved_quote, rate_date=trade.trade_date))
    return sorted(requests)


def fx_backfill_missing_rates(
    store: FxRateStore,
    trades: Iterable[Trade],
    fetcher: FxRateFetcherPort,
    quote_currency: str | None = None,
) -> int:
    """Fetch missing trade-date rates from a supplementary provider into the store.

    One fetch is issued per pair covering the earliest to latest missing date.
    Provider failures are logged and skipped so one pair cannot block others.

    Args:
        store: Rate store to supplement.
        trades: Trades whose rates should be available.
        fetcher: External rate provider.
        quote_currency: Target currency, defaults to the store reporting currency.

    Returns:
        int: Number of rate entries added to the store.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    dates_by_pair: dict[tuple[str, str], list[date]] = {}
    for request in fx_plan_missing_rates(trades, store, quote_currency):
        dates_by_pair.setdefault((request.base_currency, request.quote_currency), []).append(request.rate_date)

    added_count = 0
    for (base_currency, resolved_quote), missing_dates in dates_by_pair.items():
        try:
            fetched_rates = fetcher.fx_fetch_rates(base_currency, resolved_quote, min(missing_dates), max(missing_dates))
        except (TimeoutError, ConnectionError, ValueError, RuntimeError) as error:
            logger.warning("failed to backfill fx rates pair=%s.%s: %s", base_currency, resolved_quote, error)
            continue
        added_count += store.fx_supplement_rates(fetched_rates)

    return added_count


__all__ = ["FxRateFetcherPort", "FxRateRequest", "fx_backfill_missing_rates", "fx_plan_missing_rates"]
