"""Short-term versus long-term classification of unrealized lot gains.

The holding period is a plain day count between the lot open date and the
reference date: `days_held >= 365` is long-term. This is a simplified rule,
not the calendar anniversary test some jurisdictions apply, and is not a
tax-law guarantee.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Mapping

from holdings_engine.domain import (
    FIXED_ZERO,
    FixedDecimal,
    Money,
    TaxLot,
    domain_require_date,
    fixed_divide_int,
    fixed_multiply,
)

from .interfaces import CurrencyConverterPort

LONG_TERM_HOLDING_DAYS = 365

# Bond prices are quoted as a percentage of face value.
_BOND_PRICE_DIVISOR = 100


@dataclass(frozen=True)
class LotGainClassification:
    """Holding-period classification and unrealized P&L for one lot.

    Attributes:
        lot: Classified lot.
        days_held: Whole days between open date and reference date.
        is_long_term: Whether `days_held` reaches the long-term threshold.
        unrealized_pnl: Lot unrealized P&L in the reporting currency.
    """

    lot: TaxLot
    days_held: int
    is_long_term: bool
    unrealized_pnl: FixedDecimal

    @property
    def short_term_pnl(self) -> FixedDecimal:
        return FIXED_ZERO if self.is_long_term else self.unrealized_pnl

    @property
    def long_term_pnl(self) -> FixedDecimal:
        return self.unrealized_pnl if self.is_long_term else FIXED_ZERO


@dataclass(frozen=True)
class GainSplit:
    """Per-symbol unrealized P&L split into short-term and long-term buckets.

    Attributes:
        symbol: Ticker symbol.
        currency_code: Reporting currency.
        short_term: Sum of short-term lot P&L.
        long_term: Sum of long-term lot P&L.
    """

    symbol: str
    currency_code: str
    short_term: FixedDecimal
    long_term: FixedDecimal

    @property
    def total(self) -> FixedDecimal:
        return self.short_term + self.long_term


def ledger_days_held(open_date: date, as_of: date) -> int:
    """Return whole days between `open_date` and `as_of`.

    Raises:
        InvalidDateError: Raised when either value is not a calendar date.
    """

    domain_require_date(open_date, "open_date")
    domain_require_date(as_of, "as_of")
    return (as_of - open_date).days


def ledger_is_long_term(lot: TaxLot, as_of: date, threshold_days: int = LONG_TERM_HOLDING_DAYS) -> bool:
    """Return whether a lot has been held at least `threshold_days` as of `as_of`.

    Raises:
        InvalidDateError: Raised when the lot open date or `as_of` is not a calendar date.
    """

    return ledger_days_held(lot.open_date, as_of) >= threshold_days


def ledger_lot_unrealized_pnl(
    quantity: FixedDecimal,
    market_price: FixedDecimal,
    cost_basis_price: FixedDecimal,
    is_bond: bool = False,
) -> FixedDecimal:
    """Compute `(market_price - cost_basis_price) * quantity` at micro precision.

    Args:
        quantity: Lot quantity, or face value for bonds.
        market_price: Current per-unit price.
        cost_basis_price: Per-unit cost basis in the same currency as market_price.
        is_bond: Divide by 100 because bond prices are a percentage of face value.

    Returns:
        FixedDecimal: Unrealized P&L.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    pnl = fixed_multiply(quantity, market_price - cost_basis_price)
    if is_bond:
        pnl = fixed_divide_int(pnl, _BOND_PRICE_DIVISOR)
    return pnl


def ledger_classify_lot(
    lot: TaxLot,
    as_of: date,
    market_price: FixedDecimal,
    cost_basis_price: FixedDecimal,
    is_bond: bool = False,
    threshold_days: int = LONG_TERM_HOLDING_DAYS,
) -> LotGainClassification:
    """Classify one lot and attribute its unrealized P&L.

    Args:
        lot: Open tax lot.
        as_of: Reference date, typically today.
        market_price: Current price in the reporting currency.
        cost_basis_price: Lot cost basis in the reporting currency.
        is_bond: Whether the instrument is priced as a percentage of face value.
        threshold_days: Long-term threshold in days.

    Returns:
        LotGainClassification: Classification result.

    Raises:
        InvalidDateError: Raised when the lot open date or `as_of` is not a calendar date.
    """

    days_held = ledger_days_held(lot.open_date, as_of)
    return LotGainClassification(
        lot=lot,
        days_held=days_held,
        is_long_term=days_held >= threshold_days,
        unrealized_pnl=ledger_lot_unrealized_pnl(lot.quantity, market_price, cost_basis_price, is_bond),
    )


def ledger_split_gains(
    tax_lots: Iterable[TaxLot],
    market_prices: Mapping[str, Money],
    converter: CurrencyConverterPort,
    as_of: date,
    bond_symbols: frozenset[str] = frozenset(),
    threshold_days: int = LONG_TERM_HOLDING_DAYS,
) -> dict[str, GainSplit]:
    """Sum per-lot unrealized P&L into short-term and long-term buckets per symbol.

    Market prices and lot costs are converted into the reporting currency
    before the per-lot multiply. Symbols without a usable converted market
    price, and lots whose cost cannot be converted, are left out.

    Args:
        tax_lots: Open tax lots.
        market_prices: Current native-currency market price per symbol.
        converter: Reporting-currency converter.
        as_of: Reference date.
        bond_symbols: Symbols priced as a percentage of face value.
        threshold_days: Long-term threshold in days.

    Returns:
        dict[str, GainSplit]: Gain split per symbol with at least one classified lot.

    Raises:
        InvalidDateError: Raised when a lot open date or `as_of` is not a calendar date.
    """

    converted_prices: dict[str, FixedDecimal | None] = {}
    short_term_by_symbol: dict[str, FixedDecimal] = {}
    long_term_by_symbol: dict[str, FixedDecimal] = {}

    for lot in tax_lots:
        if lot.symbol not in converted_prices:
            converted_price = converter.fx_convert_to_reporting(market_prices.get(lot.symbol))
            converted_prices[lot.symbol] = (
                converted_price.amount if converted_price is not None and not converted_price.amount.is_zero() else None
            )
        market_price = converted_prices[lot.symbol]
        if market_price is None:
            continue

        converted_cost = converter.fx_convert_to_reporting(lot.cost_basis_money())
        if converted_cost is None:
            continue

        classification = ledger_classify_lot(
            lot=lot,
            as_of=as_of,
            market_price=market_price,
            cost_basis_price=converted_cost.amount,
            is_bond=lot.symbol in bond_symbols,
            threshold_days=threshold_days,
        )
        short_term_by_symbol[lot.symbol] = short_term_by_symbol.get(lot.symbol, FIXED_ZERO) + classification.short_term_pnl
        long_term_by_symbol[lot.symbol] = long_term_by_symbol.get(lot.symbol, FIXED_ZERO) + classification.long_term_pnl

    return {
        symbol: GainSplit(
            symbol=symbol,
            currency_code=converter.reporting_currency,
            short_term=short_term_by_symbol[symbol],
            long_term=long_term_by_symbol[symbol],
        )
        for symbol in sorted(short_term_by_symbol)
    }


__all__ = [
    "GainSplit",
    "LONG_TERM_HOLDING_DAYS",
    "LotGainClassification",
    "ledger_classify_lot",
    "ledger_days_held",
    "ledger_is_long_term",
    "ledger_lot_unrealized_pnl",
    "ledger_split_gains",
]
