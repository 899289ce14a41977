"""Holdings overview and lot list assembly from trades and reported positions."""
# pylint: disable=too-few-public-methods

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Sequence

from holdings_engine.config import ClassificationConfig, SymbolClassification
from holdings_engine.domain import (
    ASSET_CATEGORY_BOND,
    ASSET_CATEGORY_CASH,
    FIXED_ZERO,
    MICROS_FACTOR,
    CashPosition,
    ConversionUnavailable,
    FixedDecimal,
    Money,
    PositionDiscrepancy,
    RealizedGain,
    ReportedPosition,
    TaxLot,
    Trade,
    UnmatchedSell,
    fixed_divide_int,
    fixed_format_usd,
    fixed_multiply,
    fixed_sum,
)

from .fifo_engine import UnmatchedSellPolicy, ledger_compute_tax_lots
from .gains import LONG_TERM_HOLDING_DAYS, ledger_lot_unrealized_pnl, ledger_split_gains
from .interfaces import CurrencyConverterPort
from .positions import PositionAggregationKey, ledger_compute_positions
from .verification import ledger_verify_positions

logger = logging.getLogger(__name__)

_CASH_UNIT_PRICE = FixedDecimal(MICROS_FACTOR)


@dataclass(frozen=True)
class HoldingOverview:
    """One combined holding across accounts.

    Numeric fields are None when the value is unavailable, for example when no
    FX rate exists for the holding currency.

    Attributes:
        symbol: Ticker symbol, or currency code for cash rows.
        currency_code: Native currency of last and average price.
        last_price: Latest market price in native currency.
        average_price: Weighted-average cost basis in native currency.
        last_price_reporting: Last price in the reporting currency.
        average_price_reporting: Average price in the reporting currency.
        market_value_reporting: Position times reporting last price.
        unrealized_pnl_reporting: Sum of per-lot unrealized P&L in the reporting currency.
        realized_pnl_reporting: Sum of P&L realized by sells of the symbol, in the reporting currency,
            with proceeds at close-date rates and cost basis at open-date rates.
        short_term_gain_reporting: Unrealized P&L of lots held under the long-term threshold.
        long_term_gain_reporting: Unrealized P&L of lots held at least the long-term threshold.
        position: Total quantity held.
        category: Configured asset category.
        type: Configured asset type.
        sector: Configured sector.
        geo: Configured geography.
    """

    symbol: str
    currency_code: str
    last_price: FixedDecimal | None
    average_price: FixedDecimal | None
    last_price_reporting: FixedDecimal | None
    average_price_reporting: FixedDecimal | None
    market_value_reporting: FixedDecimal | None
    unrealized_pnl_reporting: FixedDecimal | None
    realized_pnl_reporting: FixedDecimal | None
    short_term_gain_reporting: FixedDecimal | None
    long_term_gain_reporting: FixedDecimal | None
    position: FixedDecimal
    category: str = ""
    type: str = ""
    sector: str = ""
    geo: str = ""


@dataclass(frozen=True)
class HoldingsResult:
    """Holdings overview plus advisory data-consistency findings.

    Attributes:
        holdings: Holdings, non-cash first, then by symbol.
        unmatched_sells: Sells that open lots could not satisfy (collect policy only).
        position_discrepancies: Computed-versus-reported position mismatches.
        conversion_unavailable: Values that could not be converted to the reporting currency.
    """

    holdings: tuple[HoldingOverview, ...]
    unmatched_sells: tuple[UnmatchedSell, ...]
    position_discrepancies: tuple[PositionDiscrepancy, ...]
    conversion_unavailable: tuple[ConversionUnavailable, ...]


@dataclass(frozen=True)
class HoldingsTotals:
    """Reporting-currency totals across holdings."""

    market_value: FixedDecimal
    unrealized_pnl: FixedDecimal
    short_term_gain: FixedDecimal
    long_term_gain: FixedDecimal

    def display_values(self) -> tuple[str, str, str, str]:
        """Return totals formatted as dollars rounded to cents."""
        return (
            fixed_format_usd(self.market_value),
            fixed_format_usd(self.unrealized_pnl),
            fixed_format_usd(self.short_term_gain),
            fixed_format_usd(self.long_term_gain),
        )


@dataclass(frozen=True)
class LotOverview:
    """One open lot with native and reporting-currency valuation.

    Attributes:
        account_id: Account holding the lot.
        open_date: Lot open date.
        quantity: Remaining lot quantity.
        currency_code: Native currency.
        average_price: Lot cost basis per unit in native currency.
        pnl: Unrealized P&L in native currency, None without a market price.
        value: Market value in native currency, None without a market price.
        average_price_reporting: Cost basis per unit in the reporting currency.
        pnl_reporting: Unrealized P&L in the reporting currency.
        value_reporting: Market value in the reporting currency.
    """

    account_id: str
    open_date: date
    quantity: FixedDecimal
    currency_code: str
    average_price: FixedDecimal
    pnl: FixedDecimal | None
    value: FixedDecimal | None
    average_price_reporting: FixedDecimal | None
    pnl_reporting: FixedDecimal | None
    value_reporting: FixedDecimal | None


class HoldingsService:
    """Assemble holdings and lot views from trades and custodian snapshots."""

    def __init__(
        self,
        converter: CurrencyConverterPort,
        classification: ClassificationConfig | None = None,
        unmatched_sell_policy: UnmatchedSellPolicy = UnmatchedSellPolicy.FAIL_FAST,
        long_term_holding_days: int = LONG_TERM_HOLDING_DAYS,
        today_provider: Callable[[], date] = date.today,
    ):
        """Initialize holdings service dependencies.

        Args:
            converter: Reporting-currency converter.
            classification: Optional symbol classification and cash adjustments.
            unmatched_sell_policy: Handling of sells that exceed open lots.
            long_term_holding_days: Long-term threshold in days.
            today_provider: Reference-date source for holding periods.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when converter is missing or the threshold is not positive.
        """

        if converter is None:
            raise ValueError("converter must not be None")
        if long_term_holding_days < 1:
            raise ValueError("long_term_holding_days must be positive")

        self._converter = converter
        self._classification = classification or ClassificationConfig()
        self._unmatched_sell_policy = unmatched_sell_policy
        self._long_term_holding_days = long_term_holding_days
        self._today_provider = today_provider

    def holdings_build_overview(
        self,
        trades: Iterable[Trade],
        reported_positions: Sequence[ReportedPosition],
        cash_positions: Iterable[CashPosition] = (),
        as_of: date | None = None,
    ) -> HoldingsResult:
        """Compute the combined holdings overview across accounts.

        Lots are computed per account with FIFO, verified per account against
        reported positions, then combined per symbol for display.

        Args:
            trades: All trades, including cash-category FX conversions which are ignored.
            reported_positions: Custodian-reported positions, the source of market prices.
            cash_positions: Cash balances per account and currency.
            as_of: Reference date for holding periods, defaults to today.

        Returns:
            HoldingsResult: Holdings plus advisory findings.

        Raises:
            InsufficientLotsError: Raised under the fail-fast policy when a sell exceeds open lots.
            InvalidTradeSideError: Raised when a trade is neither a buy nor a sell.
            InvalidDateError: Raised when a trade date is not a calendar date.
        """

        reference_date = as_of or self._today_provider()
        tax_lot_result = ledger_compute_tax_lots(_holdings_security_trades(trades), self._unmatched_sell_policy)
        tax_lots = tax_lot_result.tax_lots

        security_positions = [position for position in reported_positions if position.asset_category != ASSET_CATEGORY_CASH]
        discrepancies = ledger_verify_positions(
            ledger_compute_positions(tax_lots, PositionAggregationKey.ACCOUNT_SYMBOL),
            security_positions,
        )

        reported_by_symbol: dict[str, ReportedPosition] = {}
        for position in security_positions:
            reported_by_symbol.setdefault(position.symbol, position)
        bond_symbols = frozenset(
            symbol for symbol, position in reported_by_symbol.items() if position.asset_category == ASSET_CATEGORY_BOND
        )
        gain_splits = ledger_split_gains(
            tax_lots,
            {symbol: position.market_price_money() for symbol, position in reported_by_symbol.items()},
            self._converter,
            reference_date,
            bond_symbols=bond_symbols,
            threshold_days=self._long_term_holding_days,
        )

        unavailable: list[ConversionUnavailable] = []
        combined_positions = ledger_compute_positions(tax_lots, PositionAggregationKey.SYMBOL)
        held_symbols = {position.symbol for position in combined_positions}
        realized_pnl_by_symbol = self._holdings_sum_realized_pnl(
            (gain for gain in tax_lot_result.realized_gains if gain.symbol in held_symbols),
            unavailable,
        )
        holdings: list[HoldingOverview] = []
        for position in combined_positions:
            reported_position = reported_by_symbol.get(position.symbol)
            last_price = reported_position.market_price if reported_position is not None else None
            is_bond = position.symbol in bond_symbols

            last_price_reporting = None
            if last_price is not None:
                last_price_reporting = self._holdings_convert(
                    Money(position.currency_code, last_price), position.symbol, "last price", unavailable
                )
            average_price_reporting = self._holdings_convert(
                Money(position.currency_code, position.average_cost_basis_price),
                position.symbol,
                "average price",
                unavailable,
            )

            market_value_reporting = None
            if last_price_reporting is not None and not last_price_reporting.is_zero():
                market_value_reporting = fixed_multiply(position.quantity, last_price_reporting)
                if is_bond:
                    market_value_reporting = fixed_divide_int(market_value_reporting, 100)

            gain_split = gain_splits.get(position.symbol)
            classification = self._classification.symbol_classifications.get(position.symbol, SymbolClassification())
            holdings.append(
                HoldingOverview(
                    symbol=position.symbol,
                    currency_code=position.currency_code,
                    last_price=last_price,
                    average_price=position.average_cost_basis_price,
                    last_price_reporting=last_price_reporting,
                    average_price_reporting=average_price_reporting,
                    market_value_reporting=market_value_reporting,
                    unrealized_pnl_reporting=gain_split.total if gain_split is not None else None,
                    realized_pnl_reporting=realized_pnl_by_symbol.get(position.symbol, FIXED_ZERO),
                    short_term_gain_reporting=gain_split.short_term if gain_split is not None else None,
                    long_term_gain_reporting=gain_split.long_term if gain_split is not None else None,
                    position=position.quantity,
                    category=classification.category,
                    type=classification.type,
                    sector=classification.sector,
                    geo=classification.geo,
                )
            )

        cash_by_currency: dict[str, int] = {}
        for cash_position in cash_positions:
            currency_code = cash_position.currency_code.strip().upper()
            cash_by_currency[currency_code] = cash_by_currency.get(currency_code, 0) + cash_position.balance.micros
        for currency_code in sorted(cash_by_currency):
            holdings.extend(
                self._holdings_build_cash_rows(currency_code, currency_code, cash_by_currency[currency_code], unavailable)
            )
        for currency_code in sorted(self._classification.cash_adjustments):
            holdings.extend(
                self._holdings_build_cash_rows(
                    f"{currency_code} ADJUSTMENT",
                    currency_code,
                    self._classification.cash_adjustments[currency_code].micros,
                    unavailable,
                )
            )

        holdings.sort(key=lambda holding: (holding.category == ASSET_CATEGORY_CASH, holding.symbol))
        return HoldingsResult(
            holdings=tuple(holdings),
            unmatched_sells=tax_lot_result.unmatched_sells,
            position_discrepancies=tuple(discrepancies),
            conversion_unavailable=tuple(unavailable),
        )

    def holdings_list_lots(
        self,
        symbol: str,
        trades: Iterable[Trade],
        reported_positions: Sequence[ReportedPosition],
    ) -> list[LotOverview]:
        """Return the open lots of one symbol with per-lot valuation.

        Args:
            symbol: Ticker symbol to list.
            trades: All trades; cash-category trades are ignored.
            reported_positions: Custodian-reported positions, the source of the market price.

        Returns:
            list[LotOverview]: Lots in FIFO output order.

        Raises:
            InsufficientLotsError: Raised under the fail-fast policy when a sell exceeds open lots.
            InvalidTradeSideError: Raised when a trade is neither a buy nor a sell.
            InvalidDateError: Raised when a trade date is not a calendar date.
        """

        tax_lot_result = ledger_compute_tax_lots(_holdings_security_trades(trades), self._unmatched_sell_policy)
        reported_position = next(
            (
                position
                for position in reported_positions
                if position.symbol == symbol and position.asset_category != ASSET_CATEGORY_CASH
            ),
            None,
        )
        is_bond = reported_position is not None and reported_position.asset_category == ASSET_CATEGORY_BOND
        last_price = reported_position.market_price if reported_position is not None else FIXED_ZERO

        lot_rows: list[LotOverview] = []
        for lot in tax_lot_result.tax_lots:
            if lot.symbol != symbol:
                continue
            value, pnl = _holdings_lot_value_and_pnl(lot, last_price, is_bond)
            lot_rows.append(
                LotOverview(
                    account_id=lot.account_id,
                    open_date=lot.open_date,
                    quantity=lot.quantity,
                    currency_code=lot.currency_code,
                    average_price=lot.cost_basis_price,
                    pnl=pnl,
                    value=value,
                    average_price_reporting=self._holdings_convert_optional(lot.cost_basis_price, lot.currency_code),
                    pnl_reporting=self._holdings_convert_optional(pnl, lot.currency_code),
                    value_reporting=self._holdings_convert_optional(value, lot.currency_code),
                )
            )
        return lot_rows

    def _holdings_build_cash_rows(
        self,
        symbol: str,
        currency_code: str,
        amount_micros: int,
        unavailable: list[ConversionUnavailable],
    ) -> list[HoldingOverview]:
        """Build the cash holding row for one currency, or nothing for a zero balance.

        Cash has no cost basis: unit prices are one and P&L is zero. The
        reporting-currency unit price is the FX rate itself.

        Args:
            symbol: Row label.
            currency_code: Cash currency.
            amount_micros: Balance in micro-units.
            unavailable: Advisory collector for failed conversions.

        Returns:
            list[HoldingOverview]: Zero or one cash row.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if amount_micros == 0:
            return []

        balance = FixedDecimal(amount_micros)
        unit_price_reporting = self._holdings_convert(
            Money(currency_code, _CASH_UNIT_PRICE), symbol, "cash rate", unavailable
        )
        market_value_reporting = None
        if unit_price_reporting is not None:
            converted_balance = self._converter.fx_convert_to_reporting(Money(currency_code, balance))
            market_value_reporting = converted_balance.amount if converted_balance is not None else None

        return [
            HoldingOverview(
                symbol=symbol,
                currency_code=currency_code,
                last_price=_CASH_UNIT_PRICE,
                average_price=_CASH_UNIT_PRICE,
                last_price_reporting=unit_price_reporting,
                average_price_reporting=unit_price_reporting,
                market_value_reporting=market_value_reporting,
                unrealized_pnl_reporting=FIXED_ZERO,
                realized_pnl_reporting=FIXED_ZERO,
                short_term_gain_reporting=FIXED_ZERO,
                long_term_gain_reporting=FIXED_ZERO,
                position=balance,
                category=ASSET_CATEGORY_CASH,
            )
        ]

    def _holdings_sum_realized_pnl(
        self,
        realized_gains: Iterable[RealizedGain],
        unavailable: list[ConversionUnavailable],
    ) -> dict[str, FixedDecimal | None]:
        """Sum realized P&L per symbol in the reporting currency.

        Proceeds convert at the close-date rate and cost basis at the open-date
        rate, so currency moves over the holding period count toward the gain.
        A symbol with any unconvertible realized gain has no total.
        """

        realized_by_symbol: dict[str, FixedDecimal | None] = {}
        for realized_gain in realized_gains:
            if realized_gain.symbol in realized_by_symbol and realized_by_symbol[realized_gain.symbol] is None:
                continue
            proceeds = self._holdings_convert(
                realized_gain.proceeds_money(),
                realized_gain.symbol,
                "realized proceeds",
                unavailable,
                on_date=realized_gain.close_date,
            )
            cost = self._holdings_convert(
                realized_gain.cost_basis_money(),
                realized_gain.symbol,
                "realized cost basis",
                unavailable,
                on_date=realized_gain.open_date,
            )
            if proceeds is None or cost is None:
                realized_by_symbol[realized_gain.symbol] = None
                continue
            realized_by_symbol[realized_gain.symbol] = (
                realized_by_symbol.get(realized_gain.symbol, FIXED_ZERO) + proceeds - cost
            )
        return realized_by_symbol

    def _holdings_convert(
        self,
        money: Money,
        symbol: str,
        value_label: str,
        unavailable: list[ConversionUnavailable],
        on_date: date | None = None,
    ) -> FixedDecimal | None:
        """Convert one amount, recording an advisory when no rate is usable."""

        if on_date is None:
            converted = self._converter.fx_convert_to_reporting(money)
        else:
            converted = self._converter.fx_convert_to_reporting_on(money, on_date)
        if converted is not None:
            return converted.amount

        reason = f"no {money.currency_code}->{self._converter.reporting_currency} rate for {value_label}"
        logger.warning("conversion unavailable symbol=%s: %s", symbol, reason)
        unavailable.append(ConversionUnavailable(symbol=symbol, currency_code=money.currency_code, reason=reason))
        return None

    def _holdings_convert_optional(self, amount: FixedDecimal | None, currency_code: str) -> FixedDecimal | None:
        if amount is None:
            return None
        converted = self._converter.fx_convert_to_reporting(Money(currency_code, amount))
        return converted.amount if converted is not None else None


def holdings_compute_totals(holdings: Iterable[HoldingOverview]) -> HoldingsTotals:
    """Sum reporting-currency value columns across holdings, treating unavailable values as zero."""

    holding_rows = list(holdings)
    return HoldingsTotals(
        market_value=fixed_sum(row.market_value_reporting or FIXED_ZERO for row in holding_rows),
        unrealized_pnl=fixed_sum(row.unrealized_pnl_reporting or FIXED_ZERO for row in holding_rows),
        short_term_gain=fixed_sum(row.short_term_gain_reporting or FIXED_ZERO for row in holding_rows),
        long_term_gain=fixed_sum(row.long_term_gain_reporting or FIXED_ZERO for row in holding_rows),
    )


def holdings_compute_lot_totals(lots: Iterable[LotOverview]) -> tuple[FixedDecimal, FixedDecimal]:
    """Sum reporting-currency P&L and value across lot rows.

    Returns:
        tuple[FixedDecimal, FixedDecimal]: Total P&L and total value.
    """

    lot_rows = list(lots)
    return (
        fixed_sum(row.pnl_reporting or FIXED_ZERO for row in lot_rows),
        fixed_sum(row.value_reporting or FIXED_ZERO for row in lot_rows),
    )


def _holdings_security_trades(trades: Iterable[Trade]) -> list[Trade]:
    """Drop cash-category trades, which are currency exchanges rather than security trades."""

    return [trade for trade in trades if trade.asset_category != ASSET_CATEGORY_CASH]


def _holdings_lot_value_and_pnl(
    lot: TaxLot,
    last_price: FixedDecimal,
    is_bond: bool,
) -> tuple[FixedDecimal | None, FixedDecimal | None]:
    """Compute native-currency market value and unrealized P&L for one lot.

    Returns:
        tuple[FixedDecimal | None, FixedDecimal | None]: Value and P&L, both None without a market price.
    """

    if last_price.is_zero():
        return None, None
    value = fixed_multiply(lot.quantity, last_price)
    if is_bond:
        value = fixed_divide_int(value, 100)
    return value, ledger_lot_unrealized_pnl(lot.quantity, last_price, lot.cost_basis_price, is_bond)


__all__ = [
    "HoldingOverview",
    "HoldingsResult",
    "HoldingsService",
    "HoldingsTotals",
    "LotOverview",
    "holdings_compute_lot_totals",
    "holdings_compute_totals",
]
