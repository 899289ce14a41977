"""Typed value objects shared across lot-engine layers.

All records are immutable and recomputed per invocation; no record here is
authoritative persisted state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from .fixed_point import FixedDecimal, Money, fixed_divide_int, fixed_multiply

ASSET_CATEGORY_CASH = "CASH"
ASSET_CATEGORY_BOND = "BOND"
ASSET_CATEGORY_STOCK = "STK"


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    UNSPECIFIED = "UNSPECIFIED"


class TransferDirection(str, Enum):
    IN = "IN"
    OUT = "OUT"
    UNSPECIFIED = "UNSPECIFIED"


class DiscrepancyKind(str, Enum):
    """Kind of mismatch between computed and reported positions."""

    QUANTITY = "QUANTITY"
    COST_BASIS = "COST_BASIS"
    COMPUTED_ONLY = "COMPUTED_ONLY"
    REPORTED_ONLY = "REPORTED_ONLY"


@dataclass(frozen=True)
class Trade:
    """Executed order contract consumed by FIFO lot matching.

    Attributes:
        trade_id: Unique trade identifier, also the same-day tie-break key.
        account_id: Custodial account identifier.
        symbol: Ticker symbol.
        side: Trade side; the direction source for matching.
        trade_date: Trade date.
        quantity: Signed quantity, positive for buys and negative for sells.
        price: Per-unit trade price in `currency_code`.
        currency_code: Trade currency.
        asset_category: Broker asset category such as `STK`, `BOND` or `CASH`.
    """

    trade_id: str
    account_id: str
    symbol: str
    side: TradeSide
    trade_date: date
    quantity: FixedDecimal
    price: FixedDecimal
    currency_code: str
    asset_category: str = ASSET_CATEGORY_STOCK


@dataclass(frozen=True)
class TaxLot:
    """Open, possibly partially consumed, acquisition lot.

    Attributes:
        symbol: Ticker symbol.
        account_id: Account holding the lot.
        open_date: Acquisition date, the start of the holding period.
        quantity: Remaining quantity, always greater than zero.
        cost_basis_price: Per-unit cost basis in `currency_code`.
        currency_code: Lot currency.
    """

    symbol: str
    account_id: str
    open_date: date
    quantity: FixedDecimal
    cost_basis_price: FixedDecimal
    currency_code: str

    def cost_basis_money(self) -> Money:
        return Money(currency_code=self.currency_code, amount=self.cost_basis_price)


@dataclass(frozen=True)
class ComputedPosition:
    """Position derived from live tax lots.

    Attributes:
        symbol: Ticker symbol.
        account_id: Account identifier, or None for cross-account aggregates.
        quantity: Sum of live lot quantities.
        average_cost_basis_price: Weighted-average per-unit cost basis.
        currency_code: Position currency.
    """

    symbol: str
    account_id: str | None
    quantity: FixedDecimal
    average_cost_basis_price: FixedDecimal
    currency_code: str


@dataclass(frozen=True)
class ReportedPosition:
    """Position snapshot reported by the custodian.

    Attributes:
        symbol: Ticker symbol.
        account_id: Account identifier.
        quantity: Reported quantity.
        cost_basis_price: Reported per-unit cost basis.
        market_price: Latest market price per unit, as a percentage of face value for bonds.
        currency_code: Position currency.
        asset_category: Broker asset category.
    """

    symbol: str
    account_id: str
    quantity: FixedDecimal
    cost_basis_price: FixedDecimal
    market_price: FixedDecimal
    currency_code: str
    asset_category: str = ASSET_CATEGORY_STOCK

    def market_price_money(self) -> Money:
        return Money(currency_code=self.currency_code, amount=self.market_price)


@dataclass(frozen=True)
class CashPosition:
    account_id: str
    currency_code: str
    balance: FixedDecimal


@dataclass(frozen=True)
class Transfer:
    """Position transfer into or out of an account.

    Attributes:
        account_id: Account identifier.
        symbol: Ticker symbol.
        transfer_date: Transfer date.
        direction: Transfer direction.
        quantity: Signed transferred quantity.
        transfer_price: Per-unit transfer price, None when the transfer is informational.
        currency_code: Transfer currency.
        asset_category: Broker asset category.
    """

    account_id: str
    symbol: str
    transfer_date: date
    direction: TransferDirection
    quantity: FixedDecimal
    transfer_price: FixedDecimal | None
    currency_code: str
    asset_category: str = ASSET_CATEGORY_STOCK


@dataclass(frozen=True)
class TradeTransfer:
    """Lot-preserving transfer that carries the original acquisition details.

    Attributes:
        account_id: Receiving account identifier.
        symbol: Ticker symbol.
        transfer_date: Transfer date.
        quantity: Transferred quantity.
        currency_code: Transfer currency.
        asset_category: Broker asset category.
        orig_trade_date: Original acquisition date, preserving the holding period.
        orig_trade_price: Original per-unit acquisition price.
        cost: Fallback per-unit cost when the original price is absent.
    """

    account_id: str
    symbol: str
    transfer_date: date
    quantity: FixedDecimal
    currency_code: str
    asset_category: str = ASSET_CATEGORY_STOCK
    orig_trade_date: date | None = None
    orig_trade_price: FixedDecimal | None = None
    cost: FixedDecimal | None = None


@dataclass(frozen=True)
class ExchangeRate:
    """One dated FX rate: one unit of `base_currency` costs `rate` of `quote_currency`.

    Attributes:
        rate_date: Rate date.
        base_currency: Base currency code.
        quote_currency: Quote currency code.
        rate: Rate at micro precision.
        source: Provider label.
    """

    rate_date: date
    base_currency: str
    quote_currency: str
    rate: FixedDecimal
    source: str = ""


@dataclass(frozen=True)
class RealizedGain:
    """Gain realized by one sell against one matched lot slice.

    Attributes:
        account_id: Account where the sell occurred.
        symbol: Ticker symbol.
        trade_id: Sell trade identifier.
        open_date: Open date of the matched lot.
        close_date: Sell trade date.
        quantity: Quantity matched from the lot.
        cost_basis_price: Per-unit cost basis of the matched lot.
        proceeds_price: Per-unit sell price.
        currency_code: Trade currency.
        is_bond: Whether prices are a percentage of face value.
    """

    account_id: str
    symbol: str
    trade_id: str
    open_date: date
    close_date: date
    quantity: FixedDecimal
    cost_basis_price: FixedDecimal
    proceeds_price: FixedDecimal
    currency_code: str
    is_bond: bool = False

    @property
    def days_held(self) -> int:
        return (self.close_date - self.open_date).days

    def realized_pnl_money(self) -> Money:
        pnl = fixed_multiply(self.quantity, self.proceeds_price - self.cost_basis_price)
        if self.is_bond:
            pnl = fixed_divide_int(pnl, 100)
        return Money(currency_code=self.currency_code, amount=pnl)

    def cost_basis_money(self) -> Money:
        """Return the cost basis of the matched slice, valued on the open date."""

        return self._realized_amount_money(self.cost_basis_price)

    def proceeds_money(self) -> Money:
        """Return the sell proceeds of the matched slice, valued on the close date."""

        return self._realized_amount_money(self.proceeds_price)

    def _realized_amount_money(self, price: FixedDecimal) -> Money:
        amount = fixed_multiply(self.quantity, price)
        if self.is_bond:
            amount = fixed_divide_int(amount, 100)
        return Money(currency_code=self.currency_code, amount=amount)


@dataclass(frozen=True)
class UnmatchedSell:
    """Advisory record for a sell that open lots could not fully satisfy.

    Attributes:
        account_id: Account where the sell occurred.
        symbol: Ticker symbol.
        trade_id: Sell trade identifier.
        unmatched_quantity: Quantity left unmatched.
    """

    account_id: str
    symbol: str
    trade_id: str
    unmatched_quantity: FixedDecimal


@dataclass(frozen=True)
class PositionDiscrepancy:
    """Advisory record for one computed-versus-reported position mismatch.

    Attributes:
        kind: Discrepancy kind.
        account_id: Account identifier.
        symbol: Ticker symbol.
        computed_value: Computed quantity or price text, empty when absent on the computed side.
        reported_value: Reported quantity or price text, empty when absent on the reported side.
    """

    kind: DiscrepancyKind
    account_id: str | None
    symbol: str
    computed_value: str
    reported_value: str


@dataclass(frozen=True)
class ConversionUnavailable:
    """Advisory record for a value that could not be converted to the reporting currency."""

    symbol: str
    currency_code: str
    reason: str


__all__ = [
    "ASSET_CATEGORY_BOND",
    "ASSET_CATEGORY_CASH",
    "ASSET_CATEGORY_STOCK",
    "CashPosition",
    "ComputedPosition",
    "ConversionUnavailable",
    "DiscrepancyKind",
    "ExchangeRate",
    "PositionDiscrepancy",
    "RealizedGain",
    "ReportedPosition",
    "TaxLot",
    "Trade",
    "TradeSide",
    "TradeTransfer",
    "Transfer",
    "TransferDirection",
    "UnmatchedSell",
]
