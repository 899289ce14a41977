"""FIFO tax-lot matching primitives."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable

from holdings_engine.domain import (
    ASSET_CATEGORY_BOND,
    FixedDecimal,
    InsufficientLotsError,
    InvalidTradeSideError,
    RealizedGain,
    TaxLot,
    Trade,
    TradeSide,
    UnmatchedSell,
    ZeroQuantityLotError,
    domain_require_date,
)

logger = logging.getLogger(__name__)

# Same-day buys sort ahead of sells so intraday round trips find their lots.
_LEDGER_SIDE_SORT_RANK = {TradeSide.BUY: 0, TradeSide.SELL: 1}


class UnmatchedSellPolicy(str, Enum):
    """Handling of sells that exceed the open lots of their queue.

    `FAIL_FAST` raises on the first occurrence across all groups. `COLLECT`
    stops processing only the affected (account, symbol) queue, records an
    advisory and continues with the other groups. The affected queue contributes
    neither lots nor realized gains.
    """

    FAIL_FAST = "fail_fast"
    COLLECT = "collect"


@dataclass(frozen=True)
class TaxLotComputationResult:
    """Output payload for FIFO tax-lot computation.

    Attributes:
        tax_lots: Open lots sorted by symbol, open date and account.
        unmatched_sells: Advisory records collected under `UnmatchedSellPolicy.COLLECT`.
        realized_gains: One record per lot slice consumed by a sell, in processing order.
    """

    tax_lots: tuple[TaxLot, ...]
    unmatched_sells: tuple[UnmatchedSell, ...]
    realized_gains: tuple[RealizedGain, ...] = ()


@dataclass(frozen=True)
class _LotGroupKey:
    """FIFO queue identity: one queue per custodial account and symbol."""

    account_id: str
    symbol: str


@dataclass
class _OpenFifoLot:
    """Mutable internal lot state used during FIFO processing."""

    open_date: date
    quantity_micros: int
    cost_basis_price: FixedDecimal
    currency_code: str


def ledger_compute_tax_lots(
    trades: Iterable[Trade],
    policy: UnmatchedSellPolicy = UnmatchedSellPolicy.FAIL_FAST,
) -> TaxLotComputationResult:
    """Compute open tax lots from trades using first-in-first-out matching.

    Trades are grouped per (account, symbol) so each custodial account keeps an
    independent queue. Within a group trades are ordered by trade date, buys
    before sells on the same date, then by trade id. Buys append lots; sells
    consume the oldest lots first.

    Args:
        trades: Unordered trade records.
        policy: Handling of sells that open lots cannot satisfy.

    Returns:
        TaxLotComputationResult: Deterministic open lots plus collected advisories.

    Raises:
        InvalidTradeSideError: Raised when a trade is neither a buy nor a sell.
        InvalidDateError: Raised when a trade date is not a calendar date.
        InsufficientLotsError: Raised under `FAIL_FAST` when a sell exceeds its open lots.
        ZeroQuantityLotError: Raised when an emptied lot was not removed from its queue.
    """

    grouped_trades: dict[_LotGroupKey, list[tuple[TradeSide, Trade]]] = {}
    for trade in trades:
        side = _ledger_normalize_side(trade)
        domain_require_date(trade.trade_date, f"trade {trade.trade_id} trade_date")
        group_key = _LotGroupKey(account_id=trade.account_id, symbol=trade.symbol)
        grouped_trades.setdefault(group_key, []).append((side, trade))

    open_lots: list[TaxLot] = []
    unmatched_sells: list[UnmatchedSell] = []
    realized_gains: list[RealizedGain] = []

    for group_key in sorted(grouped_trades, key=lambda key: (key.account_id, key.symbol)):
        sorted_trades = sorted(
            grouped_trades[group_key],
            key=lambda item: (item[1].trade_date, _LEDGER_SIDE_SORT_RANK[item[0]], item[1].trade_id),
        )
        queue, group_realized_gains, unmatched_sell = _ledger_match_group(group_key, sorted_trades)

        if unmatched_sell is not None:
            if policy is UnmatchedSellPolicy.FAIL_FAST:
                raise InsufficientLotsError(
                    symbol=unmatched_sell.symbol,
                    unmatched_quantity=unmatched_sell.unmatched_quantity,
                    account_id=unmatched_sell.account_id,
                    trade_id=unmatched_sell.trade_id,
                )
            logger.warning(
                "unmatched sell account=%s symbol=%s trade=%s quantity=%s; skipping remaining trades for this queue",
                unmatched_sell.account_id,
                unmatched_sell.symbol,
                unmatched_sell.trade_id,
                unmatched_sell.unmatched_quantity,
            )
            unmatched_sells.append(unmatched_sell)
            continue

        realized_gains.extend(group_realized_gains)

        for lot in queue:
            if lot.quantity_micros == 0:
                raise ZeroQuantityLotError(
                    f"zero-quantity lot for {group_key.account_id}/{group_key.symbol} on {lot.open_date.isoformat()}"
                )
            open_lots.append(
                TaxLot(
                    symbol=group_key.symbol,
                    account_id=group_key.account_id,
                    open_date=lot.open_date,
                    quantity=FixedDecimal(lot.quantity_micros),
                    cost_basis_price=lot.cost_basis_price,
                    currency_code=lot.currency_code,
                )
            )

    open_lots.sort(key=lambda lot: (lot.symbol, lot.open_date, lot.account_id))
    return TaxLotComputationResult(
        tax_lots=tuple(open_lots),
        unmatched_sells=tuple(unmatched_sells),
        realized_gains=tuple(realized_gains),
    )


def _ledger_match_group(
    group_key: _LotGroupKey,
    sorted_trades: list[tuple[TradeSide, Trade]],
) -> tuple[deque[_OpenFifoLot], list[RealizedGain], UnmatchedSell | None]:
    """Run FIFO matching over one sorted (account, symbol) trade group.

    Args:
        group_key: Queue identity.
        sorted_trades: Trades paired with their normalized side, in processing order.

    Returns:
        tuple[deque[_OpenFifoLot], list[RealizedGain], UnmatchedSell | None]: Remaining queue,
        realized gains of matched slices, and the first unmatched sell when matching stopped early.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    queue: deque[_OpenFifoLot] = deque()
    realized_gains: list[RealizedGain] = []

    for side, trade in sorted_trades:
        quantity_micros = abs(trade.quantity.micros)
        if quantity_micros == 0:
            continue

        if side is TradeSide.BUY:
            queue.append(
                _OpenFifoLot(
                    open_date=trade.trade_date,
                    quantity_micros=quantity_micros,
                    cost_basis_price=trade.price,
                    currency_code=trade.currency_code,
                )
            )
            continue

        remaining_micros = quantity_micros
        while queue and remaining_micros > 0:
            current_lot = queue[0]
            matched_micros = min(current_lot.quantity_micros, remaining_micros)
            realized_gains.append(
                RealizedGain(
                    account_id=group_key.account_id,
                    symbol=group_key.symbol,
                    trade_id=trade.trade_id,
                    open_date=current_lot.open_date,
                    close_date=trade.trade_date,
                    quantity=FixedDecimal(matched_micros),
                    cost_basis_price=current_lot.cost_basis_price,
                    proceeds_price=trade.price,
                    currency_code=current_lot.currency_code,
                    is_bond=trade.asset_category == ASSET_CATEGORY_BOND,
                )
            )
            remaining_micros -= matched_micros
            current_lot.quantity_micros -= matched_micros
            if current_lot.quantity_micros == 0:
                queue.popleft()

        if remaining_micros > 0:
            return queue, realized_gains, UnmatchedSell(
                account_id=group_key.account_id,
                symbol=group_key.symbol,
                trade_id=trade.trade_id,
                unmatched_quantity=FixedDecimal(remaining_micros),
            )

    return queue, realized_gains, None


def _ledger_normalize_side(trade: Trade) -> TradeSide:
    """Resolve the trade side, accepting enum members or their text values.

    Raises:
        InvalidTradeSideError: Raised when the side is unspecified or unknown.
    """

    raw_side = trade.side
    if isinstance(raw_side, str) and not isinstance(raw_side, TradeSide):
        try:
            raw_side = TradeSide(raw_side.strip().upper())
        except ValueError as error:
            raise InvalidTradeSideError(trade.trade_id) from error

    if raw_side not in (TradeSide.BUY, TradeSide.SELL):
        raise InvalidTradeSideError(trade.trade_id)
    return raw_side


__all__ = ["TaxLotComputationResult", "UnmatchedSellPolicy", "ledger_compute_tax_lots"]
