"""Conversion of transfer records into synthetic trades for FIFO processing."""

from __future__ import annotations

from typing import Iterable

from holdings_engine.domain import (
    FIXED_ZERO,
    Trade,
    TradeSide,
    TradeTransfer,
    Transfer,
    TransferDirection,
    fixed_to_string,
)


def ledger_transfers_to_synthetic_trades(transfers: Iterable[Transfer]) -> list[Trade]:
    """Convert priced transfers into buy or sell trades.

    Transfers without a price, or with a zero price, are informational (for
    example free-of-payment transfers whose basis is carried by the reported
    position) and are skipped, as are transfers with an unknown direction.

    Args:
        transfers: Transfer records.

    Returns:
        list[Trade]: Synthetic trades with deterministic identifiers.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    trades: list[Trade] = []
    for transfer in transfers:
        if transfer.transfer_price is None or transfer.transfer_price.is_zero():
            continue

        if transfer.direction is TransferDirection.IN:
            side = TradeSide.BUY
        elif transfer.direction is TransferDirection.OUT:
            side = TradeSide.SELL
        else:
            continue

        trades.append(
            Trade(
                trade_id=_ledger_build_synthetic_trade_id(
                    "transfer",
                    transfer.account_id,
                    transfer.symbol,
                    transfer.transfer_date.isoformat(),
                    fixed_to_string(transfer.quantity),
                ),
                account_id=transfer.account_id,
                symbol=transfer.symbol,
                side=side,
                trade_date=transfer.transfer_date,
                quantity=transfer.quantity,
                price=transfer.transfer_price,
                currency_code=transfer.currency_code,
                asset_category=transfer.asset_category,
            )
        )
    return trades


def ledger_trade_transfers_to_synthetic_trades(trade_transfers: Iterable[TradeTransfer]) -> list[Trade]:
    """Convert lot-preserving trade transfers into synthetic buy trades.

    The original trade date is used as the trade date so the holding period
    survives the transfer; the original price is used as the cost basis.

    Args:
        trade_transfers: Trade-transfer records.

    Returns:
        list[Trade]: Synthetic buy trades with deterministic identifiers.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    trades: list[Trade] = []
    for trade_transfer in trade_transfers:
        trade_date = trade_transfer.orig_trade_date or trade_transfer.transfer_date
        trade_price = trade_transfer.orig_trade_price
        if trade_price is None:
            trade_price = trade_transfer.cost
        if trade_price is None:
            trade_price = FIXED_ZERO

        trades.append(
            Trade(
                trade_id=_ledger_build_synthetic_trade_id(
                    "trade-transfer",
                    trade_transfer.account_id,
                    trade_transfer.symbol,
                    trade_transfer.transfer_date.isoformat(),
                    fixed_to_string(trade_transfer.quantity),
                ),
                account_id=trade_transfer.account_id,
                symbol=trade_transfer.symbol,
                side=TradeSide.BUY,
                trade_date=trade_date,
                quantity=trade_transfer.quantity,
                price=trade_price,
                currency_code=trade_transfer.currency_code,
                asset_category=trade_transfer.asset_category,
            )
        )
    return trades


def _ledger_build_synthetic_trade_id(prefix: str, *parts: str) -> str:
    return "-".join((prefix, *parts))


__all__ = ["ledger_trade_transfers_to_synthetic_trades", "ledger_transfers_to_synthetic_trades"]
