"""Aggregation of tax lots into weighted-average-cost positions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from holdings_engine.domain import (
    ComputedPosition,
    FixedDecimal,
    TaxLot,
    fixed_divide_rounded,
    fixed_multiply,
)


class PositionAggregationKey(str, Enum):
    """Grouping used when reducing lots into positions."""

    ACCOUNT_SYMBOL = "account_symbol"
    SYMBOL = "symbol"


@dataclass
class _PositionAccumulator:
    """Running quantity and total cost for one aggregation group."""

    currency_code: str
    quantity_micros: int = 0
    total_cost_micros: int = 0


def ledger_compute_positions(
    tax_lots: Iterable[TaxLot],
    aggregation_key: PositionAggregationKey = PositionAggregationKey.ACCOUNT_SYMBOL,
) -> list[ComputedPosition]:
    """Reduce tax lots into one position per aggregation group.

    `quantity` is the sum of lot quantities, `total_cost` the sum of
    `quantity * cost_basis_price` per lot, and the average cost is
    `total_cost / quantity` rounded to micro precision. Groups whose quantity
    nets to zero are dropped.

    Args:
        tax_lots: Open tax lots.
        aggregation_key: Per (account, symbol) or per symbol across accounts.

    Returns:
        list[ComputedPosition]: Positions sorted by symbol then account.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    accumulators: dict[tuple[str, str | None], _PositionAccumulator] = {}
    for lot in tax_lots:
        account_id = lot.account_id if aggregation_key is PositionAggregationKey.ACCOUNT_SYMBOL else None
        group_key = (lot.symbol, account_id)
        accumulator = accumulators.get(group_key)
        if accumulator is None:
            accumulator = _PositionAccumulator(currency_code=lot.currency_code)
            accumulators[group_key] = accumulator

        accumulator.quantity_micros += lot.quantity.micros
        accumulator.total_cost_micros += fixed_multiply(lot.quantity, lot.cost_basis_price).micros

    positions: list[ComputedPosition] = []
    for (symbol, account_id), accumulator in accumulators.items():
        quantity = FixedDecimal(accumulator.quantity_micros)
        average_cost = fixed_divide_rounded(FixedDecimal(accumulator.total_cost_micros), quantity)
        if average_cost is None:
            continue
        positions.append(
            ComputedPosition(
                symbol=symbol,
                account_id=account_id,
                quantity=quantity,
                average_cost_basis_price=average_cost,
                currency_code=accumulator.currency_code,
            )
        )

    positions.sort(key=lambda position: (position.symbol, position.account_id or ""))
    return positions


def ledger_position_total_cost(position: ComputedPosition) -> FixedDecimal:
    """Return `quantity * average_cost_basis_price` for one position."""

    return fixed_multiply(position.quantity, position.average_cost_basis_price)


__all__ = ["PositionAggregationKey", "ledger_compute_positions", "ledger_position_total_cost"]
