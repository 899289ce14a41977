"""Diff of computed positions against custodian-reported positions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from holdings_engine.domain import (
    ASSET_CATEGORY_CASH,
    ComputedPosition,
    DiscrepancyKind,
    FixedDecimal,
    PositionDiscrepancy,
    ReportedPosition,
    fixed_divide_rounded,
    fixed_multiply,
    fixed_to_string,
)

logger = logging.getLogger(__name__)

_LEDGER_DISCREPANCY_KIND_ORDER = {
    DiscrepancyKind.QUANTITY: 0,
    DiscrepancyKind.COST_BASIS: 1,
    DiscrepancyKind.COMPUTED_ONLY: 2,
    DiscrepancyKind.REPORTED_ONLY: 3,
}


@dataclass(frozen=True)
class _PositionComparable:
    """Quantity and cost basis compared for one key."""

    quantity: FixedDecimal
    cost_basis_price: FixedDecimal


def ledger_verify_positions(
    computed: Iterable[ComputedPosition],
    reported: Iterable[ReportedPosition],
    per_account: bool = True,
) -> list[PositionDiscrepancy]:
    """Compare computed positions with reported positions.

    Quantities must match exactly and cost basis must match as normalized
    decimal text; there is no tolerance. Reported cash-category positions are
    excluded because cash is not tracked as tax lots.

    Args:
        computed: Positions derived from tax lots.
        reported: Positions from the custodian snapshot.
        per_account: Compare per (account, symbol) when True, per symbol when False.
            In per-symbol mode rows for the same symbol are merged on both sides with a
            weighted-average cost basis before comparison.

    Returns:
        list[PositionDiscrepancy]: Discrepancies sorted by account, symbol and kind.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    computed_map = _ledger_build_comparable_map(
        (
            (position.account_id, position.symbol, position.quantity, position.average_cost_basis_price)
            for position in computed
        ),
        per_account,
    )
    reported_map = _ledger_build_comparable_map(
        (
            (position.account_id, position.symbol, position.quantity, position.cost_basis_price)
            for position in reported
            if position.asset_category != ASSET_CATEGORY_CASH
        ),
        per_account,
    )

    discrepancies: list[PositionDiscrepancy] = []
    for (account_id, symbol), computed_position in computed_map.items():
        reported_position = reported_map.get((account_id, symbol))
        if reported_position is None:
            discrepancies.append(
                PositionDiscrepancy(
                    kind=DiscrepancyKind.COMPUTED_ONLY,
                    account_id=account_id,
                    symbol=symbol,
                    computed_value=fixed_to_string(computed_position.quantity),
                    reported_value="",
                )
            )
            continue

        if computed_position.quantity != reported_position.quantity:
            discrepancies.append(
                PositionDiscrepancy(
                    kind=DiscrepancyKind.QUANTITY,
                    account_id=account_id,
                    symbol=symbol,
                    computed_value=fixed_to_string(computed_position.quantity),
                    reported_value=fixed_to_string(reported_position.quantity),
                )
            )

        computed_cost_text = fixed_to_string(computed_position.cost_basis_price)
        reported_cost_text = fixed_to_string(reported_position.cost_basis_price)
        if computed_cost_text != reported_cost_text:
            discrepancies.append(
                PositionDiscrepancy(
                    kind=DiscrepancyKind.COST_BASIS,
                    account_id=account_id,
                    symbol=symbol,
                    computed_value=computed_cost_text,
                    reported_value=reported_cost_text,
                )
            )

    for (account_id, symbol), reported_position in reported_map.items():
        if (account_id, symbol) in computed_map:
            continue
        discrepancies.append(
            PositionDiscrepancy(
                kind=DiscrepancyKind.REPORTED_ONLY,
                account_id=account_id,
                symbol=symbol,
                computed_value="",
                reported_value=fixed_to_string(reported_position.quantity),
            )
        )

    discrepancies.sort(
        key=lambda item: (item.account_id or "", item.symbol, _LEDGER_DISCREPANCY_KIND_ORDER[item.kind])
    )
    if discrepancies:
        logger.warning("position verification found %d discrepancies", len(discrepancies))
    return discrepancies


def _ledger_build_comparable_map(
    rows: Iterable[tuple[str | None, str, FixedDecimal, FixedDecimal]],
    per_account: bool,
) -> dict[tuple[str | None, str], _PositionComparable]:
    """Build one side of the comparison map.

    Args:
        rows: (account_id, symbol, quantity, cost_basis_price) rows.
        per_account: Key by (account, symbol) when True, by symbol when False.

    Returns:
        dict[tuple[str | None, str], _PositionComparable]: Comparable values by key.
        Several rows under one key are merged into their summed quantity and
        weighted-average cost basis.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    quantity_by_key: dict[tuple[str | None, str], int] = {}
    total_cost_by_key: dict[tuple[str | None, str], int] = {}
    single_cost_by_key: dict[tuple[str | None, str], FixedDecimal] = {}
    row_count_by_key: dict[tuple[str | None, str], int] = {}

    for account_id, symbol, quantity, cost_basis_price in rows:
        key = (account_id if per_account else None, symbol)
        quantity_by_key[key] = quantity_by_key.get(key, 0) + quantity.micros
        total_cost_by_key[key] = total_cost_by_key.get(key, 0) + fixed_multiply(quantity, cost_basis_price).micros
        single_cost_by_key[key] = cost_basis_price
        row_count_by_key[key] = row_count_by_key.get(key, 0) + 1

    comparable_map: dict[tuple[str | None, str], _PositionComparable] = {}
    for key, quantity_micros in quantity_by_key.items():
        quantity = FixedDecimal(quantity_micros)
        cost_basis_price = single_cost_by_key[key]
        if row_count_by_key[key] > 1:
            merged_cost = fixed_divide_rounded(FixedDecimal(total_cost_by_key[key]), quantity)
            if merged_cost is not None:
                cost_basis_price = merged_cost
        comparable_map[key] = _PositionComparable(quantity=quantity, cost_basis_price=cost_basis_price)
    return comparable_map


__all__ = ["ledger_verify_positions"]
