"""Ledger layer package for tax lots, positions, verification and holdings assembly."""

from .interfaces import CurrencyConverterPort
from .fifo_engine import TaxLotComputationResult, UnmatchedSellPolicy, ledger_compute_tax_lots
from .gains import (
	GainSplit,
	LONG_TERM_HOLDING_DAYS,
	LotGainClassification,
	ledger_classify_lot,
	ledger_days_held,
	ledger_is_long_term,
	ledger_lot_unrealized_pnl,
	ledger_split_gains,
)
from .holdings_service import (
	HoldingOverview,
	HoldingsResult,
	HoldingsService,
	HoldingsTotals,
	LotOverview,
	holdings_compute_lot_totals,
	holdings_compute_totals,
)
from .positions import PositionAggregationKey, ledger_compute_positions, ledger_position_total_cost
from .synthetic_trades import ledger_trade_transfers_to_synthetic_trades, ledger_transfers_to_synthetic_trades
from .verification import ledger_verify_positions

__all__ = [
	"CurrencyConverterPort",
	"TaxLotComputationResult",
	"UnmatchedSellPolicy",
	"ledger_compute_tax_lots",
	"GainSplit",
	"LONG_TERM_HOLDING_DAYS",
	"LotGainClassification",
	"ledger_classify_lot",
	"ledger_days_held",
	"ledger_is_long_term",
	"ledger_lot_unrealized_pnl",
	"ledger_split_gains",
	"HoldingOverview",
	"HoldingsResult",
	"HoldingsService",
	"HoldingsTotals",
	"LotOverview",
	"holdings_compute_lot_totals",
	"holdings_compute_totals",
	"PositionAggregationKey",
	"ledger_compute_positions",
	"ledger_position_total_cost",
	"ledger_trade_transfers_to_synthetic_trades",
	"ledger_transfers_to_synthetic_trades",
	"ledger_verify_positions",
]
