"""Domain values, fixed-point arithmetic and typed errors shared across layers."""

from .dates import domain_parse_date, domain_require_date
from .errors import (
	FixedPointError,
	InsufficientLotsError,
	InvalidDateError,
	InvalidTradeSideError,
	LedgerError,
	LedgerFatalError,
	ZeroQuantityLotError,
)
from .fixed_point import (
	FIXED_ZERO,
	MICROS_FACTOR,
	FixedDecimal,
	Money,
	fixed_divide_int,
	fixed_divide_rounded,
	fixed_format,
	fixed_format_usd,
	fixed_format_usd_text,
	fixed_from_decimal,
	fixed_from_units_micros,
	fixed_multiply,
	fixed_parse,
	fixed_sum,
	fixed_to_decimal,
	fixed_to_string,
	money_parse,
)
from .models import (
	ASSET_CATEGORY_BOND,
	ASSET_CATEGORY_CASH,
	ASSET_CATEGORY_STOCK,
	CashPosition,
	ComputedPosition,
	ConversionUnavailable,
	DiscrepancyKind,
	ExchangeRate,
	PositionDiscrepancy,
	RealizedGain,
	ReportedPosition,
	TaxLot,
	Trade,
	TradeSide,
	TradeTransfer,
	Transfer,
	TransferDirection,
	UnmatchedSell,
)

__all__ = [
	"ASSET_CATEGORY_BOND",
	"ASSET_CATEGORY_CASH",
	"ASSET_CATEGORY_STOCK",
	"CashPosition",
	"ComputedPosition",
	"ConversionUnavailable",
	"DiscrepancyKind",
	"ExchangeRate",
	"FIXED_ZERO",
	"FixedDecimal",
	"FixedPointError",
	"InsufficientLotsError",
	"InvalidDateError",
	"InvalidTradeSideError",
	"LedgerError",
	"LedgerFatalError",
	"MICROS_FACTOR",
	"Money",
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
	"ZeroQuantityLotError",
	"domain_parse_date",
	"domain_require_date",
	"fixed_divide_int",
	"fixed_divide_rounded",
	"fixed_format",
	"fixed_format_usd",
	"fixed_format_usd_text",
	"fixed_from_decimal",
	"fixed_from_units_micros",
	"fixed_multiply",
	"fixed_parse",
	"fixed_sum",
	"fixed_to_decimal",
	"fixed_to_string",
	"money_parse",
]
