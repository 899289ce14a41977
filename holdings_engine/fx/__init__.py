"""FX layer package for rate lookup, conversion and backfill boundaries."""

from .backfill import FxRateFetcherPort, FxRateRequest, fx_backfill_missing_rates, fx_plan_missing_rates
from .loaders import (
	FX_RATES_FILE_NAME,
	DirectoryFxRateLoader,
	FxRateFileError,
	FxRateLoaderPort,
	InMemoryFxRateLoader,
)
from .rate_store import (
	FxPairKey,
	FxPairLoaded,
	FxPairNotFound,
	FxPairNotYetLoaded,
	FxPairState,
	FxRateStore,
)

__all__ = [
	"DirectoryFxRateLoader",
	"FX_RATES_FILE_NAME",
	"FxPairKey",
	"FxPairLoaded",
	"FxPairNotFound",
	"FxPairNotYetLoaded",
	"FxPairState",
	"FxRateFetcherPort",
	"FxRateFileError",
	"FxRateLoaderPort",
	"FxRateRequest",
	"FxRateStore",
	"InMemoryFxRateLoader",
	"fx_backfill_missing_rates",
	"fx_plan_missing_rates",
]
