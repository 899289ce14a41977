"""Engine bootstrap wiring for startup validation and dependency assembly."""

import logging

from holdings_engine.config import (
    ClassificationConfig,
    EngineSettings,
    config_load_classification,
    config_load_settings,
)
from holdings_engine.fx import DirectoryFxRateLoader, FxRateLoaderPort, FxRateStore, InMemoryFxRateLoader
from holdings_engine.ledger import HoldingsService, UnmatchedSellPolicy

logger = logging.getLogger(__name__)


def bootstrap_create_fx_store(settings: EngineSettings) -> FxRateStore:
    """Build the FX rate store for the configured data directory.

    Without a configured directory the store has no rates, so only
    reporting-currency amounts convert.

    Args:
        settings: Validated runtime settings.

    Returns:
        FxRateStore: Lazily loading rate store.

    Raises:
        ValueError: Raised when the reporting currency is invalid.
    """

    loader: FxRateLoaderPort
    if settings.fx_data_dir is not None:
        loader = DirectoryFxRateLoader(fx_dir=settings.fx_data_dir)
    else:
        logger.info("no FX data directory configured, only %s amounts will convert", settings.reporting_currency)
        loader = InMemoryFxRateLoader()
    return FxRateStore(loader=loader, reporting_currency=settings.reporting_currency)


def bootstrap_create_holdings_service(settings: EngineSettings | None = None) -> HoldingsService:
    """Assemble the holdings service after validating startup configuration.

    Args:
        settings: Optional pre-loaded settings, loaded from the environment when omitted.

    Returns:
        HoldingsService: Fully wired holdings service instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
        ClassificationLoadError: Raised when the configured classification file is invalid.
    """

    resolved_settings = settings or config_load_settings()
    classification = ClassificationConfig()
    if resolved_settings.classification_file is not None:
        classification = config_load_classification(resolved_settings.classification_file)

    return HoldingsService(
        converter=bootstrap_create_fx_store(resolved_settings),
        classification=classification,
        unmatched_sell_policy=UnmatchedSellPolicy(resolved_settings.unmatched_sell_policy),
        long_term_holding_days=resolved_settings.long_term_holding_days,
    )
