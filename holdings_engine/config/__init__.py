"""Configuration package for runtime settings and symbol classification."""

from .classification import (
	CLASSIFICATION_CONFIG_VERSION,
	ClassificationConfig,
	ClassificationLoadError,
	SymbolClassification,
	config_load_classification,
	config_parse_classification,
)
from .settings import EngineSettings, SettingsLoadError, config_load_settings

__all__ = [
	"CLASSIFICATION_CONFIG_VERSION",
	"ClassificationConfig",
	"ClassificationLoadError",
	"EngineSettings",
	"SettingsLoadError",
	"SymbolClassification",
	"config_load_classification",
	"config_load_settings",
	"config_parse_classification",
]
