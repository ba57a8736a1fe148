"""
Configuration file support for CommuteCalc
"""

from .manager import ConfigManager, ConfigManagerError
from .models import (
    AggregatorConfig,
    AppConfig,
    ConfigFormat,
    MarkerEntry,
    ProviderConfig,
    RelayConfig,
)
from .parser import ConfigParser, ConfigParserError

__all__ = [
    "AppConfig",
    "AggregatorConfig",
    "ProviderConfig",
    "RelayConfig",
    "MarkerEntry",
    "ConfigFormat",
    "ConfigParser",
    "ConfigParserError",
    "ConfigManager",
    "ConfigManagerError",
]
