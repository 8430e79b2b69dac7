"""
Pension Runtime v1.0

Request-scoped orchestration around the Pension Kernel: configuration,
scheme registry lookup, response assembly and observability.
"""

from .config import ConfigurationError, Settings, load_settings
from .observability import CalculationMetrics, collect_metrics, configure_logging
from .response import assemble_response
from .scheme_registry import SchemeRegistryClient
from .session import CalculationSession, build_rate_source

__all__ = [
    "ConfigurationError",
    "Settings",
    "load_settings",
    "CalculationMetrics",
    "collect_metrics",
    "configure_logging",
    "assemble_response",
    "SchemeRegistryClient",
    "CalculationSession",
    "build_rate_source",
]
