"""Tiered data access: privileged API -> direct table queries -> local mirror with demo seed.

Contract:
- Reads always return the best available data, possibly demo data; tier failures never escape.
- Writes never fail for a valid payload; ValidationError is the only error callers see.
- Successful remote writes are echoed into the local mirror.
"""
from __future__ import annotations

from .config import DataLayerConfig, load_config
from .context import DataContext, build_context
from .layer import DataLayer
from .types import (
    ConfigurationError,
    DataLayerError,
    DataResult,
    RejectedError,
    ResourceKind,
    Tier,
    TierOutcome,
    TransientError,
    ValidationError,
)

__all__ = [
    "DataLayerConfig",
    "load_config",
    "DataContext",
    "build_context",
    "DataLayer",
    "ConfigurationError",
    "DataLayerError",
    "DataResult",
    "RejectedError",
    "ResourceKind",
    "Tier",
    "TierOutcome",
    "TransientError",
    "ValidationError",
]
