from __future__ import annotations

from .primary import PrimaryClient
from .secondary import SecondaryClient

__all__ = ["PrimaryClient", "SecondaryClient"]
