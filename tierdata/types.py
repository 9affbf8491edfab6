"""
tierdata/types.py

Error taxonomy and the tagged outcome every tier attempt is reduced to.

Tier code raises; the cascade converts what was raised into a TierOutcome so
the orchestration logic only ever branches on (status, error_kind).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ResourceKind(str, Enum):
    POSTS = "posts"
    NOTIFICATIONS = "notifications"
    PROFILES = "profiles"
    ROLES = "roles"


# Local Mirror key per resource kind
MIRROR_KEYS: Dict[ResourceKind, str] = {
    ResourceKind.POSTS: "demo_posts",
    ResourceKind.NOTIFICATIONS: "demo_notifications",
    ResourceKind.PROFILES: "demo_profiles",
    ResourceKind.ROLES: "mock_roles",
}


class Tier(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    MIRROR = "mirror"
    # Write synthesized in the mirror because no remote tier accepted it.
    LOCAL = "local"


class ErrorKind(str, Enum):
    CONFIGURATION = "CONFIGURATION"   # credentials absent/placeholder: silent skip
    TRANSIENT = "TRANSIENT"           # network, timeout, 5xx
    REJECTED = "REJECTED"             # other non-2xx or malformed remote payload
    VALIDATION = "VALIDATION"         # invalid caller payload (propagates)


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


# ----------------------------
# Exceptions
# ----------------------------

class DataLayerError(Exception):
    kind: ErrorKind = ErrorKind.TRANSIENT


class ConfigurationError(DataLayerError):
    kind = ErrorKind.CONFIGURATION


class TierError(DataLayerError):
    """A remote tier answered badly or not at all."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class TransientError(TierError):
    kind = ErrorKind.TRANSIENT


class RejectedError(TierError):
    kind = ErrorKind.REJECTED


class ValidationError(DataLayerError):
    """Invalid write payload. The only error callers ever see."""

    kind = ErrorKind.VALIDATION


# ----------------------------
# Outcomes
# ----------------------------

@dataclass(frozen=True)
class TierOutcome:
    tier: Tier
    status: OutcomeStatus
    data: Any = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @classmethod
    def success(cls, tier: Tier, data: Any) -> "TierOutcome":
        return cls(tier=tier, status=OutcomeStatus.SUCCESS, data=data)

    @classmethod
    def empty(cls, tier: Tier) -> "TierOutcome":
        return cls(tier=tier, status=OutcomeStatus.EMPTY)

    @classmethod
    def error(cls, tier: Tier, kind: ErrorKind, message: str = "") -> "TierOutcome":
        return cls(tier=tier, status=OutcomeStatus.ERROR, error_kind=kind, error_message=message)

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @property
    def is_empty(self) -> bool:
        return self.status == OutcomeStatus.EMPTY


@dataclass
class DataResult:
    """What a cascade hands back: the data plus where it came from."""

    data: Any
    source: Tier
    attempts: List[TierOutcome] = field(default_factory=list)

    @property
    def from_remote(self) -> bool:
        return self.source in (Tier.PRIMARY, Tier.SECONDARY)
