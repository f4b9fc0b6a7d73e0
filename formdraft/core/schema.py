"""
Core records and error types shared by the draft store, sync controller and attempt limiter.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class DraftError(Exception):
    """Base error for draft persistence."""


class StorageUnavailableError(DraftError):
    """Raised by a storage medium that cannot read or write; always recovered by the store."""


class InvalidTransitionError(DraftError):
    """Raised when a lifecycle state machine is driven through an illegal transition."""


class _Missing:
    """Marker for an absent field (distinct from None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False


MISSING = _Missing()


@dataclass(frozen=True)
class ChangeEvent:
    field_name: Optional[str]
    value: Any
    snapshot: Dict[str, Any]


@dataclass
class FieldMeta:
    dirty: bool = False
    touched: bool = False
    error: Optional[str] = None


@dataclass
class AttemptState:
    count: int = 0
    ceiling: Optional[int] = None  # None means unbounded
    frozen: bool = False


class SyncPhase(Enum):
    IDLE = "idle"
    WATCHING = "watching"
    RESTORING = "restoring"
    SYNCING = "syncing"
    INACTIVE = "inactive"


class LimiterPhase(Enum):
    ACTIVE = "active"
    FROZEN = "frozen"


@dataclass
class DraftSummary:
    """Listing row for persisted drafts."""
    key: str
    fields: Dict[str, Any] = field(default_factory=dict)
