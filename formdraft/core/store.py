"""
KeyedRecordStore - per-key persisted drafts (field name -> last edited value).

Each logical key resolves to one DraftUnit per store instance, so every consumer of
the same form shares one draft. Medium failures degrade the store to memory for the
rest of the process instead of reaching the caller.
"""

from typing import Any, Dict, List, Optional

from .envelope import decode_draft, encode_draft
from .medium import StorageMedium, select_medium
from .schema import DraftSummary, StorageUnavailableError
from ..util.logging import logger


class DraftUnit:
    """In-memory view of one persisted draft."""

    def __init__(self, key: str, fields: Optional[Dict[str, Any]] = None):
        self.key = key
        self.fields: Dict[str, Any] = dict(fields or {})

    def __len__(self):
        return len(self.fields)

    def __repr__(self):
        return f"DraftUnit(key={self.key!r}, fields={sorted(self.fields)})"


class KeyedRecordStore:
    """Registry of drafts keyed by logical form key."""

    def __init__(self, medium: Optional[StorageMedium] = None):
        self.medium = medium if medium is not None else select_medium()
        self._units: Dict[str, DraftUnit] = {}
        self._claims: Dict[str, object] = {}
        self._degraded = False

    @property
    def degraded(self) -> bool:
        """True once the medium failed and the store runs from memory."""
        return self._degraded

    def _degrade(self, error: Exception) -> None:
        if not self._degraded:
            self._degraded = True
            logger.log_storage_fallback(self.medium.name, error, "memory")

    def draft(self, key: str) -> DraftUnit:
        """Return the shared unit for key, loading it from the medium on first use."""
        unit = self._units.get(key)
        if unit is not None:
            return unit

        fields: Dict[str, Any] = {}
        if not self._degraded:
            try:
                fields = decode_draft(key, self.medium.read(key))
            except StorageUnavailableError as e:
                self._degrade(e)

        unit = DraftUnit(key, fields)
        self._units[key] = unit
        return unit

    def get(self, key: Optional[str]) -> Dict[str, Any]:
        """Return a copy of the draft for key; absent or empty key reads as empty."""
        if not key:
            return {}
        return dict(self.draft(key).fields)

    def set_field(self, key: Optional[str], field_name: str, value: Any) -> None:
        """Upsert one field of a draft."""
        if not key:
            return
        unit = self.draft(key)
        unit.fields[field_name] = value
        logger.log_draft_operation("set_field", key, field_name, value)
        self._persist(unit)

    def remove_field(self, key: Optional[str], field_name: str) -> None:
        """Delete one field; no-op if it is not stored."""
        if not key:
            return
        unit = self.draft(key)
        if field_name not in unit.fields:
            return
        del unit.fields[field_name]
        logger.log_draft_operation("remove_field", key, field_name)
        self._persist(unit)

    def clear(self, key: Optional[str]) -> None:
        """Delete the whole draft for key."""
        if not key:
            return
        unit = self.draft(key)
        unit.fields.clear()
        logger.log_draft_operation("clear", key)
        self._persist(unit)

    def keys(self) -> List[str]:
        """List keys with a non-empty draft (medium plus in-memory units)."""
        found = set()
        if not self._degraded:
            try:
                found.update(self.medium.keys())
            except StorageUnavailableError as e:
                self._degrade(e)
        for key, unit in self._units.items():
            if unit.fields:
                found.add(key)
            else:
                found.discard(key)
        return sorted(found)

    def summaries(self) -> List[DraftSummary]:
        """List persisted drafts with their fields."""
        return [DraftSummary(key=key, fields=self.get(key)) for key in self.keys()]

    def claim(self, key: str, owner: object) -> bool:
        """Register owner as the single writer for key; a second live owner is rejected."""
        holder = self._claims.get(key)
        if holder is not None and holder is not owner:
            logger.warning(f"Draft key '{key}' already has an active writer; rejecting second activation")
            return False
        self._claims[key] = owner
        return True

    def release(self, key: str, owner: object) -> None:
        """Drop owner's claim on key if it holds one."""
        if self._claims.get(key) is owner:
            del self._claims[key]

    def claimed(self, key: str) -> bool:
        return key in self._claims

    def _persist(self, unit: DraftUnit) -> None:
        if self._degraded:
            return

        try:
            if unit.fields:
                payload = encode_draft(unit.fields)
            else:
                payload = None
        except (TypeError, ValueError) as e:
            # Value cannot be encoded; it stays in memory only
            logger.error(f"Failed to encode draft '{unit.key}': {e}")
            return

        try:
            if payload is None:
                self.medium.remove(unit.key)
            else:
                self.medium.write(unit.key, payload)
        except StorageUnavailableError as e:
            self._degrade(e)


def create_store(medium: Optional[StorageMedium] = None) -> KeyedRecordStore:
    """Build a store to pass to controllers by reference."""
    return KeyedRecordStore(medium)
