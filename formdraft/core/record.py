"""
Live record interface and an in-memory form record implementing it.

The draft controller and attempt limiter only depend on the LiveRecord protocol. FormRecord
is the reference implementation used by hosts without their own form model, and by tests.
"""

import copy
from typing import Any, Callable, Dict, List, Optional, Protocol

from .compare import deep_equal
from .schema import ChangeEvent, FieldMeta
from ..util.logging import logger

Validator = Callable[[Dict[str, Any]], Dict[str, str]]


class Subscription:
    """Handle returned by watch/subscribe; unsubscribe() is idempotent."""

    def __init__(self, callbacks: List[Callable], callback: Callable):
        self._callbacks = callbacks
        self._callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            if self._callback in self._callbacks:
                self._callbacks.remove(self._callback)


class LiveRecord(Protocol):
    """What the draft controller and attempt limiter need from an editable record."""

    submit_count: int
    is_loading: bool

    def watch(self, callback: Callable[[ChangeEvent], None]) -> Subscription: ...

    def subscribe_state(self, callback: Callable[["LiveRecord"], None]) -> Subscription: ...

    def get_snapshot(self) -> Dict[str, Any]: ...

    def get_baseline(self) -> Dict[str, Any]: ...

    def set_field_value(self, name: str, value: Any, dirty: bool = False, touched: bool = False) -> None: ...

    def get_dirty_or_invalid_field_names(self) -> List[str]: ...

    def reset_field(self, name: str, keep_touched: bool = False) -> None: ...


class FormRecord:
    """In-memory editable record with baseline, dirty/touched/error tracking and submit counting."""

    def __init__(self, defaults: Optional[Dict[str, Any]] = None, is_loading: bool = False):
        self._defaults: Dict[str, Any] = copy.deepcopy(defaults or {})
        self._values: Dict[str, Any] = copy.deepcopy(self._defaults)
        self._meta: Dict[str, FieldMeta] = {}
        self._watchers: List[Callable[[ChangeEvent], None]] = []
        self._state_listeners: List[Callable[["FormRecord"], None]] = []
        self.submit_count = 0
        self.is_submitting = False
        self.is_loading = is_loading

    # Subscriptions

    def watch(self, callback: Callable[[ChangeEvent], None]) -> Subscription:
        """Subscribe to field value changes."""
        self._watchers.append(callback)
        return Subscription(self._watchers, callback)

    def subscribe_state(self, callback: Callable[["FormRecord"], None]) -> Subscription:
        """Subscribe to form state changes (submit count, dirty, errors, loading)."""
        self._state_listeners.append(callback)
        return Subscription(self._state_listeners, callback)

    def _emit_change(self, name: Optional[str]) -> None:
        event = ChangeEvent(
            field_name=name,
            value=copy.deepcopy(self._values.get(name)) if name is not None else None,
            snapshot=self.get_snapshot()
        )
        for callback in list(self._watchers):
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Error in watch callback: {e}")

    def _notify_state(self) -> None:
        for callback in list(self._state_listeners):
            try:
                callback(self)
            except Exception as e:
                logger.warning(f"Error in state callback: {e}")

    # Reads

    def get_snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self._values)

    def get_baseline(self) -> Dict[str, Any]:
        return copy.deepcopy(self._defaults)

    def get_value(self, name: str) -> Any:
        return self._values.get(name)

    def meta(self, name: str) -> FieldMeta:
        """Field markers (a fresh clean FieldMeta for untouched fields)."""
        return self._meta.setdefault(name, FieldMeta())

    @property
    def is_dirty(self) -> bool:
        return any(meta.dirty for meta in self._meta.values())

    @property
    def errors(self) -> Dict[str, str]:
        return {name: meta.error for name, meta in self._meta.items() if meta.error}

    def get_dirty_or_invalid_field_names(self) -> List[str]:
        return sorted(name for name, meta in self._meta.items() if meta.dirty or meta.error)

    # Writes

    def change(self, name: str, value: Any) -> None:
        """A user edit: dirty when the value differs from its default, always touched."""
        self._values[name] = value
        meta = self.meta(name)
        meta.dirty = not deep_equal(value, self._defaults.get(name))
        meta.touched = True
        self._emit_change(name)
        self._notify_state()

    def set_field_value(self, name: str, value: Any, dirty: bool = False, touched: bool = False) -> None:
        """Programmatic write; the markers are only ever raised here, never lowered."""
        self._values[name] = value
        meta = self.meta(name)
        if dirty:
            meta.dirty = True
        if touched:
            meta.touched = True
        self._emit_change(name)
        self._notify_state()

    def set_error(self, name: str, message: Optional[str]) -> None:
        self.meta(name).error = message
        self._notify_state()

    def reset_field(self, name: str, keep_touched: bool = False) -> None:
        """Revert a field to its committed (default) value and clear dirty and error marks."""
        self._values[name] = copy.deepcopy(self._defaults.get(name))
        meta = self.meta(name)
        meta.dirty = False
        meta.error = None
        if not keep_touched:
            meta.touched = False
        self._emit_change(name)
        self._notify_state()

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading
        self._notify_state()

    def submit(self, validator: Optional[Validator] = None,
               handler: Optional[Callable[[Dict[str, Any]], None]] = None) -> bool:
        """Count a submission attempt, apply validation errors and call handler when valid."""
        self.submit_count += 1
        self.is_submitting = True
        try:
            errors = validator(self.get_snapshot()) if validator else {}
            for name in list(self._meta):
                self._meta[name].error = None
            for name, message in (errors or {}).items():
                self.meta(name).error = message
            valid = not errors
            if valid and handler:
                handler(self.get_snapshot())
        finally:
            self.is_submitting = False
            self._notify_state()
        return valid
