"""
DraftSyncController - keeps a draft in step with a live record's edits.

Lifecycle per activation:
    IDLE -> WATCHING -> [RESTORING ->] SYNCING -> INACTIVE

RESTORING is only reachable from WATCHING, and WATCHING is only entered once, so a draft
is pushed into the record at most once per activation. Field writes are debounced per
field; deactivation cancels pending writes before the subscription is dropped.
"""

from typing import Any, Dict, List, Optional

from .compare import deep_equal
from .config import get_debounce_seconds
from .dialog import FormDialogState
from .record import LiveRecord, Subscription
from .scheduler import DeferredTaskScheduler
from .schema import MISSING, ChangeEvent, InvalidTransitionError, SyncPhase
from .store import KeyedRecordStore
from ..util.logging import logger

_TRANSITIONS = {
    SyncPhase.IDLE: {SyncPhase.WATCHING, SyncPhase.INACTIVE},
    SyncPhase.WATCHING: {SyncPhase.RESTORING, SyncPhase.SYNCING, SyncPhase.INACTIVE},
    SyncPhase.RESTORING: {SyncPhase.SYNCING, SyncPhase.INACTIVE},
    SyncPhase.SYNCING: {SyncPhase.INACTIVE},
    SyncPhase.INACTIVE: set(),
}


class DraftSyncController:
    """Binds one logical key to one live record for the lifetime of a mount."""

    def __init__(self, key: Optional[str], record: LiveRecord, store: KeyedRecordStore,
                 scheduler: DeferredTaskScheduler, dialog: Optional[FormDialogState] = None,
                 debounce: Optional[float] = None):
        self.key = key or ""
        self.record = record
        self.store = store
        self.scheduler = scheduler
        self.dialog = dialog
        self.debounce = get_debounce_seconds() if debounce is None else debounce
        self._phase = SyncPhase.IDLE
        self._subscription: Optional[Subscription] = None
        self._baseline: Dict[str, Any] = {}
        self._claimed = False
        self._task_prefix = f"draft:{self.key}:{id(self):x}:"

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def inert(self) -> bool:
        """True when this controller never subscribed (no key, or key owned elsewhere)."""
        return self._subscription is None

    def _transition(self, target: SyncPhase) -> None:
        if target not in _TRANSITIONS[self._phase]:
            raise InvalidTransitionError(f"{self._phase.value} -> {target.value}")
        logger.debug(f"Draft '{self.key}': {self._phase.value} -> {target.value}")
        self._phase = target

    def activate(self) -> bool:
        """Subscribe to the record and restore the stored draft once. Returns False when inert."""
        if self._phase is not SyncPhase.IDLE:
            logger.warning(f"Draft '{self.key}' controller already activated ({self._phase.value})")
            return False

        if not self.key:
            return False

        if not self.store.claim(self.key, self):
            return False
        self._claimed = True

        self._baseline = self.record.get_baseline()
        self._subscription = self.record.watch(self._on_change)
        self._transition(SyncPhase.WATCHING)

        if self._can_restore():
            self._transition(SyncPhase.RESTORING)
            self._restore()

        self._transition(SyncPhase.SYNCING)
        return True

    def deactivate(self) -> None:
        """Cancel pending writes and unsubscribe; nothing is flushed."""
        if self._phase is SyncPhase.INACTIVE:
            return

        cancelled = self.scheduler.cancel_all(self._task_prefix)
        if cancelled:
            logger.debug(f"Draft '{self.key}': cancelled {cancelled} pending write(s)")

        if self._subscription is not None:
            self._subscription.unsubscribe()
        if self._claimed:
            self.store.release(self.key, self)
            self._claimed = False

        self._transition(SyncPhase.INACTIVE)

    def __enter__(self):
        self.activate()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.deactivate()
        return False

    def pending_fields(self) -> List[str]:
        """Fields with a debounced write still waiting."""
        return [task_id[len(self._task_prefix):] for task_id in self.scheduler.pending(self._task_prefix)]

    def _can_restore(self) -> bool:
        draft = self.store.get(self.key)
        if not draft:
            return False

        reason = None
        if self.dialog is not None and self.dialog.disabled:
            reason = "record disabled"
        elif self.dialog is not None and not self.dialog.open:
            reason = "dialog closed"
        elif self.record.is_loading:
            reason = "record loading"

        if reason:
            logger.log_restore(self.key, list(draft), status="skipped", reason=reason)
            return False
        return True

    def _restore(self) -> None:
        draft = self.store.get(self.key)
        for name, value in draft.items():
            self.record.set_field_value(name, value, dirty=True, touched=True)
        logger.log_restore(self.key, list(draft))

    def _on_change(self, event: ChangeEvent) -> None:
        # Events raised by the restore itself carry stored values; nothing to write
        if self._phase is not SyncPhase.SYNCING:
            return

        if deep_equal(event.snapshot, self._baseline, collapse_empty=True):
            self.scheduler.cancel_all(self._task_prefix)
            if self.store.get(self.key):
                self.store.clear(self.key)
            return

        name = event.field_name
        if name is None:
            return

        task_id = self._task_prefix + name
        if self.store.get(self.key).get(name, MISSING) == event.value:
            # Edited back to the stored value inside the window
            self.scheduler.cancel(task_id)
            return

        value = event.value
        self.scheduler.schedule(task_id, self.debounce, lambda: self._write(name, value))

    def _write(self, name: str, value: Any) -> None:
        if self._phase is not SyncPhase.SYNCING:
            return
        self.store.set_field(self.key, name, value)
