"""
AttemptLimiter - caps submission attempts and reverts invalid edits once frozen.
"""

import math

from .dialog import FormDialogState
from .record import LiveRecord
from .schema import AttemptState, LimiterPhase
from ..util.logging import logger


def has_max_attempts(max_attempts) -> bool:
    """A ceiling only counts when it is a finite, positive number."""
    if max_attempts is None or isinstance(max_attempts, bool):
        return False
    if not isinstance(max_attempts, (int, float)):
        return False
    return math.isfinite(max_attempts) and max_attempts > 0


class AttemptLimiter:
    """Freezes a dialog once the record's submit count reaches the ceiling.

    Frozen is terminal for the instance. While the dialog is disabled, every dirty or
    invalid field is reset to its committed value, keeping its touched marker.
    """

    def __init__(self, record: LiveRecord, dialog: FormDialogState, max_attempts=None):
        self.record = record
        self.dialog = dialog
        self.max_attempts = max_attempts if has_max_attempts(max_attempts) else None
        self._phase = LimiterPhase.ACTIVE
        self._subscriptions = []
        self._reverting = False

    @property
    def phase(self) -> LimiterPhase:
        return self._phase

    @property
    def frozen(self) -> bool:
        return self._phase is LimiterPhase.FROZEN

    @property
    def state(self) -> AttemptState:
        return AttemptState(
            count=self.record.submit_count,
            ceiling=self.max_attempts,
            frozen=self.frozen
        )

    def activate(self) -> None:
        if self._subscriptions:
            return
        self._subscriptions = [
            self.record.subscribe_state(lambda _record: self.observe()),
            self.dialog.subscribe(lambda _dialog: self.observe()),
        ]
        self.observe()

    def deactivate(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

    def __enter__(self):
        self.activate()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.deactivate()
        return False

    def observe(self) -> None:
        """React to the current submit count and disabled flag."""
        self._check_ceiling()
        self._revert_if_disabled()

    def _check_ceiling(self) -> None:
        if self._phase is LimiterPhase.FROZEN or self.max_attempts is None:
            return
        if self.record.submit_count < self.max_attempts:
            return

        self._phase = LimiterPhase.FROZEN
        logger.log_freeze(self.record.submit_count, self.max_attempts)
        self.dialog.set_disabled(True)

    def _revert_if_disabled(self) -> None:
        if not self.dialog.disabled or self._reverting:
            return

        names = self.record.get_dirty_or_invalid_field_names()
        if not names:
            return

        self._reverting = True
        try:
            for name in names:
                self.record.reset_field(name, keep_touched=True)
        finally:
            self._reverting = False
        logger.log_revert(names)
