"""
Dialog freeze state shared by a form's controls, plus the button enablement rules.
"""

from typing import Callable, List, Optional

from .record import Subscription
from ..util.logging import logger


class FormDialogState:
    """Open and disabled flags for one dialog context.

    The disabled flag has no way back to False on the same instance: the only exit from a
    frozen dialog is reopen(), which builds a fresh context.
    """

    def __init__(self, open: bool = True, on_close: Optional[Callable[[], None]] = None):
        self.open = open
        self.disabled = False
        self._on_close = on_close
        self._listeners: List[Callable[["FormDialogState"], None]] = []

    def subscribe(self, callback: Callable[["FormDialogState"], None]) -> Subscription:
        self._listeners.append(callback)
        return Subscription(self._listeners, callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception as e:
                logger.warning(f"Error in dialog callback: {e}")

    def set_disabled(self, disabled: bool) -> None:
        if disabled == self.disabled:
            return
        if not disabled:
            logger.warning("Ignoring request to re-enable a frozen dialog; reopen it instead")
            return
        self.disabled = True
        self._notify()

    def open_dialog(self) -> None:
        if not self.open:
            self.open = True
            self._notify()

    def close_dialog(self) -> None:
        if self.open:
            self.open = False
            if self._on_close:
                self._on_close()
            self._notify()

    def reopen(self) -> "FormDialogState":
        """Close this context and return a fresh, enabled one."""
        self.close_dialog()
        return FormDialogState(open=True, on_close=self._on_close)


def disabled_while_loading(record, dialog: Optional[FormDialogState] = None) -> bool:
    """Submit-style controls are disabled while submitting, loading, or frozen."""
    frozen = dialog.disabled if dialog is not None else False
    return bool(getattr(record, "is_submitting", False) or record.is_loading or frozen)


def disabled_unless_dirty(record, dialog: Optional[FormDialogState] = None) -> bool:
    """Reset-style controls: returns True (disabled) unless the record is dirty and idle."""
    return not record.is_dirty or disabled_while_loading(record, dialog)
