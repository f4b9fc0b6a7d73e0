"""
DraftSyncController: restore-once, debounced per-field writes, clear-on-baseline, cancellation.
"""

from unittest.mock import patch

import pytest

from formdraft.core.dialog import FormDialogState
from formdraft.core.record import FormRecord
from formdraft.core.schema import InvalidTransitionError, SyncPhase
from formdraft.core.sync import DraftSyncController

DEBOUNCE = 0.2


@pytest.fixture
def make_controller(record, store, scheduler):
    def _make(key="profile-form", target=None, dialog=None):
        return DraftSyncController(key, target or record, store, scheduler,
                                   dialog=dialog, debounce=DEBOUNCE)
    return _make


def flush(clock, scheduler, seconds=0.25):
    clock.advance(seconds)
    scheduler.run_due()


class TestInertController:
    """No key means no subscription, restore or writes."""

    @pytest.mark.parametrize("key", ["", None])
    def test_empty_key_is_inert(self, make_controller, record, scheduler, medium, key):
        controller = make_controller(key=key)

        assert controller.activate() is False
        assert controller.inert
        assert controller.phase is SyncPhase.IDLE

        record.change("name", "Ann")
        assert scheduler.pending() == []
        assert medium.keys() == []

        controller.deactivate()
        assert controller.phase is SyncPhase.INACTIVE


class TestDebouncedWrites:

    def test_write_after_window(self, make_controller, record, store, clock, scheduler):
        controller = make_controller()
        controller.activate()

        record.change("name", "Ann")
        assert store.get("profile-form") == {}
        assert controller.pending_fields() == ["name"]

        flush(clock, scheduler)
        assert store.get("profile-form") == {"name": "Ann"}
        assert controller.pending_fields() == []

    def test_only_last_value_in_window_is_persisted(self, make_controller, record, store, clock, scheduler):
        controller = make_controller()
        controller.activate()

        with patch.object(store, "set_field", wraps=store.set_field) as spy:
            for value in ("A", "An", "Ann"):
                record.change("name", value)
                clock.advance(0.05)
            flush(clock, scheduler)

        spy.assert_called_once_with("profile-form", "name", "Ann")

    def test_fields_debounce_independently(self, make_controller, record, store, clock, scheduler):
        controller = make_controller()
        controller.activate()

        record.change("name", "Ann")
        clock.advance(0.1)
        record.change("email", "ann@example.com")

        flush(clock, scheduler, 0.15)
        assert store.get("profile-form") == {"name": "Ann"}

        flush(clock, scheduler, 0.1)
        assert store.get("profile-form") == {"name": "Ann", "email": "ann@example.com"}

    def test_unchanged_value_is_not_rewritten(self, make_controller, record, store, scheduler):
        store.set_field("profile-form", "name", "Ann")
        record.set_loading(True)  # Skip restore so the record still differs
        controller = make_controller()
        controller.activate()
        record.set_loading(False)

        record.change("name", "Ann")
        assert scheduler.pending() == []

    def test_editing_back_to_stored_value_cancels_write(self, make_controller, record, store, clock, scheduler):
        store.set_field("profile-form", "name", "Bob")
        controller = make_controller()
        controller.activate()

        record.change("name", "Bo")
        assert controller.pending_fields() == ["name"]
        record.change("name", "Bob")
        assert controller.pending_fields() == []

        flush(clock, scheduler)
        assert store.get("profile-form") == {"name": "Bob"}


class TestClearOnBaseline:

    def test_returning_to_baseline_clears_draft(self, make_controller, record, store, medium, clock, scheduler):
        controller = make_controller()
        controller.activate()

        record.change("name", "Ann")
        record.change("email", "ann@example.com")
        flush(clock, scheduler)
        assert store.get("profile-form") == {"name": "Ann", "email": "ann@example.com"}

        record.change("email", "")
        record.change("name", "")

        assert store.get("profile-form") == {}
        assert medium.read("profile-form") is None

    def test_baseline_cancels_pending_writes(self, make_controller, record, store, clock, scheduler):
        controller = make_controller()
        controller.activate()

        record.change("name", "Ann")
        record.change("name", "")

        assert scheduler.pending() == []
        flush(clock, scheduler)
        assert store.get("profile-form") == {}

    def test_baseline_uses_empty_collapsing(self, make_controller, store, clock, scheduler):
        target = FormRecord({"name": "", "tags": []})
        controller = make_controller(target=target)
        controller.activate()

        target.change("name", "Ann")
        flush(clock, scheduler)
        target.change("tags", None)
        target.change("name", None)

        assert store.get("profile-form") == {}


class TestRestore:

    def test_restores_stored_fields_as_user_edits(self, make_controller, record, store):
        store.set_field("profile-form", "name", "Bob")
        controller = make_controller()

        assert controller.activate() is True

        assert record.get_value("name") == "Bob"
        assert record.meta("name").dirty is True
        assert record.meta("name").touched is True
        assert record.meta("email").dirty is False
        assert controller.phase is SyncPhase.SYNCING

    def test_restore_does_not_schedule_writes(self, make_controller, store, scheduler):
        store.set_field("profile-form", "name", "Bob")
        make_controller().activate()
        assert scheduler.pending() == []

    def test_restore_fires_at_most_once(self, make_controller, record, store):
        store.set_field("profile-form", "name", "Bob")
        controller = make_controller()

        with patch.object(record, "set_field_value", wraps=record.set_field_value) as spy:
            controller.activate()
            assert controller.activate() is False
            record.change("email", "x@example.com")

        assert spy.call_count == 1

    def test_nothing_to_restore(self, make_controller, record):
        controller = make_controller()
        controller.activate()
        assert record.get_snapshot() == {"name": "", "email": ""}
        assert controller.phase is SyncPhase.SYNCING

    def test_skipped_when_dialog_disabled(self, make_controller, record, store):
        store.set_field("profile-form", "name", "Bob")
        dialog = FormDialogState()
        dialog.set_disabled(True)

        make_controller(dialog=dialog).activate()

        assert record.get_value("name") == ""
        assert store.get("profile-form") == {"name": "Bob"}

    def test_skipped_when_dialog_closed(self, make_controller, record, store):
        store.set_field("profile-form", "name", "Bob")
        make_controller(dialog=FormDialogState(open=False)).activate()
        assert record.get_value("name") == ""

    def test_skipped_while_record_loading(self, make_controller, store):
        store.set_field("profile-form", "name", "Bob")
        target = FormRecord({"name": ""}, is_loading=True)

        make_controller(target=target).activate()
        assert target.get_value("name") == ""

    def test_restore_happens_before_writes(self, make_controller, record, store, clock, scheduler):
        store.set_field("profile-form", "name", "Bob")
        make_controller().activate()

        record.change("name", "Bobby")
        flush(clock, scheduler)
        assert store.get("profile-form") == {"name": "Bobby"}


class TestDeactivation:

    def test_pending_write_cancelled(self, make_controller, record, store, clock, scheduler):
        controller = make_controller()
        controller.activate()

        record.change("name", "Ann")
        controller.deactivate()

        assert scheduler.pending() == []
        flush(clock, scheduler)
        assert store.get("profile-form") == {}
        assert controller.phase is SyncPhase.INACTIVE

    def test_events_after_deactivation_ignored(self, make_controller, record, scheduler):
        controller = make_controller()
        controller.activate()
        controller.deactivate()

        record.change("name", "Ann")
        assert scheduler.pending() == []

    def test_deactivate_is_idempotent(self, make_controller):
        controller = make_controller()
        controller.activate()
        controller.deactivate()
        controller.deactivate()
        assert controller.phase is SyncPhase.INACTIVE

    def test_context_manager(self, make_controller, record, store, clock, scheduler):
        with make_controller() as controller:
            record.change("name", "Ann")
            assert controller.phase is SyncPhase.SYNCING
        assert controller.phase is SyncPhase.INACTIVE
        flush(clock, scheduler)
        assert store.get("profile-form") == {}

    def test_other_controllers_keep_their_writes(self, make_controller, record, store, clock, scheduler):
        other_record = FormRecord({"name": ""})
        first = make_controller()
        second = make_controller(key="other-form", target=other_record)
        first.activate()
        second.activate()

        record.change("name", "Ann")
        other_record.change("name", "Zed")
        first.deactivate()

        flush(clock, scheduler)
        assert store.get("profile-form") == {}
        assert store.get("other-form") == {"name": "Zed"}


class TestSingleWriter:

    def test_second_activation_on_same_key_is_inert(self, make_controller, store, clock, scheduler):
        second_record = FormRecord({"name": "", "email": ""})
        first = make_controller()
        second = make_controller(target=second_record)

        assert first.activate() is True
        assert second.activate() is False
        assert second.inert

        second_record.change("name", "Zed")
        flush(clock, scheduler)
        assert store.get("profile-form") == {}

    def test_key_released_on_deactivate(self, make_controller):
        first = make_controller()
        first.activate()
        first.deactivate()

        assert make_controller().activate() is True


class TestTransitions:

    def test_restoring_unreachable_from_idle(self, make_controller):
        controller = make_controller()
        with pytest.raises(InvalidTransitionError):
            controller._transition(SyncPhase.RESTORING)

    def test_restoring_unreachable_after_sync(self, make_controller):
        controller = make_controller()
        controller.activate()
        with pytest.raises(InvalidTransitionError):
            controller._transition(SyncPhase.RESTORING)
