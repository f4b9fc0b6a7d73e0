"""
Shared fixtures for draft persistence tests.
"""

import pytest

from formdraft.core.medium import SessionMedium, reset_selected_medium
from formdraft.core.record import FormRecord
from formdraft.core.scheduler import DeferredTaskScheduler, ManualClock
from formdraft.core.store import KeyedRecordStore


@pytest.fixture(autouse=True)
def reset_medium_selection():
    """Forget the process medium between tests."""
    reset_selected_medium()
    yield
    reset_selected_medium()


@pytest.fixture
def medium():
    return SessionMedium(enabled=True)


@pytest.fixture
def store(medium):
    return KeyedRecordStore(medium)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def scheduler(clock):
    return DeferredTaskScheduler(clock=clock)


@pytest.fixture
def record():
    return FormRecord({"name": "", "email": ""})
