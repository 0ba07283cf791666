"""Shared fixtures for the Speak Practice tests."""

import pytest

from factories import Clock
from speak_practice.services.progress_service import ProgressService
from speak_practice.services.storage import MemoryStore


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def progress(store, clock):
    return ProgressService(store, max_sessions=100, clock=clock)
