"""Shared test fixtures for sift tests."""

import random

import pytest

from sift.config import SiftConfig
from sift.store import SnapshotStore, key_for


class _Handle:
    def __init__(self, due, callback, args):
        self.due = due
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Virtual clock: callbacks run only when advance() passes their due time."""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay, callback, *args):
        handle = _Handle(self.now + delay, callback, args)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.handles.remove(handle)
            self.now = handle.due
            handle.callback(*handle.args)
        self.now = target


class CountingStore(SnapshotStore):
    """SnapshotStore that remembers every tree it was asked to save."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.saved = []

    def save(self, root):
        self.saved.append(root)
        return super().save(root)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "sift.db")


@pytest.fixture
def make_config(db_path):
    def _make(**overrides):
        overrides.setdefault("db_path", db_path)
        return SiftConfig(**overrides)
    return _make


@pytest.fixture
def make_store(db_path):
    def _make(config):
        return CountingStore(config.db_path, key=key_for(config.layout_kind))
    return _make


@pytest.fixture
def rng():
    return random.Random(7)
