"""Shared fixtures for the promptshelf tests."""

import os
import tempfile
from datetime import datetime, timedelta

# Keep test runs from writing into the real log directory
os.environ.setdefault("PROMPTSHELF_LOG_DIR", tempfile.mkdtemp(prefix="promptshelf-logs-"))

import pytest

from promptshelf.models import PromptTree, seed_tree
from promptshelf.store import HierarchyStore


class FakeClock:
    """A clock the tests can move by hand."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 12, 0, 0))


@pytest.fixture
def store(clock):
    """A store holding the seed shelf: Marketing Campaign / Social Media with two prompts."""
    return HierarchyStore(seed_tree(clock()), clock=clock)


@pytest.fixture
def empty_store(clock):
    return HierarchyStore(PromptTree(), clock=clock)
