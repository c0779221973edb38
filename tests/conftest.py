"""
Shared test configuration.

Adds src/ to sys.path so the flat modules (``constants``,
``document_store``) and the namespace folders (``analytics``,
``correlations``, ``pipeline``) import the same way the code does.

Fixtures:
  - ``store``: a fresh in-memory document store
  - ``clock``: a controllable UTC clock
  - ``make_entry``: raw journal-entry dict factory
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_src_dir = os.path.join(_project_root, "src")

if _src_dir not in sys.path:
    sys.path.insert(0, _src_dir)

from document_store import InMemoryDocumentStore  # noqa: E402

# Monday 2 March 2026
BASE_DAY = datetime(2026, 3, 2, 10, 0)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 20, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_entry():
    """Build a raw entry; ``day`` offsets from Monday 2 March 2026 10:00."""

    def _make(i, mood=None, content="", day=None, at=None, **fields):
        created = at or (BASE_DAY + timedelta(days=i if day is None else day))
        entry = {"id": f"e{i}", "content": content, "createdAt": created.isoformat()}
        if mood is not None:
            entry["mood_score"] = mood
        entry.update(fields)
        return entry

    return _make
