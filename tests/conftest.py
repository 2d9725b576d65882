"""
Pytest fixtures for the PERT planner test suite.

Provides:
- An isolated SQLite database per test for the activity store
- A small factory for Activity snapshots with a fixed duration
"""

import os
import tempfile

# Must be set before config is imported by any test module
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "pert_planner_tests.log"))
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest

from planning.models import Activity


def make_activity(activity_id, name, predecessors=(), duration=1, optimistic=None, pessimistic=None):
    """Activity whose three estimates default to the same duration (mean == duration)."""
    return Activity(
        id=activity_id,
        name=name,
        predecessors=predecessors,
        optimistic=duration if optimistic is None else optimistic,
        most_likely=duration,
        pessimistic=duration if pessimistic is None else pessimistic,
    )


@pytest.fixture
def activity_factory():
    return make_activity


@pytest.fixture
def store(tmp_path):
    """Activity store bound to a fresh SQLite file."""
    from database import operations

    engine = operations.configure_engine(f"sqlite:///{tmp_path / 'pert.db'}")
    operations.init_db()
    yield operations
    engine.dispose()
