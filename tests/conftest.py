import sys
from pathlib import Path

import pytest

# Ensure the repository root is on sys.path so imports like
# 'lfs_metadata...' and 'main' resolve when pytest is run without
# installing the package.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from lfs_metadata.metadata import MetadataStore  # noqa: E402
from lfs_metadata.metadata.auth import allow_all  # noqa: E402

FAST_ITERATIONS = 1000


class RecordingLogger:
    """Collects structured log calls instead of printing them"""

    def __init__(self):
        self.events = []

    def _record(self, level, event, **kw):
        self.events.append((level, event, kw))

    def debug(self, event, **kw):
        self._record("debug", event, **kw)

    def info(self, event, **kw):
        self._record("info", event, **kw)

    def warning(self, event, **kw):
        self._record("warning", event, **kw)

    def error(self, event, **kw):
        self._record("error", event, **kw)

    def errors(self):
        return [kw for level, _, kw in self.events if level == "error"]


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "lfs.db")


@pytest.fixture
def recorder():
    return RecordingLogger()


@pytest.fixture
def store(db_path, recorder):
    s = MetadataStore(db_path, authenticator=allow_all, logger=recorder,
                      open_timeout=0.5, hash_iterations=FAST_ITERATIONS)
    yield s
    s.close()


@pytest.fixture
def basic_store(db_path, recorder):
    """Store using the default Basic authenticator backed by its users bucket"""
    s = MetadataStore(db_path, logger=recorder, open_timeout=0.5,
                      hash_iterations=FAST_ITERATIONS)
    yield s
    s.close()
