
# Ensures project root is importable for tests (so 'data', 'models', 'services' can be imported)
# and provides in-memory stand-ins for the storage, clipboard and cursor collaborators.
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from data.blob_store import InMemoryBlobStore  # noqa: E402
from data.prompt_repository import PromptRepository  # noqa: E402
from services.cursor_control import CursorMoveResult  # noqa: E402
from models.errors import CursorMoveError  # noqa: E402


class FrozenClock:
    def __init__(self, start=datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds=1):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeClipboard:
    def __init__(self, text=None, read_error=None, write_error=None, paste_error=None):
        self.text = text
        self.read_error = read_error
        self.write_error = write_error
        self.paste_error = paste_error
        self.reads = 0
        self.pasted = []

    def read_text(self):
        self.reads += 1
        if self.read_error is not None:
            raise self.read_error
        return self.text

    def write_text(self, value):
        if self.write_error is not None:
            raise self.write_error
        self.text = value

    def paste_into_active_application(self, value):
        if self.paste_error is not None:
            raise self.paste_error
        self.pasted.append(value)


class FakeCursor:
    def __init__(self, supported=True):
        self.supported = supported
        self.moves = []

    def is_cursor_control_supported(self):
        return self.supported

    def move_caret_left(self, count):
        if count <= 0:
            return CursorMoveResult(success=True)
        if not self.supported:
            return CursorMoveResult(success=False, error=CursorMoveError("not supported"))
        self.moves.append(count)
        return CursorMoveResult(success=True)


class FailingBlobStore(InMemoryBlobStore):
    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_reads = False
        self.fail_writes = False

    def get_item(self, key):
        if self.fail_reads:
            raise OSError("disk unreadable")
        return super().get_item(key)

    def set_item(self, key, value):
        if self.fail_writes:
            raise OSError("disk full")
        super().set_item(key, value)

    def remove_item(self, key):
        if self.fail_writes:
            raise OSError("disk full")
        super().remove_item(key)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store():
    return FailingBlobStore()


@pytest.fixture
def repo(store, clock):
    return PromptRepository(store, clock=clock)


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def cursor():
    return FakeCursor()
