import os
import time
from pathlib import Path

from restfs.tombstone import tombstone_path

SECOND = 1_000_000_000


def set_mtime(path: str | Path, mtime_ns: int):
    os.utime(path, ns=(mtime_ns, mtime_ns))


def mtime(path: str | Path) -> int:
    return os.stat(path).st_mtime_ns


def tombstone(path: str | Path) -> Path:
    return Path(tombstone_path(str(path)))


def backdate_tombstone(path: str | Path, seconds: int = 10):
    """Move the tombstone of path into the past, so a write afterwards is guaranteed to be newer"""
    set_mtime(tombstone(path), time.time_ns() - seconds * SECOND)


def wait_until(condition, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


def check(response, expected: int, msg: str | None = None):
    assert response.status_code == expected, (
        f"{msg or ''}{': ' if msg else ''}Unexpected status: received {response.status_code} != expected {expected};"
        f" reply: {response.text}"
    )
