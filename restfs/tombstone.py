"""
Tombstones for soft deletion

Deleting an object never removes it directly. Instead, an empty marker file is created next to it
(``<path>.restfs-deleted``). The object is hidden as long as it is not newer than its tombstone, and
the garbage collector (see restfs.gc) removes objects and tombstones later on.
"""

import logging
import os
import stat
from pathlib import Path

TOMBSTONE_SUFFIX = ".restfs-deleted"


def tombstone_path(path: str) -> str:
    return path + TOMBSTONE_SUFFIX


def is_tombstone(name: str) -> bool:
    return name.endswith(TOMBSTONE_SUFFIX)


def guarded_path(tombstone: str) -> str:
    """Return the path of the object that this tombstone marks as deleted"""
    if not is_tombstone(tombstone):
        raise ValueError(f"{tombstone!r} is not a tombstone")
    return tombstone[: -len(TOMBSTONE_SUFFIX)]


def is_newer(object_stat: os.stat_result, tombstone_stat: os.stat_result) -> bool:
    """Is the object strictly newer than its tombstone? Equal timestamps count as deleted."""
    return object_stat.st_mtime_ns > tombstone_stat.st_mtime_ns


def mark_deleted(path: str) -> None:
    """
    Create the tombstone for this path, or refresh its timestamp if it already exists.
    Raises OSError if the marker cannot be written.
    """
    Path(tombstone_path(path)).touch(exist_ok=True)


def is_visible(path: str) -> bool:
    """
    Should the object at this path be exposed to readers?
    True if the object exists and is either not tombstoned or written after it was tombstoned.
    Directories are never tombstoned, so they are always visible.
    """
    try:
        object_stat = os.stat(path)
    except OSError:
        return False
    if stat.S_ISDIR(object_stat.st_mode):
        return True

    try:
        tombstone_stat = os.stat(tombstone_path(path))
    except FileNotFoundError:
        return True
    except OSError as e:
        logging.warning(f"Cannot stat tombstone for {path}: {e}")
        return False
    return is_newer(object_stat, tombstone_stat)
