"""Directory listings with deleted objects filtered out."""

import logging
import os
from typing import Iterable

from restfs.tombstone import TOMBSTONE_SUFFIX, is_tombstone


def list_directory(path: str) -> list[str]:
    """
    List the visible entries of a single directory, in the order the filesystem returns them.
    Subdirectories are always listed (with a trailing /), tombstones are never listed, and
    files are only listed if they are newer than their tombstone (if any).
    """
    entries = []
    try:
        with os.scandir(path) as it:
            for entry in it:
                try:
                    entries.append((entry.name, entry.is_dir(), entry.stat().st_mtime_ns))
                except FileNotFoundError:
                    # removed (e.g. by the garbage collector) while we were listing
                    continue
    except OSError as e:
        logging.error(f"Cannot list directory {path}: {e}")
        raise

    tombstones = {
        name[: -len(TOMBSTONE_SUFFIX)]: mtime for (name, is_dir, mtime) in entries if is_tombstone(name) and not is_dir
    }

    names = []
    for name, is_dir, mtime in entries:
        if is_tombstone(name):
            continue
        if is_dir:
            names.append(name + "/")
        elif name not in tombstones or mtime > tombstones[name]:
            names.append(name)
    return names


def format_listing(names: Iterable[str]) -> str:
    return "".join(f"{name}\n" for name in names)
