import os
from contextlib import contextmanager

import pytest

from restfs.listing import format_listing, list_directory
from restfs.tombstone import TOMBSTONE_SUFFIX
from tests.tools import SECOND, set_mtime, tombstone


def test_list_directory(tmp_path):
    (tmp_path / "a.txt").write_bytes(b"a")
    (tmp_path / "b.txt").write_bytes(b"b")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "nested.txt").write_bytes(b"n")
    assert set(list_directory(str(tmp_path))) == {"a.txt", "b.txt", "sub/"}


def test_list_directory_keeps_filesystem_order(tmp_path):
    for name in ["c", "a", "b", "d"]:
        (tmp_path / name).write_bytes(b"x")
    assert list_directory(str(tmp_path)) == [entry.name for entry in os.scandir(tmp_path)]


def test_list_directory_hides_deleted(tmp_path):
    for name in ["deleted", "tie", "resurrected", "plain"]:
        (tmp_path / name).write_bytes(b"x")
    for name in ["deleted", "tie", "resurrected"]:
        tombstone(tmp_path / name).touch()
        set_mtime(tombstone(tmp_path / name), 100 * SECOND)
    set_mtime(tmp_path / "deleted", 50 * SECOND)
    set_mtime(tmp_path / "tie", 100 * SECOND)
    set_mtime(tmp_path / "resurrected", 100 * SECOND + 1)

    names = list_directory(str(tmp_path))
    assert set(names) == {"resurrected", "plain"}
    assert not any(name.endswith(TOMBSTONE_SUFFIX) for name in names)


def test_list_directory_subdirectories_always_visible(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "a.txt").write_bytes(b"x")
    tombstone(tmp_path / "sub" / "a.txt").touch()
    assert list_directory(str(tmp_path)) == ["sub/"]
    assert list_directory(str(tmp_path / "sub")) == []


def test_format_listing():
    assert format_listing(["a.txt", "sub/"]) == "a.txt\nsub/\n"
    assert format_listing([]) == ""


def test_list_directory_skips_vanished_entries(monkeypatch, tmp_path):
    (tmp_path / "a.txt").write_bytes(b"a")
    (tmp_path / "b.txt").write_bytes(b"b")
    real_scandir = os.scandir

    @contextmanager
    def scandir(path):
        # remove a.txt after it was enumerated, as a concurrent garbage collection pass would
        with real_scandir(path) as it:
            def entries():
                for entry in it:
                    if entry.name == "a.txt":
                        os.remove(entry.path)
                    yield entry

            yield entries()

    monkeypatch.setattr(os, "scandir", scandir)
    assert list_directory(str(tmp_path)) == ["b.txt"]


def test_list_directory_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        list_directory(str(tmp_path / "missing"))
