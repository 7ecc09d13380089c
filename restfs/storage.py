"""
Reading, writing and (soft) deleting objects in the data directory

Paths are given as they appear in the request URL ('/foo/bar.txt') and are always resolved inside the
storage root. Deletes only create tombstones; see restfs.tombstone and restfs.gc.
"""

import os
import posixpath
from typing import BinaryIO, Iterable

from restfs.listing import list_directory
from restfs.tombstone import is_tombstone, is_visible, mark_deleted


class StorageError(Exception):
    pass


class ObjectNotFound(StorageError):
    """The object does not exist or has been deleted"""


class InvalidOperation(StorageError):
    """The operation cannot be performed on this kind of entry (e.g. overwriting a directory)"""


class InvalidPath(InvalidOperation):
    """The path cannot be used as an object name"""


class Storage:
    def __init__(self, root: str | os.PathLike):
        self.root = os.fspath(root)

    def resolve(self, path: str) -> str:
        """
        Convert a request path into a filesystem path under the storage root.
        '..' components are resolved against the root, so the result can never leave it.
        No component may carry the tombstone suffix, for files and directories alike.
        """
        relative = posixpath.normpath("/" + path).lstrip("/")
        if any(is_tombstone(part) for part in relative.split("/")):
            raise InvalidPath(f"Invalid path {path!r}: names ending in the tombstone suffix are reserved")
        if not relative:
            return self.root
        return os.path.join(self.root, *relative.split("/"))

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(self.resolve(path))

    def open(self, path: str) -> BinaryIO:
        """Open a visible object for reading. Raises ObjectNotFound if it is missing or deleted"""
        fullpath = self.resolve(path)
        if os.path.isdir(fullpath):
            raise InvalidOperation(f"{path} is a directory")
        if not is_visible(fullpath):
            raise ObjectNotFound(f"{path} not found")
        try:
            return open(fullpath, "rb")
        except FileNotFoundError:
            # removed by the garbage collector after the visibility check
            raise ObjectNotFound(f"{path} not found")

    def read(self, path: str) -> bytes:
        with self.open(path) as f:
            return f.read()

    def listdir(self, path: str) -> list[str]:
        fullpath = self.resolve(path)
        if not os.path.isdir(fullpath):
            raise ObjectNotFound(f"Directory {path} not found")
        return list_directory(fullpath)

    def read_entry(self, path: str) -> bytes | list[str]:
        """Return the contents of an object, or the visible entries if path is a directory"""
        if self.is_dir(path):
            return self.listdir(path)
        return self.read(path)

    def create(self, path: str) -> BinaryIO:
        """
        Create or truncate the object at this path for writing, creating parent directories as needed.
        A tombstone for this path (if any) is superseded by the newer modification time of the object.
        """
        fullpath = self.resolve(path)
        if os.path.isdir(fullpath):
            raise InvalidOperation("Cannot overwrite directory")
        os.makedirs(os.path.dirname(fullpath), exist_ok=True)
        return open(fullpath, "wb")

    def write(self, path: str, data: bytes | Iterable[bytes]) -> None:
        """Create or replace the object at this path with the given bytes or chunks of bytes"""
        with self.create(path) as f:
            if isinstance(data, (bytes, bytearray, memoryview)):
                f.write(data)
            else:
                for chunk in data:
                    f.write(chunk)

    def delete(self, path: str, recursive: bool = False) -> None:
        """
        Mark the object at this path as deleted. Deleting a missing object is a no-op.
        Directories can only be deleted recursively, which marks every object below it as deleted.
        """
        fullpath = self.resolve(path)
        if not os.path.lexists(fullpath):
            return
        if not os.path.isdir(fullpath):
            mark_deleted(fullpath)
        elif recursive:
            self._delete_tree(fullpath)
        else:
            raise InvalidOperation("Cannot remove directory; forgot recursive=true?")

    def _delete_tree(self, fullpath: str) -> None:
        def raise_error(e: OSError):
            raise e

        for dirpath, _dirnames, filenames in os.walk(fullpath, onerror=raise_error):
            for name in filenames:
                if not is_tombstone(name):
                    mark_deleted(os.path.join(dirpath, name))
