"""Access log file that can be reopened (e.g. after log rotation)"""

import logging
import sys
import threading
from typing import TextIO


class AccessLog:
    def __init__(self, target: str = "-"):
        self.target = target
        self._lock = threading.Lock()
        self._stream: TextIO | None = None

    def _open(self) -> TextIO:
        if self.target == "-":
            return sys.stdout
        return open(self.target, "a", encoding="utf-8")

    def reopen(self) -> None:
        """
        Open the target again and swap it in. The old stream is closed after the swap.
        If the file cannot be opened, the old stream is kept.
        """
        try:
            stream = self._open()
        except OSError as e:
            logging.error(f"Cannot open access log {self.target}: {e}")
            return
        with self._lock:
            old, self._stream = self._stream, stream
        if old is not None and old is not sys.stdout:
            old.close()
            logging.info("Reopen access log file")

    def write(self, line: str) -> None:
        with self._lock:
            if self._stream is None:
                return
            self._stream.write(line + "\n")
            self._stream.flush()

    def close(self) -> None:
        with self._lock:
            old, self._stream = self._stream, None
        if old is not None and old is not sys.stdout:
            old.close()
