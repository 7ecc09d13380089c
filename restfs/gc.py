"""
Garbage collection of deleted objects

A GC pass walks the whole data directory and resolves every tombstone it finds:

- the object is missing: the tombstone is an orphan and is removed
- the object is not newer than the tombstone: the deletion is confirmed and both are removed
- the object is newer than the tombstone: it was written again after the delete, so only the
  tombstone is removed

Any other error aborts the pass. Nothing is retried; the next trigger simply starts a new pass.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from datetime import timedelta

from restfs.metrics import GC_DURATION, GC_RESOLVED, GC_RUNS
from restfs.tombstone import guarded_path, is_newer, is_tombstone
from restfs.trigger import GCTrigger

logger = logging.getLogger("restfs.gc")


@dataclass
class GCResult:
    duration: float = 0.0
    error: Exception | None = None
    deleted: list[str] = field(default_factory=list)
    resurrected: list[str] = field(default_factory=list)
    orphaned: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def outcome(self) -> str:
        return "finished" if self.ok else "aborted"


def _remove(path: str) -> None:
    logger.info(f"Remove {path}")
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


class Reconciler:
    def __init__(self, root: str | os.PathLike):
        self.root = os.fspath(root)

    def run_pass(self) -> GCResult:
        """Run one full pass over the data directory. Errors are recorded in the result, never raised."""
        logger.info("GC started")
        result = GCResult()
        start = time.monotonic()
        try:
            self._walk(result)
        except OSError as e:
            result.error = e
        result.duration = time.monotonic() - start

        took = timedelta(seconds=result.duration)
        if result.ok:
            logger.info(f"GC has finished in {took}")
        else:
            logger.error(f"GC has aborted in {took} with error: {result.error}")
        GC_RUNS.labels(result.outcome).inc()
        GC_DURATION.observe(result.duration)
        return result

    def _walk(self, result: GCResult) -> None:
        def raise_error(e: OSError):
            raise e

        for dirpath, _dirnames, filenames in os.walk(self.root, onerror=raise_error):
            for name in filenames:
                if is_tombstone(name):
                    self._resolve(os.path.join(dirpath, name), result)

    def _resolve(self, tombstone: str, result: GCResult) -> None:
        tombstone_stat = os.stat(tombstone)
        path = guarded_path(tombstone)
        try:
            object_stat = os.stat(path)
        except FileNotFoundError:
            _remove(tombstone)
            result.orphaned.append(path)
            GC_RESOLVED.labels("orphaned").inc()
            return

        if is_newer(object_stat, tombstone_stat):
            result.resurrected.append(path)
            GC_RESOLVED.labels("resurrected").inc()
        else:
            _remove(path)
            result.deleted.append(path)
            GC_RESOLVED.labels("deleted").inc()
        _remove(tombstone)


class GCWorker:
    """
    Background thread that runs one GC pass for every run requested on the trigger.
    Passes never overlap: a run requested during a pass is performed after it.
    """

    def __init__(self, reconciler: Reconciler, trigger: GCTrigger):
        self.reconciler = reconciler
        self.trigger = trigger
        self.passes = 0
        self.last_result: GCResult | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("GC worker already started")
        self._thread = threading.Thread(target=self._loop, name="restfs-gc", daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while self.trigger.wait():
            self.last_result = self.reconciler.run_pass()
            self.passes += 1

    def stop(self, timeout: float | None = None) -> None:
        """Close the trigger and wait for the running pass (if any) to finish"""
        self.trigger.close()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("GC pass still running at shutdown")
            self._thread = None
