"""
Coalescing trigger for garbage collection runs

GC runs can be requested from several places (startup, a timer, a signal). Requests made while a run
is already pending are merged into that run, so the garbage collector never has more than one run waiting.
"""

import asyncio
import logging
import threading


class GCTrigger:
    """A mailbox with room for a single pending run, consumed by one worker"""

    def __init__(self):
        self._condition = threading.Condition()
        self._pending = False
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._pending

    def request_run(self) -> bool:
        """
        Request a GC run without blocking.
        Returns False if a run was already pending, in which case this request is merged into it.
        """
        with self._condition:
            if self._pending or self._closed:
                return False
            self._pending = True
            self._condition.notify()
            return True

    def wait(self, timeout: float | None = None) -> bool:
        """
        Wait for a pending run and take it out of the mailbox.
        Returns False if the trigger was closed or the timeout expired.
        """
        with self._condition:
            self._condition.wait_for(lambda: self._pending or self._closed, timeout=timeout)
            if self._closed or not self._pending:
                return False
            self._pending = False
            return True

    def close(self) -> None:
        with self._condition:
            self._closed = True
            self._condition.notify_all()


async def run_periodically(trigger: GCTrigger, interval: float) -> None:
    """Request a GC run every `interval` seconds until cancelled"""
    logging.info(f"GC runs every {interval} seconds")
    while True:
        await asyncio.sleep(interval)
        trigger.request_run()
