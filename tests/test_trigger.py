import asyncio
import threading

import pytest

from restfs.trigger import GCTrigger, run_periodically


def test_request_run_coalesces():
    trigger = GCTrigger()
    assert not trigger.pending
    assert trigger.request_run()
    assert trigger.pending
    assert not any(trigger.request_run() for _ in range(100))
    assert trigger.wait(timeout=1)
    assert not trigger.pending
    assert not trigger.wait(timeout=0.01)
    assert trigger.request_run()


def test_concurrent_requests():
    trigger = GCTrigger()
    accepted = []
    threads = [threading.Thread(target=lambda: accepted.append(trigger.request_run())) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert accepted.count(True) == 1
    assert trigger.wait(timeout=1)
    assert not trigger.wait(timeout=0.01)


def test_wait_wakes_up():
    trigger = GCTrigger()
    woken = threading.Event()

    def consume():
        if trigger.wait(timeout=5):
            woken.set()

    consumer = threading.Thread(target=consume)
    consumer.start()
    trigger.request_run()
    assert woken.wait(5)
    consumer.join(5)


def test_close():
    trigger = GCTrigger()
    trigger.request_run()
    trigger.close()
    assert not trigger.wait(timeout=1)
    assert not trigger.request_run()


@pytest.mark.anyio
async def test_run_periodically():
    trigger = GCTrigger()
    task = asyncio.create_task(run_periodically(trigger, 0.01))
    try:
        for _ in range(100):
            if trigger.pending:
                break
            await asyncio.sleep(0.01)
        assert trigger.pending
    finally:
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
