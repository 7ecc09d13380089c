"""restfs API."""

import asyncio
import logging
import signal
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from restfs.accesslog import AccessLog
from restfs.api.middleware import build_middleware
from restfs.api.objects import app_objects
from restfs.config import Settings, get_settings
from restfs.gc import GCWorker, Reconciler
from restfs.metrics import start_metrics_server
from restfs.storage import InvalidOperation, ObjectNotFound, Storage
from restfs.trigger import GCTrigger, run_periodically


def _install_signal_handlers(trigger: GCTrigger, access_log: AccessLog) -> list[signal.Signals]:
    loop = asyncio.get_running_loop()
    installed = []
    for sig, callback in [(signal.SIGUSR1, trigger.request_run), (signal.SIGHUP, access_log.reopen)]:
        try:
            loop.add_signal_handler(sig, callback)
        except (NotImplementedError, RuntimeError, ValueError) as e:
            logging.warning(f"Cannot install handler for {sig.name}: {e}")
        else:
            installed.append(sig)
    return installed


def _remove_signal_handlers(signals: list[signal.Signals]) -> None:
    loop = asyncio.get_running_loop()
    for sig in signals:
        loop.remove_signal_handler(sig)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logging.info(f"Data directory: {settings.data_dir}")
    settings.data_dir.mkdir(parents=True, exist_ok=True)

    if settings.prometheus:
        start_metrics_server(settings.prometheus)

    worker: GCWorker = app.state.gc_worker
    worker.start()
    worker.trigger.request_run()
    signals = _install_signal_handlers(worker.trigger, app.state.access_log)
    interval_task = None
    if settings.gc_interval > 0:
        interval_task = asyncio.create_task(run_periodically(worker.trigger, settings.gc_interval))

    yield

    if interval_task is not None:
        interval_task.cancel()
        with suppress(asyncio.CancelledError):
            await interval_task
    _remove_signal_handlers(signals)
    await asyncio.to_thread(worker.stop, settings.graceful_timeout)
    app.state.access_log.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    access_log = AccessLog(settings.access_log)
    access_log.reopen()

    app = FastAPI(
        title="restfs",
        description="Filesystem-backed object store with soft deletes",
        # every path is an object path, so the documentation routes would shadow objects
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        middleware=build_middleware(settings, access_log),
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.access_log = access_log
    app.state.storage = Storage(settings.data_dir)
    app.state.gc_worker = GCWorker(Reconciler(settings.data_dir), GCTrigger())
    app.include_router(app_objects)

    @app.exception_handler(ObjectNotFound)
    async def not_found_exception_handler(request: Request, exc: ObjectNotFound):
        return PlainTextResponse("Not Found\n", status_code=404)

    @app.exception_handler(InvalidOperation)
    async def invalid_operation_exception_handler(request: Request, exc: InvalidOperation):
        return PlainTextResponse(f"{exc}\n", status_code=400)

    @app.exception_handler(OSError)
    async def os_error_exception_handler(request: Request, exc: OSError):
        logging.error(f"{request.method} {request.url.path}: {exc}")
        return PlainTextResponse(f"{exc}\n", status_code=500)

    return app
