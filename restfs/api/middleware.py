"""
Middleware for the restfs API

The chain is assembled once when the app is created, ordered by priority: the middleware with the
lowest priority wraps all others (so it sees the request first and the response last).
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from fastapi import Request
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from restfs.accesslog import AccessLog
from restfs.config import Settings
from restfs.metrics import HTTP_REQUEST_DURATION, HTTP_REQUEST_SIZE, HTTP_REQUESTS, HTTP_RESPONSE_SIZE

PRIORITY_ACCESS_LOG = 0
PRIORITY_METRICS = 2
PRIORITY_CORS = 10


@dataclass(frozen=True)
class MiddlewareSpec:
    priority: int
    name: str
    middleware: Middleware


def on_body_sent(response: Response, callback: Callable[[int], None]) -> None:
    """Call callback with the number of body bytes once the (streaming) response body has been sent"""
    body = response.body_iterator  # type: ignore[attr-defined]

    async def counted():
        size = 0
        try:
            async for chunk in body:
                size += len(chunk)
                yield chunk
        finally:
            callback(size)

    response.body_iterator = counted()  # type: ignore[attr-defined]


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Write one line per request in combined log format, followed by the duration in seconds"""

    def __init__(self, app, access_log: AccessLog):
        super().__init__(app)
        self.access_log = access_log

    async def dispatch(self, request: Request, call_next):
        start = time.monotonic()
        timestamp = datetime.now().astimezone()
        response = await call_next(request)

        def log(size: int):
            client = request.client.host if request.client else "-"
            target = request.url.path + (f"?{request.url.query}" if request.url.query else "")
            version = request.scope.get("http_version", "1.1")
            referer = request.headers.get("referer", "-")
            user_agent = request.headers.get("user-agent", "-")
            self.access_log.write(
                f'{client} - - [{timestamp:%d/%b/%Y:%H:%M:%S %z}] "{request.method} {target} HTTP/{version}" '
                f'{response.status_code} {size} "{referer}" "{user_agent}" {time.monotonic() - start:.6f}'
            )

        on_body_sent(response, log)
        return response


class MetricsMiddleware:
    """
    Record request counts, latencies and request/response sizes in prometheus.
    Sizes are the number of body bytes actually received and sent, so chunked uploads are counted too.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.monotonic()
        method = scope["method"].lower()
        status = 500
        request_size = 0
        response_size = 0

        async def counting_receive() -> Message:
            nonlocal request_size
            message = await receive()
            if message["type"] == "http.request":
                request_size += len(message.get("body", b""))
            return message

        async def counting_send(message: Message) -> None:
            nonlocal status, response_size
            if message["type"] == "http.response.start":
                status = message["status"]
            elif message["type"] == "http.response.body":
                response_size += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, counting_receive, counting_send)
        finally:
            HTTP_REQUESTS.labels(method, str(status)).inc()
            HTTP_REQUEST_DURATION.labels(method).observe(time.monotonic() - start)
            HTTP_REQUEST_SIZE.labels(method).observe(request_size)
            HTTP_RESPONSE_SIZE.labels(method).observe(response_size)


def middleware_specs(settings: Settings, access_log: AccessLog) -> list[MiddlewareSpec]:
    specs = [MiddlewareSpec(PRIORITY_ACCESS_LOG, "access log", Middleware(AccessLogMiddleware, access_log=access_log))]
    if settings.prometheus:
        specs.append(MiddlewareSpec(PRIORITY_METRICS, "prometheus", Middleware(MetricsMiddleware)))
    if origins := settings.cors_origin_list:
        logging.info(f"CORS Origins: {', '.join(origins)}")
        cors = Middleware(CORSMiddleware, allow_origins=origins, allow_methods=["GET", "PUT", "DELETE"], max_age=600)
        specs.append(MiddlewareSpec(PRIORITY_CORS, "cors", cors))
    return specs


def build_middleware(settings: Settings, access_log: AccessLog) -> tuple[Middleware, ...]:
    """Return the middleware for this configuration, outermost first"""
    specs = sorted(middleware_specs(settings, access_log), key=lambda spec: spec.priority)
    logging.debug(f"Middleware: {', '.join(spec.name for spec in specs)}")
    return tuple(spec.middleware for spec in specs)
