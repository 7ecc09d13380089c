"""Prometheus metrics for HTTP requests and garbage collection"""

import logging

from prometheus_client import Counter, Histogram, Summary, start_http_server

NAMESPACE = "restfs"

HTTP_REQUESTS = Counter(
    "requests_total",
    "Total number of HTTP requests made.",
    ["method", "code"],
    namespace=NAMESPACE,
    subsystem="http",
)
HTTP_REQUEST_DURATION = Summary(
    "request_duration_seconds",
    "The HTTP request latencies in seconds.",
    ["method"],
    namespace=NAMESPACE,
    subsystem="http",
)
HTTP_REQUEST_SIZE = Summary(
    "request_size_bytes",
    "The HTTP request sizes in bytes.",
    ["method"],
    namespace=NAMESPACE,
    subsystem="http",
)
HTTP_RESPONSE_SIZE = Summary(
    "response_size_bytes",
    "The HTTP response sizes in bytes.",
    ["method"],
    namespace=NAMESPACE,
    subsystem="http",
)

GC_RUNS = Counter(
    "runs_total",
    "Number of garbage collection passes, by outcome.",
    ["outcome"],  # finished, aborted
    namespace=NAMESPACE,
    subsystem="gc",
)
GC_DURATION = Histogram(
    "duration_seconds",
    "Duration of garbage collection passes in seconds.",
    namespace=NAMESPACE,
    subsystem="gc",
    buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 300, 600],
)
GC_RESOLVED = Counter(
    "resolved_total",
    "Number of tombstones resolved by the garbage collector, by kind.",
    ["kind"],  # deleted, resurrected, orphaned
    namespace=NAMESPACE,
    subsystem="gc",
)


def parse_address(address: str) -> tuple[str, int]:
    """Split a host:port listen address. An empty host (':9100') listens on all interfaces."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"Invalid listen address {address!r}, expected host:port")
    return host or "0.0.0.0", int(port)


def start_metrics_server(address: str) -> None:
    host, port = parse_address(address)
    logging.info(f"Prometheus stats enabled at {host}:{port}")
    start_http_server(port, addr=host)
