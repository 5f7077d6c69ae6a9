from __future__ import annotations

"""Prometheus metrics for the delivery path.

Exposed by `GET /metrics` in `streamgate.main`.
"""

from prometheus_client import Counter, Histogram

presigns_total = Counter(
    "gateway_presigns_total",
    "Number of presigned URL generations",
    labelnames=("result",),
)
presign_latency = Histogram(
    "gateway_presign_seconds",
    "Latency for presigned URL generation",
    labelnames=("result",),
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)
object_fetches_total = Counter(
    "gateway_object_fetches_total",
    "Object store GETs issued by the gateway",
    labelnames=("result",),
)
object_fetch_latency = Histogram(
    "gateway_object_fetch_seconds",
    "Time to first byte for object store GETs",
    labelnames=("result",),
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
playlist_rewrites_total = Counter(
    "gateway_playlist_rewrites_total",
    "Playlists rewritten, by request shape and delivery mode",
    labelnames=("shape", "mode"),
)
gateway_errors_total = Counter(
    "gateway_errors_total",
    "Gateway error responses by machine-readable code",
    labelnames=("code",),
)


def inc_presign(result: str) -> None:
    presigns_total.labels(result=result).inc()


def observe_presign_seconds(result: str, seconds: float) -> None:
    presign_latency.labels(result=result).observe(seconds)


def inc_object_fetch(result: str) -> None:
    object_fetches_total.labels(result=result).inc()


def observe_object_fetch_seconds(result: str, seconds: float) -> None:
    object_fetch_latency.labels(result=result).observe(seconds)


def inc_playlist_rewrite(shape: str, mode: str) -> None:
    playlist_rewrites_total.labels(shape=shape, mode=mode).inc()


def inc_gateway_error(code: str) -> None:
    gateway_errors_total.labels(code=code).inc()


__all__ = [
    "inc_presign",
    "observe_presign_seconds",
    "inc_object_fetch",
    "observe_object_fetch_seconds",
    "inc_playlist_rewrite",
    "inc_gateway_error",
]
