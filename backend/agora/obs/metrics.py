"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"agora_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"agora_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"agora_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"agora_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

SOCKET_EMIT_FAILURES = Counter(
	"agora_socketio_emit_failures_total",
	"Socket.IO emits that raised",
	["namespace", "event"],
)

CONTENT_CREATED = Counter(
	"agora_content_created_total",
	"Content items created by kind and resulting status",
	["kind", "status"],
)

CONTENT_ADOPTIONS = Counter(
	"agora_content_adoptions_total",
	"Adoption attempts by kind and outcome",
	["kind", "outcome"],
)

CONTENT_PUBLISHED = Counter(
	"agora_content_published_total",
	"Content items published after creation",
	["kind", "path"],
)

RELEVANCY_TOGGLES = Counter(
	"agora_relevancy_toggles_total",
	"Relevancy toggles by kind, action and result",
	["kind", "action", "result"],
)

COMMENTS_CREATED = Counter(
	"agora_comments_created_total",
	"Comments created by entity kind",
	["kind"],
)

BOOKMARK_CHANGES = Counter(
	"agora_bookmark_changes_total",
	"Bookmark folder changes by action and result",
	["action", "result"],
)

UPLOADS = Counter(
	"agora_uploads_total",
	"Attachment uploads by result",
	["result"],
)

FEED_LATENCY = Histogram(
	"agora_feed_duration_seconds",
	"Context feed assembly latency",
	["entity_type"],
	buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def socket_emit_failed(namespace: str, event: str) -> None:
	SOCKET_EMIT_FAILURES.labels(namespace=namespace, event=event).inc()


def inc_content_created(kind: str, status: str) -> None:
	CONTENT_CREATED.labels(kind=kind, status=status).inc()


def inc_content_adoption(kind: str, outcome: str) -> None:
	CONTENT_ADOPTIONS.labels(kind=kind, outcome=outcome).inc()


def inc_content_published(kind: str, path: str) -> None:
	CONTENT_PUBLISHED.labels(kind=kind, path=path).inc()


def inc_relevancy_toggle(kind: str, action: str, result: str) -> None:
	RELEVANCY_TOGGLES.labels(kind=kind, action=action, result=result).inc()


def inc_comment_created(kind: str) -> None:
	COMMENTS_CREATED.labels(kind=kind).inc()


def inc_bookmark(action: str, result: str) -> None:
	BOOKMARK_CHANGES.labels(action=action, result=result).inc()


def inc_upload(result: str, count: int = 1) -> None:
	UPLOADS.labels(result=result).inc(count)


def observe_feed(entity_type: str, elapsed_seconds: float) -> None:
	FEED_LATENCY.labels(entity_type=entity_type).observe(elapsed_seconds)
