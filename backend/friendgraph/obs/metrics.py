"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"friendgraph_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"friendgraph_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

FRIEND_QUERIES = Counter(
	"friendgraph_friend_queries_total",
	"Friend read operations by outcome",
	["op", "result"],
)

FRIEND_QUERY_LATENCY = Histogram(
	"friendgraph_friend_query_duration_seconds",
	"Latency of friend read operations",
	["op"],
	buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

FRIENDS_LIST_SIZE = Histogram(
	"friendgraph_friends_list_size",
	"Number of friends returned by a friends list call",
	buckets=(0, 1, 5, 10, 25, 50, 100, 250, 500, 1000),
)

FRIENDSHIP_TRANSITIONS = Counter(
	"friendgraph_friendship_transitions_total",
	"Friendship edge transitions",
	["status"],
)

POSTGRES_UP = Gauge(
	"friendgraph_postgres_up",
	"Postgres readiness (1 healthy, 0 unavailable)",
)

POSTGRES_LATENCY = Histogram(
	"friendgraph_postgres_probe_seconds",
	"Latency of the Postgres readiness probe",
	buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def observe_friend_query(op: str, result: str, elapsed_seconds: float) -> None:
	FRIEND_QUERIES.labels(op=op, result=result).inc()
	FRIEND_QUERY_LATENCY.labels(op=op).observe(elapsed_seconds)


def observe_friends_list_size(size: int) -> None:
	FRIENDS_LIST_SIZE.observe(size)


def inc_friendship_transition(status: str) -> None:
	FRIENDSHIP_TRANSITIONS.labels(status=status).inc()


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
