"""Prometheus metrics for the posts pipelines and HTTP surface."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
	"postboard_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"postboard_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

POSTS_CREATED = Counter(
	"postboard_posts_created_total",
	"Posts inserted by the create pipeline",
)

POST_CREATE_FAILURES = Counter(
	"postboard_post_create_failures_total",
	"Create pipeline failures by stage",
	["reason"],
)

ATTACHMENT_UPLOADS = Counter(
	"postboard_attachment_uploads_total",
	"Attachment uploads by result",
	["result"],
)

ORPHANED_UPLOADS = Counter(
	"postboard_orphaned_uploads_total",
	"Uploaded objects left without an owning post",
)

POST_FETCH_FAILURES = Counter(
	"postboard_post_fetch_failures_total",
	"Read pipeline failures",
)

QUERY_CACHE_EVENTS = Counter(
	"postboard_query_cache_events_total",
	"Query cache events",
	["event"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_post_created() -> None:
	POSTS_CREATED.inc()


def inc_post_create_failure(reason: str) -> None:
	POST_CREATE_FAILURES.labels(reason=reason).inc()


def inc_attachment_upload(result: str) -> None:
	ATTACHMENT_UPLOADS.labels(result=result).inc()


def inc_orphaned_uploads(count: int) -> None:
	if count > 0:
		ORPHANED_UPLOADS.inc(count)


def inc_post_fetch_failure() -> None:
	POST_FETCH_FAILURES.inc()


def inc_query_cache(event: str) -> None:
	QUERY_CACHE_EVENTS.labels(event=event).inc()
