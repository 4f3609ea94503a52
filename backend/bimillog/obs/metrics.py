"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"bimillog_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"bimillog_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SCORE_UPDATES = Counter(
	"bimillog_score_updates_total",
	"Score store increments applied",
	["list", "result"],
)

SCORE_SET_SIZE = Gauge(
	"bimillog_score_set_size",
	"Members left in a score set after the last decay pass",
	["list"],
)

HOT_LIST_CACHE = Counter(
	"bimillog_hot_list_cache_total",
	"Hot-list cache lookups",
	["list", "result"],
)

HOT_LIST_PUBLISHED_ITEMS = Gauge(
	"bimillog_hot_list_published_items",
	"Items published by the last successful refresh",
	["list"],
)

HYDRATION_MISSES = Counter(
	"bimillog_hydration_misses_total",
	"Ranked ids with no matching post row",
	["list"],
)

FEATURED_EVENTS = Counter(
	"bimillog_featured_events_total",
	"Featured-post notifications queued",
	["list", "result"],
)

BACKGROUND_RUNS = Counter(
	"bimillog_jobs_runs_total",
	"Background job executions",
	["name", "result"],
)

BACKGROUND_DURATION = Histogram(
	"bimillog_jobs_duration_seconds",
	"Background job duration",
	["name"],
	buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 15.0, 30.0, 60.0),
)

SEARCH_QUERIES = Counter(
	"bimillog_search_queries_total",
	"Search queries executed",
	["field", "strategy"],
)

SEARCH_FULLTEXT_FALLBACKS = Counter(
	"bimillog_search_fulltext_fallbacks_total",
	"Full-text searches that fell back to pattern match",
	["reason"],
)

SEARCH_LATENCY = Histogram(
	"bimillog_search_latency_seconds",
	"Search latency in seconds",
	["field"],
	buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_score_update(list_name: str, result: str) -> None:
	SCORE_UPDATES.labels(list=list_name, result=result).inc()


def set_score_set_size(list_name: str, size: int) -> None:
	SCORE_SET_SIZE.labels(list=list_name).set(size)


def inc_hot_list_cache(list_name: str, result: str) -> None:
	HOT_LIST_CACHE.labels(list=list_name, result=result).inc()


def set_hot_list_published(list_name: str, count: int) -> None:
	HOT_LIST_PUBLISHED_ITEMS.labels(list=list_name).set(count)


def inc_hydration_misses(list_name: str, count: int) -> None:
	if count > 0:
		HYDRATION_MISSES.labels(list=list_name).inc(count)


def inc_featured_event(list_name: str, result: str) -> None:
	FEATURED_EVENTS.labels(list=list_name, result=result).inc()


def record_job_run(name: str, *, result: str, duration_seconds: float | None = None) -> None:
	BACKGROUND_RUNS.labels(name=name, result=result).inc()
	if duration_seconds is not None:
		BACKGROUND_DURATION.labels(name=name).observe(duration_seconds)


def inc_search_query(field: str, strategy: str) -> None:
	SEARCH_QUERIES.labels(field=field, strategy=strategy).inc()


def inc_search_fallback(reason: str) -> None:
	SEARCH_FULLTEXT_FALLBACKS.labels(reason=reason).inc()


def observe_search_latency(field: str, latency_seconds: float) -> None:
	SEARCH_LATENCY.labels(field=field).observe(latency_seconds)
