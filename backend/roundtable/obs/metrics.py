"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"roundtable_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"roundtable_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

LEDGER_WRITES = Counter(
	"roundtable_ledger_writes_total",
	"Ledger mutations committed",
	["ledger", "op"],
)

AGGREGATE_RECOMPUTES = Counter(
	"roundtable_aggregate_recomputes_total",
	"Derived counter recomputations per subject kind",
	["kind"],
)

CONSISTENCY_VIOLATIONS = Counter(
	"roundtable_consistency_violations_total",
	"Recomputed counters that did not match the stored row",
)

PROMOTIONS = Counter(
	"roundtable_promotions_total",
	"Promotion attempts by transition and outcome",
	["transition", "outcome"],
)

PROMOTION_COMPENSATIONS = Counter(
	"roundtable_promotion_compensations_total",
	"Compensating deletes issued after a failed promotion step",
	["transition"],
)

TRANSIENT_STORE_FAILURES = Counter(
	"roundtable_transient_store_failures_total",
	"Transactions aborted by the store (safe to retry)",
	["reason"],
)

POSTGRES_UP = Gauge(
	"roundtable_postgres_up",
	"Whether the last Postgres probe succeeded",
)

POSTGRES_LATENCY = Histogram(
	"roundtable_postgres_probe_seconds",
	"Latency of the Postgres readiness probe",
	buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_ledger_write(ledger: str, op: str) -> None:
	LEDGER_WRITES.labels(ledger=ledger, op=op).inc()


def inc_recompute(kind: str) -> None:
	AGGREGATE_RECOMPUTES.labels(kind=kind).inc()


def inc_consistency_violation() -> None:
	CONSISTENCY_VIOLATIONS.inc()


def inc_promotion(transition: str, outcome: str) -> None:
	PROMOTIONS.labels(transition=transition, outcome=outcome).inc()


def inc_promotion_compensation(transition: str) -> None:
	PROMOTION_COMPENSATIONS.labels(transition=transition).inc()


def inc_transient_failure(reason: str) -> None:
	TRANSIENT_STORE_FAILURES.labels(reason=reason).inc()


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
