from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

prospect_imports_total = Counter(
    "prospect_imports_total",
    "Total prospect import calls by status",
    ["status"],
)

prospect_import_records_total = Counter(
    "prospect_import_records_total",
    "Total prospect records committed by import calls",
)

prospect_import_duration_seconds = Histogram(
    "prospect_import_duration_seconds",
    "Prospect import call duration in seconds",
)

owner_assignments_total = Counter(
    "owner_assignments_total",
    "Owner assignment attempts by outcome",
    ["outcome"],
)

rotation_conflicts_total = Counter(
    "rotation_conflicts_total",
    "Rotation cursor compare-and-set conflicts",
)

scoring_runs_total = Counter(
    "scoring_runs_total",
    "Total scoring recompute runs by status",
    ["status"],
)

scoring_run_duration_seconds = Histogram(
    "scoring_run_duration_seconds",
    "Scoring recompute run duration in seconds",
)

scoring_prospects_updated_total = Counter(
    "scoring_prospects_updated_total",
    "Total prospects rewritten by scoring runs",
)


_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _sanitize_path(path: str) -> str:
    return _INT_RE.sub("/{id}", path)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        path_format = getattr(route, "path_format", None)
        if isinstance(path_format, str) and path_format:
            return _PATH_PARAM_RE.sub("{id}", path_format)
        route_path = getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return _PATH_PARAM_RE.sub("{id}", route_path)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_import(status: str, duration: float, record_count: int = 0) -> None:
    prospect_imports_total.labels(status=status).inc()
    prospect_import_duration_seconds.observe(duration)
    if record_count > 0:
        prospect_import_records_total.inc(record_count)


def observe_owner_assignment(outcome: str) -> None:
    owner_assignments_total.labels(outcome=outcome).inc()


def observe_rotation_conflict() -> None:
    rotation_conflicts_total.inc()


def observe_scoring_run(status: str, duration: float, updated_count: int = 0) -> None:
    scoring_runs_total.labels(status=status).inc()
    scoring_run_duration_seconds.observe(duration)
    if updated_count > 0:
        scoring_prospects_updated_total.inc(updated_count)


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
