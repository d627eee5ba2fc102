"""Prometheus metric inventory.

Every metric the service exports is defined here; modules import the
one they need and increment it at the point of action.  The HTTP
metrics are fed by MetricsMiddleware, the rest by the assessment
services.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Upper buckets are wide: quiz generation and free-text grading wait
    # on the generative service.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Assessment metrics
# ---------------------------------------------------------------------------

QUESTION_SETS_GENERATED = Counter(
    "quiz_question_sets_total",
    "Question sets produced for completion quizzes",
    ["source"],  # "ai" or "fallback"
)

GENERATION_DEGRADED = Counter(
    "generation_degraded_total",
    "Generative calls that fell back to the deterministic path",
    ["operation", "reason"],  # operation: "generate" | "evaluate"
)

ANSWER_EVALUATIONS = Counter(
    "answer_evaluations_total",
    "Free-text answer evaluations by the tier that decided them",
    ["method"],  # exact|contains|ai|similarity|empty
)

ATTEMPTS_SUBMITTED = Counter(
    "attempts_submitted_total",
    "Graded quiz attempts by outcome",
    ["outcome"],  # "passed" or "failed"
)

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificate issuance calls by result",
    ["result"],  # "created" or "existing"
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)
