"""
Centralized Prometheus metrics definitions for the Blunder Scout application.

This module uses the prometheus-client library to define all metrics that will
be exposed by the application for monitoring and alerting. Grouping them here
provides a single, clear overview of the application's instrumentation points.
"""
from prometheus_client import Counter, Histogram

# A common prefix for all application-specific metrics.
PREFIX = "blunder_scout"

# --- Game Analysis Metrics ---

GAMES_ANALYZED_TOTAL = Counter(
    f"{PREFIX}_games_analyzed_total",
    "Total number of game analysis runs, by final report status.",
    ["status"],  # e.g., status="completed", "cancelled", "input_failed"
)

GAME_ANALYSIS_DURATION_SECONDS = Histogram(
    f"{PREFIX}_game_analysis_duration_seconds",
    "Histogram of the time taken to analyze a single game.",
    buckets=(0.5, 1, 5, 10, 30, 60, 120, 300, float("inf"))
)

BLUNDERS_FLAGGED_TOTAL = Counter(
    f"{PREFIX}_blunders_flagged_total",
    "Total number of moves classified as blunders.",
)

MOVES_SKIPPED_TOTAL = Counter(
    f"{PREFIX}_moves_skipped_total",
    "Total number of moves left without a record because their evaluation failed.",
    ["error_type"],  # e.g., error_type="MalformedEvaluationError"
)

# --- Evaluation Metrics ---

EVALUATIONS_TOTAL = Counter(
    f"{PREFIX}_evaluations_total",
    "Total number of position evaluations requested.",
    ["source", "outcome"],  # e.g., source="remote", outcome="success"
)

EVALUATION_DURATION_SECONDS = Histogram(
    f"{PREFIX}_evaluation_duration_seconds",
    "Histogram of the time taken to evaluate a single position, retries included.",
    ["source"],
)

EVALUATION_RETRIES_TOTAL = Counter(
    f"{PREFIX}_evaluation_retries_total",
    "Total number of transient evaluation errors that triggered a retry.",
    ["operation"],
)

# --- Input Recovery Metrics ---

MOVES_RECOVERED_TOTAL = Counter(
    f"{PREFIX}_moves_recovered_total",
    "Total number of moves recovered from raw text after structured PGN parsing failed.",
)
