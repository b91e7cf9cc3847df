"""Prometheus metrics for the strategy engine."""

from prometheus_client import Counter, Histogram

# ---------------------------------------------------------------------------
# Analysis requests - end-to-end
# ---------------------------------------------------------------------------

strategy_engine_analysis_requests_total = Counter(
    "strategy_engine_analysis_requests_total",
    "Total strategy analysis requests",
    ["source", "status", "degraded"],  # source: persisted | posted
)

strategy_engine_analysis_latency_seconds = Histogram(
    "strategy_engine_analysis_latency_seconds",
    "End-to-end strategy analysis latency in seconds",
    ["source"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
)

# ---------------------------------------------------------------------------
# Engine stages
# ---------------------------------------------------------------------------

strategy_engine_stage_latency_seconds = Histogram(
    "strategy_engine_stage_latency_seconds",
    "Latency per engine stage in seconds",
    ["stage"],
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.25],
)

# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

strategy_engine_disclosure_status_total = Counter(
    "strategy_engine_disclosure_status_total",
    "Disclosure status of analysed cases",
    ["status"],  # safe | conditionally_unsafe | unsafe
)

strategy_engine_recommended_route_total = Counter(
    "strategy_engine_recommended_route_total",
    "Recommended strategy route of analysed cases",
    ["route_id"],
)

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

strategy_engine_db_query_latency_seconds = Histogram(
    "strategy_engine_db_query_latency_seconds",
    "Database query latency in seconds",
    ["query_name"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
)

strategy_engine_db_query_failures_total = Counter(
    "strategy_engine_db_query_failures_total",
    "Total database query failures",
    ["query_name"],
)
