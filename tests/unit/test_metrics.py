"""Unit tests for metrics module."""

from app.core import metrics


def test_metrics_are_defined():
    assert hasattr(metrics, "strategy_engine_analysis_requests_total")
    assert hasattr(metrics, "strategy_engine_analysis_latency_seconds")
    assert hasattr(metrics, "strategy_engine_stage_latency_seconds")
    assert hasattr(metrics, "strategy_engine_disclosure_status_total")
    assert hasattr(metrics, "strategy_engine_recommended_route_total")
    assert hasattr(metrics, "strategy_engine_db_query_latency_seconds")
    assert hasattr(metrics, "strategy_engine_db_query_failures_total")


def test_metrics_have_labels():
    assert hasattr(metrics.strategy_engine_analysis_requests_total, "labels")
    assert hasattr(metrics.strategy_engine_stage_latency_seconds, "labels")
    assert hasattr(metrics.strategy_engine_recommended_route_total, "labels")
    assert hasattr(metrics.strategy_engine_db_query_latency_seconds, "labels")


def test_stage_histogram_accepts_observations():
    metrics.strategy_engine_stage_latency_seconds.labels(stage="disclosure_state").observe(0.001)
    metrics.strategy_engine_analysis_requests_total.labels(
        source="posted", status="success", degraded="false"
    ).inc()
