"""Prometheus metrics for GitLab MCP.

Cardinality rule: project and group paths are NOT Prometheus labels (unbounded).
tool_name, HTTP method and status code are labels (bounded).
"""

import logging
from typing import Dict, Optional

import prometheus_client

logger = logging.getLogger(__name__)

# --- Metric singletons (created on first access) ---

_metrics: Dict[str, object] = {}


def _metric(name, metric_type, description, labelnames=()):
    """Get or create a Prometheus metric."""
    if name in _metrics:
        return _metrics[name]
    cls = getattr(prometheus_client, metric_type)
    m = cls(name, description, labelnames=labelnames)
    _metrics[name] = m
    return m


def tool_calls_total():
    return _metric(
        "gitlab_mcp_tool_calls_total",
        "Counter",
        "Total tool calls",
        labelnames=["tool_name", "status"],
    )


def tool_call_duration():
    return _metric(
        "gitlab_mcp_tool_call_duration_seconds",
        "Histogram",
        "Tool call duration in seconds",
        labelnames=["tool_name", "status"],
    )


def gitlab_requests_total():
    return _metric(
        "gitlab_mcp_gitlab_requests_total",
        "Counter",
        "Total requests sent to the GitLab REST API",
        labelnames=["method", "status_code"],
    )


# --- Helper functions for recording metrics ---

def record_tool_call(tool_name: str, status: str, duration: float):
    tool_calls_total().labels(tool_name=tool_name, status=status).inc()
    tool_call_duration().labels(tool_name=tool_name, status=status).observe(duration)


def record_gitlab_request(method: str, status_code: Optional[int]):
    """Count one GitLab API request; status_code is None for transport failures."""
    gitlab_requests_total().labels(
        method=method.upper(),
        status_code=str(status_code) if status_code is not None else "error",
    ).inc()


def generate_metrics_text() -> str:
    """Generate Prometheus metrics text output."""
    return prometheus_client.generate_latest().decode("utf-8")
