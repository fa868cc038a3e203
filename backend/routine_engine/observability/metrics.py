"""Lightweight metrics helpers."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, Optional

from routine_engine.observability import tracing

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record a metric as a short Opik trace when Opik is enabled."""
    payload: Dict[str, Any] = {"value": value}
    if metadata:
        payload.update(metadata)

    client = tracing.get_opik_client()
    if not client:
        return

    try:
        metric_trace = client.trace(name=f"metric:{name}", metadata=payload)
        metric_trace.end()
    except Exception as exc:  # pragma: no cover - SDK failure
        logger.debug("Unable to record metric %s: %s", name, exc)


def log_latency(name: str, started_at: float, metadata: Optional[Dict[str, Any]] = None) -> float:
    """Record ``<name>.latency_ms`` measured from a ``perf_counter()`` start value."""
    latency_ms = (perf_counter() - started_at) * 1000
    log_metric(f"{name}.latency_ms", latency_ms, metadata=metadata)
    return latency_ms
