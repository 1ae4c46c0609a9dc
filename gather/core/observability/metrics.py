"""Structured logging for observability and metrics collection."""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def log_metric(
    event_type: str,
    value: Optional[float] = None,
    labels: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> None:
    """
    Log structured metrics for observability.

    Args:
        event_type: Type of metric event (e.g., 'counter_increment', 'gauge_set')
        value: Numeric value for gauges
        labels: Key-value pairs for metric labels
        **kwargs: Additional fields to include in the log
    """
    log_data = {
        "timestamp": datetime.now().isoformat(),
        "event_type": event_type,
        "instance_id": os.getenv("INSTANCE_ID", "unknown"),
        "service": "gather-backend",
    }

    if value is not None:
        log_data["value"] = value

    if labels:
        log_data["labels"] = labels

    log_data.update(kwargs)

    # Log as JSON for easy parsing
    logger.info(json.dumps(log_data, default=str))


def log_counter_increment(
    name: str, labels: Optional[Dict[str, str]] = None, **kwargs: Any
) -> None:
    """Log a counter increment event."""
    log_metric(
        event_type="counter_increment", counter_name=name, labels=labels, **kwargs
    )


def log_gauge_set(
    name: str, value: float, labels: Optional[Dict[str, str]] = None, **kwargs: Any
) -> None:
    """Log a gauge set event."""
    log_metric(
        event_type="gauge_set", gauge_name=name, value=value, labels=labels, **kwargs
    )


def log_membership_event(
    event: str, community_id: str, user_id: Optional[str] = None, **kwargs: Any
) -> None:
    """Log membership and join-request lifecycle events."""
    log_metric(
        event_type="membership_event",
        membership_event=event,
        community_id=community_id,
        user_id=user_id,
        **kwargs,
    )
