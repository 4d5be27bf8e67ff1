"""
Metric value shapes found in creator records.

The creator store is mid-migration: a metric column such as followers_count
holds either a bare number or a wrapped object like {"avg_value": 12345}
(older rows use the column name as the key, e.g. {"followers_count": 12345}).
parse_metric() turns either shape into a MetricValue, and each column has
one extractor that resolves it to a plain number.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NumberMetric:
    """Bare numeric column value"""
    value: float


@dataclass(frozen=True)
class WrappedMetric:
    """Object-shaped column value carrying the number under avg_value or a named key"""
    avg_value: float


MetricValue = Union[NumberMetric, WrappedMetric]


def _to_number(raw: Any) -> Optional[float]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, str):
        try:
            number = float(raw.strip())
        except ValueError:
            return None
        return int(number) if number.is_integer() else number
    return None


def parse_metric(raw: Any, named_key: Optional[str] = None) -> Optional[MetricValue]:
    """
    Classify a raw column value.

    Args:
        raw: Column value as returned by the store
        named_key: Legacy sub-field name checked after avg_value

    Returns:
        NumberMetric, WrappedMetric, or None when no number can be found
    """
    if isinstance(raw, dict):
        for key in ("avg_value", named_key):
            if key and raw.get(key) is not None:
                number = _to_number(raw[key])
                if number is not None:
                    return WrappedMetric(avg_value=number)
        return None

    number = _to_number(raw)
    if number is None:
        return None
    return NumberMetric(value=number)


def metric_number(metric: Optional[MetricValue]) -> float:
    """Resolve a MetricValue to a number, 0 when absent."""
    if isinstance(metric, NumberMetric):
        return metric.value
    if isinstance(metric, WrappedMetric):
        return metric.avg_value
    return 0


def extract_followers_count(raw: Any) -> float:
    return metric_number(parse_metric(raw, "followers_count"))


def extract_average_views(raw: Any) -> float:
    return metric_number(parse_metric(raw, "average_views"))


def extract_engagement_rate(raw: Any) -> float:
    return metric_number(parse_metric(raw, "engagement_rate"))


def extract_average_likes(raw: Any) -> float:
    return metric_number(parse_metric(raw, "average_likes"))


def extract_average_comments(raw: Any) -> float:
    return metric_number(parse_metric(raw, "average_comments"))


# Display field -> (raw column, extractor)
METRIC_COLUMNS: Dict[str, tuple] = {
    "followers": ("followers_count", extract_followers_count),
    "engagement": ("engagement_rate", extract_engagement_rate),
    "avg_views": ("average_views", extract_average_views),
    "avg_likes": ("average_likes", extract_average_likes),
    "avg_comments": ("average_comments", extract_average_comments),
}
