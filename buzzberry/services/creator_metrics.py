"""
Aggregate metrics for the Discover header.

Scans every creator matching the active filters and averages followers,
views and engagement client-side. This is O(n) per filter change; fine
for the few thousand rows in creatordata today.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from .creator_query import build_predicates, fetch_all_rows
from .metric_values import extract_average_views, extract_engagement_rate, extract_followers_count
from .models import CreatorMetrics, FilterCriteria

logger = logging.getLogger(__name__)

METRIC_COLUMNS = "id, followers_count, average_views, engagement_rate"


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like the dashboard does (0.5 always rounds up)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def summarize_metrics(rows: List[Dict[str, Any]], total_count: int) -> CreatorMetrics:
    """
    Compute averages over a fetched result set.

    Args:
        rows: Matching rows (followers_count, average_views, engagement_rate)
        total_count: Exact match count reported by the store

    Returns:
        CreatorMetrics; all averages are 0 for an empty set
    """
    if not rows:
        return CreatorMetrics(total_creators=total_count)

    n = len(rows)
    followers = sum(extract_followers_count(r.get("followers_count")) for r in rows) / n
    views = sum(extract_average_views(r.get("average_views")) for r in rows) / n
    engagement = sum(extract_engagement_rate(r.get("engagement_rate")) for r in rows) / n

    return CreatorMetrics(
        total_creators=total_count,
        avg_followers=int(round_half_up(followers)),
        avg_views=int(round_half_up(views)),
        avg_engagement=round_half_up(engagement, 2),
    )


def fetch_creator_metrics(
    table_factory,
    filters: Optional[FilterCriteria] = None,
    chunk_size: int = 1000,
) -> CreatorMetrics:
    """
    Aggregate metrics for all creators matching filters.

    Args:
        table_factory: Zero-arg callable returning a fresh creator table builder
        filters: Active filter criteria
        chunk_size: Rows per request (PostgREST max-rows)

    Returns:
        CreatorMetrics

    Raises:
        Exception: Store errors propagate; the pipeline converts them to state
    """
    predicates = build_predicates(filters)
    rows, count = fetch_all_rows(table_factory, METRIC_COLUMNS, predicates, chunk_size)
    metrics = summarize_metrics(rows, count)
    logger.info(
        f"Metrics over {metrics.total_creators} creators: "
        f"avg_followers={metrics.avg_followers}, avg_views={metrics.avg_views}, "
        f"avg_engagement={metrics.avg_engagement}"
    )
    return metrics
