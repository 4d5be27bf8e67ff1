"""
Query construction for the creator store.

build_predicates() turns FilterCriteria into an ordered list of PostgREST
predicates. The count query, the page query, the metrics scan and the AI
batch all apply the same list, so totals and displayed pages always agree.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .models import BuzzScoreBucket, FilterCriteria, SortField, SortState, SortDirection

logger = logging.getLogger(__name__)

# Filter sliders report their ceiling when the user has not moved them
ENGAGEMENT_MAX_CEILING = 500
AVG_VIEWS_MAX_CEILING = 1_000_000

DEFAULT_SORT_COLUMN = "followers_count"

# Sort field -> store column. match_score is synthesized client-side.
SORT_COLUMNS: Dict[str, Optional[str]] = {
    SortField.FOLLOWERS.value: "followers_count",
    SortField.AVG_VIEWS.value: "average_views",
    SortField.ENGAGEMENT.value: "engagement_rate",
    SortField.MATCH_SCORE.value: None,
}

# Bucket label -> [low, high) bounds on buzz_score; None is unbounded
BUZZ_SCORE_BUCKETS: Dict[str, Tuple[Optional[int], Optional[int]]] = {
    BuzzScoreBucket.NINETY_PLUS.value: (90, None),
    BuzzScoreBucket.EIGHTY_TO_NINETY.value: (80, 90),
    BuzzScoreBucket.SEVENTY_TO_EIGHTY.value: (70, 80),
    BuzzScoreBucket.SIXTY_TO_SEVENTY.value: (60, 70),
    BuzzScoreBucket.LESS_THAN_SIXTY.value: (None, 60),
}

PLATFORM_ALIASES = {
    "x": "twitter",
}


@dataclass(frozen=True)
class Predicate:
    """
    One filter applied to a PostgREST query builder.

    op is the builder method name ("in_", "gte", "lte", "lt", "or_").
    For "or_" the value is the rendered PostgREST condition list and
    column is None.
    """
    op: str
    column: Optional[str]
    value: Any

    def apply(self, query):
        if self.op == "or_":
            return query.or_(self.value)
        return getattr(query, self.op)(self.column, self.value)


def _non_empty(values: Optional[List[str]]) -> List[str]:
    return [v for v in values or [] if v not in (None, "")]


def platform_condition(platform: str) -> str:
    name = platform.strip().lower()
    return f"platform.ilike.{PLATFORM_ALIASES.get(name, name)}"


def render_buzz_bucket(low: Optional[int], high: Optional[int]) -> str:
    """PostgREST condition for one [low, high) buzz score range."""
    if low is not None and high is not None:
        return f"and(buzz_score.gte.{low},buzz_score.lt.{high})"
    if low is not None:
        return f"buzz_score.gte.{low}"
    return f"buzz_score.lt.{high}"


def buzz_score_predicates(labels: List[str]) -> List[Predicate]:
    """
    Predicates for the selected buzz score buckets.

    A single bucket applies its bounds directly; several are combined as an
    OR of ranges. Unknown labels are ignored.
    """
    ranges = []
    for label in labels:
        bounds = BUZZ_SCORE_BUCKETS.get(label)
        if bounds is None:
            logger.warning(f"Ignoring unknown buzz score bucket: {label!r}")
            continue
        if bounds not in ranges:
            ranges.append(bounds)

    if not ranges:
        return []

    if len(ranges) == 1:
        low, high = ranges[0]
        predicates = []
        if low is not None:
            predicates.append(Predicate("gte", "buzz_score", low))
        if high is not None:
            predicates.append(Predicate("lt", "buzz_score", high))
        return predicates

    return [Predicate("or_", None, ",".join(render_buzz_bucket(low, high) for low, high in ranges))]


def build_predicates(filters: Optional[FilterCriteria]) -> List[Predicate]:
    """
    Translate filter criteria into store predicates.

    Args:
        filters: Active filters; None or empty fields add nothing

    Returns:
        Ordered predicate list, identical for every query built from the
        same criteria
    """
    if filters is None:
        return []

    predicates: List[Predicate] = []

    niches = _non_empty(filters.niches)
    if niches:
        predicates.append(Predicate("in_", "primary_niche", niches))

    platforms = _non_empty(filters.platforms)
    if platforms:
        conditions = []
        for platform in platforms:
            condition = platform_condition(platform)
            if condition not in conditions:
                conditions.append(condition)
        predicates.append(Predicate("or_", None, ",".join(conditions)))

    if filters.followers_min is not None:
        predicates.append(Predicate("gte", "followers_count", filters.followers_min))
    if filters.followers_max is not None:
        predicates.append(Predicate("lte", "followers_count", filters.followers_max))

    if filters.engagement_min is not None:
        predicates.append(Predicate("gte", "engagement_rate", filters.engagement_min))
    if filters.engagement_max is not None and filters.engagement_max < ENGAGEMENT_MAX_CEILING:
        predicates.append(Predicate("lte", "engagement_rate", filters.engagement_max))

    if filters.avg_views_min is not None:
        predicates.append(Predicate("gte", "average_views", filters.avg_views_min))
    if filters.avg_views_max is not None and filters.avg_views_max < AVG_VIEWS_MAX_CEILING:
        predicates.append(Predicate("lte", "average_views", filters.avg_views_max))

    predicates.extend(buzz_score_predicates(_non_empty(filters.buzz_scores)))

    locations = _non_empty(filters.locations)
    if locations:
        predicates.append(Predicate("in_", "location", locations))

    return predicates


def apply_predicates(query, predicates: List[Predicate]):
    for predicate in predicates:
        query = predicate.apply(query)
    return query


def sort_order(sort_state: Optional[SortState]) -> Tuple[str, bool]:
    """
    Store column and descending flag for a sort state.

    Fields without a store column (match_score) and no sort at all use the
    default order, followers descending.
    """
    if sort_state is None or sort_state.field is None:
        return DEFAULT_SORT_COLUMN, True

    column = SORT_COLUMNS.get(sort_state.field)
    if column is None:
        return DEFAULT_SORT_COLUMN, True

    return column, sort_state.direction == SortDirection.DESC


def page_range(page: int, page_size: int) -> Tuple[int, int]:
    """Inclusive row range for a 1-based page."""
    start = (page - 1) * page_size
    return start, start + page_size - 1


def build_count_query(table, predicates: List[Predicate]):
    """Count-only query: returns the exact match count and only row ids."""
    return apply_predicates(table.select("id", count="exact"), predicates)


def build_page_query(table, predicates: List[Predicate], sort_state: Optional[SortState], page: int, page_size: int):
    """Ranged, ordered data query for one page."""
    column, desc = sort_order(sort_state)
    start, end = page_range(page, page_size)
    query = apply_predicates(table.select("*"), predicates)
    return query.order(column, desc=desc).range(start, end)


def fetch_all_rows(table_factory, columns: str, predicates: List[Predicate], chunk_size: int):
    """
    Fetch every row matching predicates, chunk_size rows per request.

    PostgREST truncates responses at its max-rows setting, which may be
    smaller than chunk_size, so the scan walks ranges until it holds the
    exact count reported by the store (or an empty chunk comes back).

    Args:
        table_factory: Zero-arg callable returning a fresh table builder
        columns: Select list
        predicates: Filters from build_predicates()
        chunk_size: Rows per request

    Returns:
        (rows, count) where count is the exact count reported by the store
    """
    rows: List[Dict[str, Any]] = []
    count: Optional[int] = None
    start = 0

    while True:
        query = apply_predicates(table_factory().select(columns, count="exact"), predicates)
        result = query.order("id").range(start, start + chunk_size - 1).execute()
        batch = result.data or []
        if count is None:
            count = result.count
        rows.extend(batch)
        start += len(batch)
        if not batch:
            break
        if count is not None:
            if len(rows) >= count:
                break
        elif len(batch) < chunk_size:
            break

    return rows, count if count is not None else len(rows)
