"""
CreatorDataPipeline - Discover page data: filters, sorting, pagination, metrics.

Owns the Discover page state (mode, page, filters, sort), turns it into
queries against the creatordata table, normalizes the returned rows and
publishes a PipelineSnapshot for presentation code.

Two listing modes:
- "all": server-side filtered, sorted and paginated browse
- "ai": recommendations; pages fetched from the server carry a placeholder
  match score, and switching into AI mode shows a cached batch of up to
  AI_BATCH_SIZE creators that is paginated client-side

Public operations never raise. Store failures land in snapshot.error and
leave the previous results in place; the caller decides when to retry().

Every dispatched query takes a generation number. A response that comes
back after a newer query was dispatched is dropped, so a slow response to
an old filter change cannot overwrite a newer page.
"""

import logging
import re
import threading
from typing import Any, Dict, List, Optional, Union

from supabase import Client

from ..core.config import Config
from ..core.database import creators_table, get_supabase_client
from ..core.observability import query_span
from .creator_metrics import fetch_creator_metrics
from .creator_query import (
    DEFAULT_SORT_COLUMN,
    apply_predicates,
    build_count_query,
    build_page_query,
    build_predicates,
    fetch_all_rows,
)
from .creator_transform import transform_creators
from .match_scoring import RandomMatchScoring, ScoringStrategy, assign_match_scores, sort_by_match_score
from .models import (
    Creator,
    CreatorListMode,
    CreatorMetrics,
    FilterCriteria,
    Niche,
    PageState,
    PipelineSnapshot,
    PipelineState,
    SortDirection,
    SortField,
    SortState,
)
from .state_repository import InMemoryStateRepository, StateRepository
from .thumbnail_prefetcher import ThumbnailPrefetcher

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load creators"
FILTER_ERROR = "An error occurred while filtering creators"


def _error_message(error: Exception, default: str) -> str:
    message = getattr(error, "message", None) or str(error)
    return message or default


def niche_slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


class CreatorDataPipeline:
    """
    Discover page data pipeline.

    Args:
        client: Supabase client (defaults to the shared client)
        state_repository: Where mode/page/filters/sort persist between sessions
        scoring: Match score strategy for AI mode
        prefetcher: Optional background thumbnail warmer
        table_name: Creator table (defaults to Config.CREATORS_TABLE)
        page_size: Creators per page (defaults to Config.CREATORS_PER_PAGE)
        ai_batch_size: Size of the cached AI recommendation batch
        chunk_size: Rows per request for full scans
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        state_repository: Optional[StateRepository] = None,
        scoring: Optional[ScoringStrategy] = None,
        prefetcher: Optional[ThumbnailPrefetcher] = None,
        table_name: Optional[str] = None,
        page_size: Optional[int] = None,
        ai_batch_size: Optional[int] = None,
        chunk_size: Optional[int] = None,
    ):
        self._db = client if client is not None else get_supabase_client()
        self._repository = state_repository or InMemoryStateRepository()
        self._scoring = scoring or RandomMatchScoring()
        self._prefetcher = prefetcher

        self.table_name = table_name or Config.CREATORS_TABLE
        self.page_size = page_size or Config.CREATORS_PER_PAGE
        self.ai_batch_size = ai_batch_size or Config.AI_BATCH_SIZE
        self.chunk_size = chunk_size or Config.CHUNK_SIZE_FOR_DB_OPS

        self._state = self._load_state()

        self._creators: List[Creator] = []
        self._ai_batch: List[Creator] = []
        self._batch_paged = False
        self._niches: List[Niche] = []
        self._metrics: Optional[CreatorMetrics] = None
        self._total_pages = 1
        self._total_count = 0
        self._loading = False
        self._error: Optional[str] = None

        self._lock = threading.RLock()
        self._generation = 0

    # =========================================================================
    # State
    # =========================================================================

    def _load_state(self) -> PipelineState:
        try:
            return self._repository.load()
        except Exception as e:
            logger.warning(f"Could not load discover state, using defaults: {e}")
            return PipelineState()

    def _persist(self) -> None:
        try:
            self._repository.save(self._state.model_copy(deep=True))
        except Exception as e:
            logger.error(f"Failed to persist discover state: {e}")

    @property
    def state(self) -> PipelineState:
        return self._state.model_copy(deep=True)

    @property
    def page_state(self) -> PageState:
        return PageState(
            page=self._state.page,
            page_size=self.page_size,
            total_pages=self._total_pages,
            total_count=self._total_count,
        )

    @property
    def snapshot(self) -> PipelineSnapshot:
        with self._lock:
            return PipelineSnapshot(
                creators=list(self._creators),
                current_mode=self._state.mode,
                current_page=self._state.page,
                total_pages=self._total_pages,
                total_creators=self._total_count,
                niches=list(self._niches),
                metrics=self._metrics,
                loading=self._loading,
                error=self._error,
                sort_state=self._state.sort.model_copy(),
            )

    @property
    def ai_batch(self) -> List[Creator]:
        return list(self._ai_batch)

    # =========================================================================
    # Generations
    # =========================================================================

    def _begin(self) -> int:
        """Dispatch a new query generation and mark the pipeline loading."""
        with self._lock:
            self._generation += 1
            self._loading = True
            self._error = None
            return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _fail(self, generation: int, error: Exception, default: str) -> None:
        with self._lock:
            if not self._is_current(generation):
                logger.info(f"Dropping error from superseded query {generation}: {error}")
                return
            self._error = _error_message(error, default)
            self._loading = False
        logger.error(f"{default}: {error}")

    def _table(self):
        return creators_table(self._db, self.table_name)

    def _prefetch(self, creators: List[Creator]) -> None:
        if self._prefetcher is None or not creators:
            return
        try:
            self._prefetcher.prefetch(creators)
        except Exception as e:
            logger.debug(f"Thumbnail prefetch not started: {e}")

    def _decorate_for_ai(self, creators: List[Creator]) -> List[Creator]:
        scored = assign_match_scores(creators, self._scoring)
        if self._state.sort.field == SortField.MATCH_SCORE:
            scored = sort_by_match_score(scored, self._state.sort.direction)
        return scored

    # =========================================================================
    # Queries
    # =========================================================================

    def _query_page(self, page: int):
        """Count query then page query, both with the same predicates."""
        predicates = build_predicates(self._state.filters)

        with query_span("count creators", table=self.table_name, predicates=len(predicates)):
            count_result = build_count_query(self._table(), predicates).execute()
        total_count = count_result.count or 0

        with query_span("fetch creator page", table=self.table_name, page=page):
            data_result = build_page_query(
                self._table(), predicates, self._state.sort, page, self.page_size
            ).execute()

        return data_result.data or [], total_count

    def fetch_paginated_creators(self, page: int) -> None:
        """Fetch one server-side page under the active filters and sort."""
        generation = self._begin()
        mode = self._state.mode

        try:
            rows, total_count = self._query_page(page)
        except Exception as e:
            self._fail(generation, e, LOAD_ERROR)
            return

        creators = transform_creators(rows)
        if mode == CreatorListMode.AI:
            creators = self._decorate_for_ai(creators)

        with self._lock:
            if not self._is_current(generation):
                logger.info(f"Discarding stale page {page} (generation {generation} < {self._generation})")
                return
            self._creators = creators
            self._batch_paged = False
            self._total_count = total_count
            self._total_pages = PageState.pages_for(total_count, self.page_size)
            self._state.page = page
            self._loading = False
            self._persist()

        logger.info(f"Loaded page {page}/{self._total_pages} ({len(creators)} of {total_count} creators, mode={mode})")
        self._prefetch(creators)

    def _fetch_ai_batch(self) -> None:
        generation = self._begin()
        predicates = build_predicates(self._state.filters)

        try:
            with query_span("fetch ai batch", table=self.table_name, limit=self.ai_batch_size):
                query = apply_predicates(self._table().select("*"), predicates)
                result = query.order(DEFAULT_SORT_COLUMN, desc=True).limit(self.ai_batch_size).execute()
        except Exception as e:
            self._fail(generation, e, LOAD_ERROR)
            return

        creators = assign_match_scores(transform_creators(result.data), self._scoring)
        direction = (
            self._state.sort.direction
            if self._state.sort.field == SortField.MATCH_SCORE
            else SortDirection.DESC.value
        )
        creators = sort_by_match_score(creators, direction)

        with self._lock:
            if not self._is_current(generation):
                logger.info(f"Discarding stale AI batch (generation {generation})")
                return
            self._ai_batch = creators
            self._paginate_batch(1)
            self._loading = False

        logger.info(f"Loaded AI batch of {len(creators)} creators")

    def _paginate_batch(self, page: int) -> None:
        """Show a page of the cached AI batch. Caller holds the lock."""
        self._total_pages = PageState.pages_for(len(self._ai_batch), self.page_size)
        page = self.page_state.clamp(page)
        start = (page - 1) * self.page_size
        self._creators = self._ai_batch[start:start + self.page_size]
        self._batch_paged = True
        self._state.page = page
        self._persist()
        self._prefetch(self._creators)

    def _refresh_metrics(self) -> bool:
        generation = self._begin()
        try:
            with query_span("fetch creator metrics", table=self.table_name):
                metrics = fetch_creator_metrics(self._table, self._state.filters, self.chunk_size)
        except Exception as e:
            self._fail(generation, e, FILTER_ERROR)
            return False

        with self._lock:
            if not self._is_current(generation):
                return False
            self._metrics = metrics
            self._total_count = metrics.total_creators
        return True

    # =========================================================================
    # Public operations
    # =========================================================================

    def initialize(self) -> None:
        """Initial load: metrics and the persisted page, then niches."""
        if self._refresh_metrics():
            self.fetch_paginated_creators(max(self._state.page, 1))
        self.load_niches()

    def apply_filters(
        self,
        criteria: Union[FilterCriteria, Dict[str, Any], None],
        mode: Union[CreatorListMode, str, None] = None,
    ) -> None:
        """
        Apply new filter criteria.

        Persists the criteria, resets to page 1, requeries aggregate metrics
        and then page 1 so both reflect the same filter set. The cached AI
        batch is dropped since it was built under the old filters.
        """
        try:
            filters = (
                criteria if isinstance(criteria, FilterCriteria)
                else FilterCriteria.model_validate(criteria or {})
            )
            new_mode = CreatorListMode(mode).value if mode is not None else self._state.mode
        except ValueError as e:
            with self._lock:
                self._error = f"Invalid filters: {e}"
            logger.error(f"Rejected filters {criteria!r}: {e}")
            return

        with self._lock:
            self._state.filters = filters
            self._state.mode = new_mode
            self._state.page = 1
            self._ai_batch = []
            self._persist()

        logger.info(f"Applying filters {filters.model_dump(exclude_none=True)} in {new_mode} mode")
        if self._refresh_metrics():
            self.fetch_paginated_creators(1)

    def switch_mode(self, mode: Union[CreatorListMode, str]) -> None:
        """
        Switch between AI recommendations and the full browse list.

        AI mode reuses the cached batch when there is one; "all" always
        refetches page 1 from the server.
        """
        try:
            new_mode = CreatorListMode(mode).value
        except ValueError as e:
            with self._lock:
                self._error = str(e)
            return

        with self._lock:
            self._state.mode = new_mode
            self._persist()

        if new_mode == CreatorListMode.AI and self._ai_batch:
            self._begin()
            with self._lock:
                self._paginate_batch(1)
                self._loading = False
            return

        self.load_creators(new_mode)

    def load_creators(self, mode: Union[CreatorListMode, str, None] = None) -> None:
        """Fresh load for a mode: the AI batch, or page 1 of the browse list."""
        try:
            target = CreatorListMode(mode).value if mode is not None else self._state.mode
        except ValueError as e:
            with self._lock:
                self._error = str(e)
            return
        if target == CreatorListMode.AI:
            self._fetch_ai_batch()
        else:
            self.fetch_paginated_creators(1)

    def handle_sort(self, field: Union[SortField, str]) -> None:
        """
        Sort by field; the same field twice toggles desc -> asc -> desc.

        Requeries the current page ordered by the field's column. match_score
        has no column, so the store returns its default order and the page
        is sorted client-side after scoring (AI mode).
        """
        try:
            sort_field = SortField(field).value
        except ValueError as e:
            with self._lock:
                self._error = str(e)
            return

        current = self._state.sort
        if current.field == sort_field and current.direction == SortDirection.DESC:
            direction = SortDirection.ASC
        else:
            direction = SortDirection.DESC

        with self._lock:
            self._state.sort = SortState(field=sort_field, direction=direction)
            self._persist()

        logger.info(f"Sorting by {sort_field} {direction.value}")
        self.fetch_paginated_creators(self._state.page)

    def handle_page_change(self, page: int) -> None:
        """Go to page, clamped to [1, total_pages]."""
        try:
            target = self.page_state.clamp(int(page))
        except (TypeError, ValueError):
            with self._lock:
                self._error = f"Invalid page: {page!r}"
            return

        if self._batch_paged and self._state.mode == CreatorListMode.AI and self._ai_batch:
            self._begin()
            with self._lock:
                self._paginate_batch(target)
                self._loading = False
            return

        self.fetch_paginated_creators(target)

    def next_page(self) -> None:
        if self._state.page < self._total_pages:
            self.handle_page_change(self._state.page + 1)

    def previous_page(self) -> None:
        if self._state.page > 1:
            self.handle_page_change(self._state.page - 1)

    def load_niches(self) -> List[Niche]:
        """Distinct primary niches, in first-seen order. Empty on failure."""
        try:
            with query_span("load niches", table=self.table_name):
                rows, _ = fetch_all_rows(self._table, "id, primary_niche", [], self.chunk_size)
        except Exception as e:
            logger.error(f"Failed to load niches: {e}")
            with self._lock:
                self._niches = []
            return []

        names: List[str] = []
        for row in rows:
            name = row.get("primary_niche")
            if isinstance(name, str) and name.strip() and name not in names:
                names.append(name)

        niches = [Niche(id=niche_slug(name), name=name) for name in names]
        with self._lock:
            self._niches = niches
        return list(niches)

    def retry(self) -> None:
        """
        Reload the current view after an error.

        A page sliced from the cached AI batch refetches the batch. Anything
        else, including an AI mode switch whose batch never loaded, refreshes
        metrics and refetches the current server page, which is scored in AI
        mode.
        """
        if self._batch_paged and self._state.mode == CreatorListMode.AI:
            self._fetch_ai_batch()
            return
        if self._refresh_metrics():
            self.fetch_paginated_creators(self._state.page)
