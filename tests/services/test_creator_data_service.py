"""
Tests for CreatorDataPipeline - the Discover page data pipeline.

Tests: server-side pagination, filter application and metrics, mode
switching with the cached AI batch, sort toggling, page clamping, niche
loading, initialization from persisted state, error state and retry, and
discarding responses from superseded queries.
"""

import math
import random

import pytest
from unittest.mock import MagicMock, patch

from buzzberry.services.match_scoring import RandomMatchScoring
from buzzberry.services.models import FilterCriteria, PipelineState, SortState
from buzzberry.services.state_repository import InMemoryStateRepository


@pytest.fixture
def rows(make_row):
    return [make_row(i) for i in range(1, 51)]


@pytest.fixture
def db(fake_db, rows):
    return fake_db(rows)


@pytest.fixture
def repo():
    return InMemoryStateRepository(PipelineState(mode="all"))


@pytest.fixture
def make_pipeline(db, repo):
    def _make(**kwargs):
        kwargs.setdefault("state_repository", repo)
        kwargs.setdefault("scoring", RandomMatchScoring(rng=random.Random(3)))
        with patch(
            "buzzberry.services.creator_data_service.get_supabase_client",
            return_value=db,
        ):
            from buzzberry.services.creator_data_service import CreatorDataPipeline
            return CreatorDataPipeline(page_size=24, ai_batch_size=100, chunk_size=1000, **kwargs)
    return _make


@pytest.fixture
def pipeline(make_pipeline):
    return make_pipeline()


def _page_queries(db):
    return [q for q in db.executed if ("select", "*", None) in q.calls and q.calls[-1][0] == "range"]


def _count_queries(db):
    return [q for q in db.executed if ("select", "id", "exact") in q.calls]


# ============================================================================
# Server-side pagination
# ============================================================================

class TestFetchPaginatedCreators:
    def test_fifty_records_paginate_into_three_pages(self, pipeline):
        pipeline.fetch_paginated_creators(1)
        snap = pipeline.snapshot

        assert len(snap.creators) == 24
        assert snap.creators[0].id == "creator-050"
        assert snap.creators[-1].id == "creator-027"
        assert snap.total_pages == 3
        assert snap.total_creators == 50
        assert snap.loading is False

        pipeline.fetch_paginated_creators(3)
        snap = pipeline.snapshot
        assert [c.id for c in snap.creators] == ["creator-002", "creator-001"]
        assert snap.current_page == 3

    def test_count_and_page_queries_use_same_predicates(self, pipeline, db):
        pipeline.apply_filters(FilterCriteria(platforms=["tiktok"], followers_min=5000, buzz_scores=["70-80%"]))

        count_query = _count_queries(db)[-1]
        page_query = _page_queries(db)[-1]
        assert count_query.predicate_calls() == page_query.predicate_calls()
        for metrics_query in db.queries_with("range"):
            if metrics_query is page_query:
                continue
            assert metrics_query.predicate_calls() == page_query.predicate_calls()

    def test_total_pages_matches_filtered_count(self, pipeline):
        pipeline.apply_filters({"followers_min": 30000})
        snap = pipeline.snapshot

        assert snap.total_creators == 21
        assert snap.total_pages == max(1, math.ceil(21 / 24))
        assert snap.metrics.total_creators == snap.total_creators

    def test_empty_result_still_has_one_page(self, pipeline):
        pipeline.apply_filters(FilterCriteria(niches=["Nonexistent"]))
        snap = pipeline.snapshot

        assert snap.creators == []
        assert snap.total_pages == 1
        assert snap.current_page == 1

    def test_ai_mode_pages_carry_match_scores(self, make_pipeline):
        pipeline = make_pipeline(state_repository=InMemoryStateRepository(PipelineState(mode="ai")))
        pipeline.fetch_paginated_creators(1)

        scores = [c.match_score for c in pipeline.snapshot.creators]
        assert all(60 <= s < 100 for s in scores)

    def test_all_mode_pages_have_no_match_scores(self, pipeline):
        pipeline.fetch_paginated_creators(1)
        assert all(c.match_score is None for c in pipeline.snapshot.creators)

    def test_prefetches_loaded_thumbnails(self, make_pipeline):
        prefetcher = MagicMock()
        pipeline = make_pipeline(prefetcher=prefetcher)

        pipeline.fetch_paginated_creators(1)

        prefetcher.prefetch.assert_called_once()
        assert len(prefetcher.prefetch.call_args[0][0]) == 24

    def test_prefetch_failure_is_ignored(self, make_pipeline):
        prefetcher = MagicMock()
        prefetcher.prefetch.side_effect = RuntimeError("pool closed")
        pipeline = make_pipeline(prefetcher=prefetcher)

        pipeline.fetch_paginated_creators(1)

        assert pipeline.snapshot.error is None
        assert len(pipeline.snapshot.creators) == 24


# ============================================================================
# Filters
# ============================================================================

class TestApplyFilters:
    def test_resets_to_first_page_and_persists(self, pipeline, repo):
        pipeline.fetch_paginated_creators(2)

        pipeline.apply_filters(FilterCriteria(niches=["Fitness"]))

        assert pipeline.snapshot.current_page == 1
        saved = repo.load()
        assert saved.page == 1
        assert saved.filters.niches == ["Fitness"]

    def test_accepts_dict_and_mode(self, pipeline, repo):
        pipeline.apply_filters({"platforms": ["tiktok"]}, mode="ai")

        assert pipeline.snapshot.current_mode == "ai"
        assert repo.load().mode == "ai"
        assert all(c.match_score is not None for c in pipeline.snapshot.creators)

    def test_updates_metrics(self, pipeline):
        pipeline.apply_filters({"followers_max": 10000})
        metrics = pipeline.snapshot.metrics

        assert metrics.total_creators == 10
        assert metrics.avg_followers == 5500
        assert metrics.avg_views == 2750

    def test_adding_a_constraint_never_grows_results(self, pipeline, db, make_row):
        db.rows.extend(make_row(i, primary_niche="Beauty", followers_count=i) for i in range(60, 70))

        pipeline.apply_filters({"niches": ["Fitness", "Beauty"]})
        broad = pipeline.snapshot.total_creators
        pipeline.apply_filters({"niches": ["Fitness", "Beauty"], "followers_min": 20000})
        narrow = pipeline.snapshot

        assert narrow.total_creators <= broad
        assert all(c.followers >= 20000 for c in narrow.creators)

    def test_invalid_criteria_sets_error(self, pipeline, db):
        pipeline.apply_filters({"followers_min": "lots"})

        assert pipeline.snapshot.error.startswith("Invalid filters")
        assert db.executed == []

    def test_invalid_mode_sets_error(self, pipeline):
        pipeline.apply_filters({}, mode="sideways")
        assert pipeline.snapshot.error

    def test_store_failure_keeps_previous_results(self, pipeline, db):
        pipeline.fetch_paginated_creators(1)
        before = pipeline.snapshot.creators

        db.error = RuntimeError("statement timeout")
        pipeline.apply_filters({"niches": ["Fitness"]})
        snap = pipeline.snapshot

        assert snap.error == "statement timeout"
        assert snap.loading is False
        assert snap.creators == before

    def test_drops_cached_ai_batch(self, pipeline):
        pipeline.switch_mode("ai")
        assert pipeline.ai_batch

        pipeline.apply_filters({"niches": ["Fitness"]})

        assert pipeline.ai_batch == []


# ============================================================================
# Modes
# ============================================================================

class TestSwitchMode:
    def test_ai_mode_fetches_scored_batch(self, pipeline, db):
        pipeline.switch_mode("ai")
        snap = pipeline.snapshot

        batch_query = db.queries_with("limit")[-1]
        assert ("limit", 100) in batch_query.calls
        assert ("order", "followers_count", True) in batch_query.calls

        batch = pipeline.ai_batch
        assert len(batch) == 50
        scores = [c.match_score for c in batch]
        assert scores == sorted(scores, reverse=True)

        assert snap.current_mode == "ai"
        assert snap.total_pages == 3
        assert [c.id for c in snap.creators] == [c.id for c in batch[:24]]

    def test_ai_batch_applies_active_filters(self, pipeline, db):
        pipeline.apply_filters({"followers_min": 45000})
        pipeline.switch_mode("ai")

        assert len(pipeline.ai_batch) == 6
        assert pipeline.snapshot.total_pages == 1

    def test_cached_batch_is_reused(self, pipeline, db):
        pipeline.switch_mode("ai")
        pipeline.switch_mode("all")
        executed = len(db.executed)

        pipeline.switch_mode("ai")

        assert len(db.executed) == executed
        assert pipeline.snapshot.current_page == 1
        assert len(pipeline.snapshot.creators) == 24

    def test_all_mode_refetches_first_page(self, pipeline, db):
        pipeline.switch_mode("ai")
        pipeline.switch_mode("all")

        snap = pipeline.snapshot
        assert snap.current_mode == "all"
        assert snap.current_page == 1
        assert snap.creators[0].id == "creator-050"
        assert snap.creators[0].match_score is None

    def test_persists_mode(self, pipeline, repo):
        pipeline.switch_mode("ai")
        assert repo.load().mode == "ai"

    def test_invalid_mode_sets_error(self, pipeline):
        pipeline.switch_mode("everything")
        assert pipeline.snapshot.error


# ============================================================================
# Sorting
# ============================================================================

class TestHandleSort:
    def test_same_field_toggles_desc_asc_desc(self, pipeline, db):
        pipeline.handle_sort("followers")
        assert pipeline.snapshot.sort_state == SortState(field="followers", direction="desc")

        pipeline.handle_sort("followers")
        assert pipeline.snapshot.sort_state == SortState(field="followers", direction="asc")
        assert ("order", "followers_count", False) in _page_queries(db)[-1].calls
        assert pipeline.snapshot.creators[0].id == "creator-001"

        pipeline.handle_sort("followers")
        assert pipeline.snapshot.sort_state.direction == "desc"

    def test_new_field_starts_desc(self, pipeline, db):
        pipeline.handle_sort("followers")
        pipeline.handle_sort("followers")

        pipeline.handle_sort("avg_views")

        assert pipeline.snapshot.sort_state == SortState(field="avg_views", direction="desc")
        assert ("order", "average_views", True) in _page_queries(db)[-1].calls

    def test_requeries_current_page(self, pipeline):
        pipeline.fetch_paginated_creators(2)
        pipeline.handle_sort("engagement")
        assert pipeline.snapshot.current_page == 2

    def test_sort_persisted(self, pipeline, repo):
        pipeline.handle_sort("engagement")
        assert repo.load().sort == SortState(field="engagement", direction="desc")

    def test_match_score_sorts_page_client_side_in_ai_mode(self, make_pipeline, db):
        pipeline = make_pipeline(state_repository=InMemoryStateRepository(PipelineState(mode="ai")))

        pipeline.handle_sort("match_score")
        desc_scores = [c.match_score for c in pipeline.snapshot.creators]
        assert ("order", "followers_count", True) in _page_queries(db)[-1].calls
        assert desc_scores == sorted(desc_scores, reverse=True)

        pipeline.handle_sort("match_score")
        asc_scores = [c.match_score for c in pipeline.snapshot.creators]
        assert asc_scores == sorted(asc_scores)

    def test_invalid_field_sets_error(self, pipeline):
        pipeline.handle_sort("shoe_size")
        assert pipeline.snapshot.error


# ============================================================================
# Page navigation
# ============================================================================

class TestPageNavigation:
    def test_out_of_range_pages_are_clamped(self, pipeline):
        pipeline.fetch_paginated_creators(1)

        pipeline.handle_page_change(99)
        assert pipeline.snapshot.current_page == 3

        pipeline.handle_page_change(-4)
        assert pipeline.snapshot.current_page == 1

    def test_next_and_previous_stop_at_bounds(self, pipeline, db):
        pipeline.fetch_paginated_creators(1)
        executed = len(db.executed)
        pipeline.previous_page()
        assert len(db.executed) == executed

        pipeline.next_page()
        pipeline.next_page()
        assert pipeline.snapshot.current_page == 3

        executed = len(db.executed)
        pipeline.next_page()
        assert len(db.executed) == executed
        assert pipeline.snapshot.current_page == 3

        pipeline.previous_page()
        assert pipeline.snapshot.current_page == 2

    def test_page_persisted(self, pipeline, repo):
        pipeline.fetch_paginated_creators(1)
        pipeline.handle_page_change(2)
        assert repo.load().page == 2

    def test_ai_batch_pages_are_sliced_client_side(self, pipeline, db):
        pipeline.switch_mode("ai")
        batch = pipeline.ai_batch
        executed = len(db.executed)

        pipeline.handle_page_change(3)

        assert len(db.executed) == executed
        assert [c.id for c in pipeline.snapshot.creators] == [c.id for c in batch[48:]]

    def test_non_numeric_page_sets_error(self, pipeline):
        pipeline.handle_page_change("two")
        assert pipeline.snapshot.error

    def test_page_state_tracks_server_pages(self, pipeline):
        pipeline.fetch_paginated_creators(2)

        state = pipeline.page_state
        assert (state.page, state.page_size, state.total_pages, state.total_count) == (2, 24, 3, 50)
        assert state.clamp(7) == 3
        assert state.clamp(0) == 1

    def test_page_state_tracks_ai_batch_pages(self, pipeline):
        pipeline.apply_filters({"followers_min": 30000})
        pipeline.switch_mode("ai")

        pipeline.handle_page_change(5)

        assert pipeline.page_state.total_pages == 1
        assert pipeline.snapshot.current_page == 1
        assert len(pipeline.snapshot.creators) == 21


# ============================================================================
# Niches
# ============================================================================

class TestLoadNiches:
    def test_distinct_in_first_seen_order(self, fake_db, make_row, make_pipeline, db):
        db.rows[:] = [
            make_row(1, primary_niche="Fitness"),
            make_row(2, primary_niche="Home Decor"),
            make_row(3, primary_niche="Fitness"),
            make_row(4, primary_niche=None),
            make_row(5, primary_niche="  "),
        ]
        pipeline = make_pipeline()

        niches = pipeline.load_niches()

        assert [(n.id, n.name) for n in niches] == [("fitness", "Fitness"), ("home-decor", "Home Decor")]
        assert pipeline.snapshot.niches == niches

    def test_failure_yields_empty_list(self, pipeline, db):
        db.error = RuntimeError("down")
        assert pipeline.load_niches() == []
        assert pipeline.snapshot.niches == []


# ============================================================================
# Initialization, errors, retry
# ============================================================================

class TestInitialize:
    def test_restores_persisted_state(self, make_pipeline, db):
        repo = InMemoryStateRepository(PipelineState(
            mode="all",
            page=2,
            filters=FilterCriteria(followers_min=10000),
            sort=SortState(field="avg_views", direction="asc"),
        ))
        pipeline = make_pipeline(state_repository=repo)

        pipeline.initialize()
        snap = pipeline.snapshot

        assert snap.current_page == 2
        assert snap.total_creators == 41
        assert snap.metrics.total_creators == 41
        assert snap.creators[0].id == "creator-034"
        assert [n.name for n in snap.niches] == ["Fitness"]

    def test_metrics_failure_skips_page_but_not_niches(self, pipeline, db):
        def fail_metrics(query):
            if any(c[0] == "select" and "followers_count" in c[1] for c in query.calls):
                raise RuntimeError("metrics unavailable")

        db.on_execute = fail_metrics

        pipeline.initialize()
        snap = pipeline.snapshot

        assert snap.error == "metrics unavailable"
        assert snap.creators == []
        assert _page_queries(db) == []
        assert [n.name for n in snap.niches] == ["Fitness"]


class TestRetry:
    def test_retry_after_failure(self, pipeline, db):
        db.error = RuntimeError("connection reset")
        pipeline.initialize()
        assert pipeline.snapshot.error == "connection reset"

        db.error = None
        pipeline.retry()

        snap = pipeline.snapshot
        assert snap.error is None
        assert len(snap.creators) == 24
        assert snap.metrics.total_creators == 50

    def test_retry_after_failed_ai_switch_loads_scored_server_page(self, pipeline, db):
        db.error = RuntimeError("timeout")
        pipeline.switch_mode("ai")
        assert pipeline.snapshot.error == "timeout"
        assert pipeline.ai_batch == []

        db.error = None
        pipeline.retry()

        snap = pipeline.snapshot
        assert snap.error is None
        assert snap.current_mode == "ai"
        assert len(snap.creators) == 24
        assert all(c.match_score is not None for c in snap.creators)
        assert snap.metrics.total_creators == 50
        assert pipeline.ai_batch == []
        assert len(db.queries_with("limit")) == 1

    def test_retry_refetches_batch_when_showing_batch_page(self, pipeline, db):
        pipeline.switch_mode("ai")
        batch_queries = len(db.queries_with("limit"))

        pipeline.retry()

        assert len(db.queries_with("limit")) == batch_queries + 1
        assert len(pipeline.ai_batch) == 50


# ============================================================================
# Superseded queries
# ============================================================================

class TestStaleResponses:
    def _newer_filter_during_page_query(self, pipeline, db, then_raise=False):
        fired = []

        def hook(query):
            if fired or query not in _page_queries(db):
                return
            fired.append(query)
            pipeline.apply_filters({"niches": ["Beauty"]})
            if then_raise:
                raise RuntimeError("late failure")

        db.on_execute = hook

    def test_late_page_response_is_discarded(self, pipeline, db, make_row):
        for row in db.rows[:5]:
            row["primary_niche"] = "Beauty"
        self._newer_filter_during_page_query(pipeline, db)

        pipeline.fetch_paginated_creators(1)
        snap = pipeline.snapshot

        assert snap.total_creators == 5
        assert len(snap.creators) == 5
        assert all(c.niches[0].name == "Beauty" for c in snap.creators)
        assert snap.loading is False

    def test_late_error_is_discarded(self, pipeline, db):
        for row in db.rows[:5]:
            row["primary_niche"] = "Beauty"
        self._newer_filter_during_page_query(pipeline, db, then_raise=True)

        pipeline.fetch_paginated_creators(1)
        snap = pipeline.snapshot

        assert snap.error is None
        assert len(snap.creators) == 5
