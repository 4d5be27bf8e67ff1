"""
Services layer for Buzzberry creator discovery.

Provides the Discover page data pipeline (CreatorDataPipeline) and the
pieces it is built from: record normalization, query construction,
aggregate metrics, match scoring and state persistence.
"""

from .models import (
    Creator,
    CreatorListMode,
    CreatorMetrics,
    CreatorNiche,
    FilterCriteria,
    Niche,
    PageState,
    PipelineSnapshot,
    PipelineState,
    SocialMediaLink,
    SortDirection,
    SortField,
    SortState,
)
from .creator_data_service import CreatorDataPipeline
from .creator_transform import transform_creator_data, transform_creators
from .creator_metrics import fetch_creator_metrics
from .match_scoring import RandomMatchScoring, ScoringStrategy
from .state_repository import InMemoryStateRepository, JsonFileStateRepository, StateRepository
from .thumbnail_prefetcher import ThumbnailPrefetcher

__all__ = [
    "Creator",
    "CreatorListMode",
    "CreatorMetrics",
    "CreatorNiche",
    "FilterCriteria",
    "Niche",
    "PageState",
    "PipelineSnapshot",
    "PipelineState",
    "SocialMediaLink",
    "SortDirection",
    "SortField",
    "SortState",
    "CreatorDataPipeline",
    "transform_creator_data",
    "transform_creators",
    "fetch_creator_metrics",
    "RandomMatchScoring",
    "ScoringStrategy",
    "InMemoryStateRepository",
    "JsonFileStateRepository",
    "StateRepository",
    "ThumbnailPrefetcher",
]
