"""
Pydantic models for the creator discovery pipeline.

These models provide validated data structures for:
- Normalized creator records shown on the Discover page (Creator)
- Filter, sort and pagination state (FilterCriteria, SortState, PageState)
- The persisted slice of pipeline state (PipelineState)
- Aggregate metrics and niche listings (CreatorMetrics, Niche)
- The read-only view handed to presentation code (PipelineSnapshot)

All models use Pydantic v2.
"""

import math
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Enums
# ============================================================================

class CreatorListMode(str, Enum):
    """Discover page listing mode"""
    AI = "ai"
    ALL = "all"


class SortField(str, Enum):
    """Sortable columns on the Discover page"""
    MATCH_SCORE = "match_score"
    FOLLOWERS = "followers"
    AVG_VIEWS = "avg_views"
    ENGAGEMENT = "engagement"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ChangeType(str, Enum):
    """Direction of a metric's period-over-period change"""
    POSITIVE = "positive"
    NEGATIVE = "negative"


class NicheType(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class BuzzScoreBucket(str, Enum):
    """Buzz score filter buckets offered by the filter dropdown"""
    NINETY_PLUS = "90%+"
    EIGHTY_TO_NINETY = "80-90%"
    SEVENTY_TO_EIGHTY = "70-80%"
    SIXTY_TO_SEVENTY = "60-70%"
    LESS_THAN_SIXTY = "Less than 60%"


# ============================================================================
# Normalized creator
# ============================================================================

class SocialMediaLink(BaseModel):
    """A creator's profile link on one platform"""
    platform: str
    username: str = ""
    url: str = ""


class CreatorNiche(BaseModel):
    """A topical category with its role for the creator"""
    name: str
    type: NicheType


class Creator(BaseModel):
    """
    Normalized creator record.

    The stable display shape produced by transform_creator_data(); presentation
    code consumes this and never looks at raw store columns.
    """
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    id: str
    username: str = Field(..., description="Display name")
    username_tag: str = Field(..., description="Handle prefixed with @")
    profile_pic: str = ""

    match_score: Optional[int] = Field(None, description="Placeholder relevance score (AI mode only)")
    buzz_score: float = Field(default=0, description="Authoritative 0-100 score from the store")

    social_media: List[SocialMediaLink] = Field(default_factory=list)
    bio: str = ""
    email: str = ""

    followers: float = 0
    followers_change: float = 0
    followers_change_type: ChangeType = ChangeType.POSITIVE
    engagement: float = 0
    engagement_change: float = 0
    engagement_change_type: ChangeType = ChangeType.POSITIVE
    avg_views: float = 0
    avg_views_change: float = 0
    avg_views_change_type: ChangeType = ChangeType.POSITIVE
    avg_likes: float = 0
    avg_likes_change: float = 0
    avg_likes_change_type: ChangeType = ChangeType.POSITIVE
    avg_comments: float = 0
    avg_comments_change: float = 0
    avg_comments_change_type: ChangeType = ChangeType.POSITIVE

    niches: List[CreatorNiche] = Field(default_factory=list)
    hashtags: List[str] = Field(default_factory=list)

    thumbnails: List[str] = Field(default_factory=list, description="Card view (3)")
    expanded_thumbnails: List[str] = Field(default_factory=list, description="Expanded overlay (4)")
    share_urls: List[str] = Field(default_factory=list, description="TikTok share links, parallel to thumbnails")

    location: str = "Unknown"

    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# ============================================================================
# Filter / sort / page state
# ============================================================================

class FilterCriteria(BaseModel):
    """
    Active Discover filters.

    Every field is optional; None or an empty list means "no constraint".
    """
    niches: Optional[List[str]] = None
    platforms: Optional[List[str]] = None
    locations: Optional[List[str]] = None
    buzz_scores: Optional[List[str]] = None
    followers_min: Optional[float] = None
    followers_max: Optional[float] = None
    engagement_min: Optional[float] = None
    engagement_max: Optional[float] = None
    avg_views_min: Optional[float] = None
    avg_views_max: Optional[float] = None

    def is_empty(self) -> bool:
        return not any(
            value not in (None, [])
            for value in self.model_dump().values()
        )


class SortState(BaseModel):
    """Current sort; field None means default store order (followers desc)."""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    field: Optional[SortField] = None
    direction: SortDirection = SortDirection.DESC


class PageState(BaseModel):
    """Pagination bookkeeping for the current result set"""
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=24, ge=1)
    total_pages: int = Field(default=1, ge=1)
    total_count: int = Field(default=0, ge=0)

    @staticmethod
    def pages_for(total_count: int, page_size: int) -> int:
        """At least one page, even for an empty result."""
        return max(1, math.ceil(max(total_count, 0) / page_size))

    def clamp(self, page: int) -> int:
        return min(max(page, 1), self.total_pages)


class PipelineState(BaseModel):
    """The part of pipeline state that survives reloads."""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    mode: CreatorListMode = CreatorListMode.AI
    page: int = Field(default=1, ge=1)
    filters: FilterCriteria = Field(default_factory=FilterCriteria)
    sort: SortState = Field(default_factory=SortState)


# ============================================================================
# Aggregates and listings
# ============================================================================

class CreatorMetrics(BaseModel):
    """Aggregate metrics over every creator matching the active filters"""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    total_creators: int = 0
    avg_followers: int = 0
    avg_views: int = 0
    avg_engagement: float = 0.0
    change_percentage: float = 0.0
    change_type: ChangeType = ChangeType.POSITIVE


class Niche(BaseModel):
    """A distinct primary niche available for filtering"""
    id: str
    name: str

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("niche name must not be blank")
        return v


class PipelineSnapshot(BaseModel):
    """Read-only view of the pipeline for presentation code."""
    model_config = ConfigDict(frozen=True, use_enum_values=True, validate_default=True)

    creators: List[Creator] = Field(default_factory=list)
    current_mode: CreatorListMode = CreatorListMode.AI
    current_page: int = 1
    total_pages: int = 1
    total_creators: int = 0
    niches: List[Niche] = Field(default_factory=list)
    metrics: Optional[CreatorMetrics] = None
    loading: bool = False
    error: Optional[str] = None
    sort_state: SortState = Field(default_factory=SortState)
