"""
Creator record normalization.

Converts raw creatordata rows into Creator models for display. Rows come
from several scraper generations, so every field is type-checked as read and a
row that still fails to convert yields a fallback Creator instead of
aborting the page.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from .location_parser import UNKNOWN_LOCATION, resolve_display_location
from .metric_values import METRIC_COLUMNS
from .models import ChangeType, Creator, CreatorNiche, NicheType, SocialMediaLink

logger = logging.getLogger(__name__)

RECENT_POST_COUNT = 12
THUMBNAIL_SLOTS = 4
CARD_THUMBNAIL_COUNT = 3
PLACEHOLDER_THUMBNAIL = "/images/PostThumbnail-3.svg"

DEFAULT_PLATFORM = "instagram"
SHARE_URL_PLATFORM = "tiktok"

_STATIC_IMAGE_MARKERS = (".awebp", ".webp", ".jpg", ".png")
_VIDEO_EXTENSION = re.compile(r"\.(mp4|mov)")


def extract_static_thumbnail(video_url: str) -> str:
    """
    Derive a still image URL from a post's video URL.

    TikTok and Supabase-hosted videos have a sibling _thumbnail.jpg; image
    URLs and other hosts are returned unchanged.
    """
    if not video_url:
        return ""

    if "tiktok.com" in video_url or "supabase.co" in video_url:
        if any(marker in video_url for marker in _STATIC_IMAGE_MARKERS):
            return video_url
        if ".mp4" in video_url or ".mov" in video_url:
            return _VIDEO_EXTENSION.sub("_thumbnail.jpg", video_url, count=1)

    return video_url


def _strip_trailing_query(url: str) -> str:
    return url[:-1] if url.endswith("?") else url


def _post_thumbnail(post: Dict[str, Any]) -> str:
    media_urls = post.get("media_urls")
    if isinstance(media_urls, list) and media_urls:
        first = media_urls[0]
        return _strip_trailing_query(first) if isinstance(first, str) else ""
    if isinstance(media_urls, str) and media_urls.strip():
        return _strip_trailing_query(media_urls.strip())
    video_url = post.get("video_url")
    if isinstance(video_url, str) and video_url:
        return extract_static_thumbnail(video_url)
    return ""


def _load_post(raw_post: Any) -> Optional[Dict[str, Any]]:
    if not raw_post:
        return None
    if isinstance(raw_post, str):
        try:
            raw_post = json.loads(raw_post)
        except json.JSONDecodeError:
            return None
    return raw_post if isinstance(raw_post, dict) else None


def extract_recent_media(record: Dict[str, Any], platform: str) -> Tuple[List[str], List[str]]:
    """
    Collect usable thumbnails and share URLs from recent_post_1..12.

    Returns:
        (thumbnails, share_urls), parallel lists in post order. share_urls
        holds "" for every post on platforms other than TikTok.
    """
    thumbnails: List[str] = []
    share_urls: List[str] = []

    for i in range(1, RECENT_POST_COUNT + 1):
        post = _load_post(record.get(f"recent_post_{i}"))
        if post is None:
            continue

        thumbnail = _post_thumbnail(post)
        if not thumbnail:
            continue

        thumbnails.append(thumbnail)
        share_url = post.get("share_url")
        if platform == SHARE_URL_PLATFORM and isinstance(share_url, str) and share_url:
            share_urls.append(share_url)
        else:
            share_urls.append("")

    return thumbnails, share_urls


def pad_thumbnails(thumbnails: List[str]) -> List[str]:
    """First THUMBNAIL_SLOTS thumbnails, padded with the placeholder image."""
    kept = thumbnails[:THUMBNAIL_SLOTS]
    return kept + [PLACEHOLDER_THUMBNAIL] * (THUMBNAIL_SLOTS - len(kept))


def _platform(record: Dict[str, Any]) -> str:
    return (record.get("platform") or DEFAULT_PLATFORM).lower()


def _social_media(record: Dict[str, Any], platform: str) -> List[SocialMediaLink]:
    # One platform per creator in the current schema
    handle = record.get("handle") or ""
    url = record.get("profile_url") or f"https://{platform}.com/{handle}"
    return [SocialMediaLink(platform=platform, username=handle, url=url)]


def _niches(record: Dict[str, Any]) -> List[CreatorNiche]:
    niches = []
    if record.get("primary_niche"):
        niches.append(CreatorNiche(name=record["primary_niche"], type=NicheType.PRIMARY))
    if record.get("secondary_niche"):
        niches.append(CreatorNiche(name=record["secondary_niche"], type=NicheType.SECONDARY))
    return niches


def _change_type(raw: Any) -> ChangeType:
    if raw == ChangeType.NEGATIVE.value:
        return ChangeType.NEGATIVE
    return ChangeType.POSITIVE


def _change_columns(display_field: str, column: str) -> Tuple[str, str]:
    # followers uses followers_change; the rest are keyed by their column name
    prefix = "followers" if display_field == "followers" else column
    return f"{prefix}_change", f"{prefix}_change_type"


def _metric_fields(record: Dict[str, Any], strict: bool) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for display_field, (column, extractor) in METRIC_COLUMNS.items():
        change_column, change_type_column = _change_columns(display_field, column)
        fields[display_field] = extractor(record.get(column))
        fields[f"{display_field}_change"] = record.get(change_column) or 0
        fields[f"{display_field}_change_type"] = (
            _change_type(record.get(change_type_column)) if strict else ChangeType.POSITIVE
        )
    return fields


def _safe_str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _safe_number(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return 0


def transform_creator_data(record: Dict[str, Any]) -> Creator:
    """
    Normalize one raw creator record.

    Never raises: any failure while reading the record produces
    fallback_creator(record) instead.

    Args:
        record: Raw creatordata row

    Returns:
        Creator ready for display
    """
    try:
        platform = _platform(record)
        thumbnails, share_urls = extract_recent_media(record, platform)
        recent_posts = pad_thumbnails(thumbnails)

        handle = record.get("handle")
        created_at = record.get("created_at")

        return Creator(
            id=_record_id(record),
            username=record.get("display_name") or handle or "Unknown Creator",
            username_tag=f"@{handle or 'unknown'}",
            profile_pic=record.get("profile_image_url") or "",
            match_score=record.get("match_score") or None,
            buzz_score=record.get("buzz_score") if record.get("buzz_score") is not None else 0,
            social_media=_social_media(record, platform),
            bio=record.get("bio") or "",
            email=record.get("email") or "",
            niches=_niches(record),
            hashtags=record.get("hashtags") or [],
            thumbnails=recent_posts[:CARD_THUMBNAIL_COUNT],
            expanded_thumbnails=recent_posts[:THUMBNAIL_SLOTS],
            share_urls=share_urls[:THUMBNAIL_SLOTS],
            location=resolve_display_location(record),
            created_at=created_at,
            updated_at=record.get("updated_at") or created_at,
            **_metric_fields(record, strict=True),
        )
    except Exception as e:
        logger.warning(f"Falling back for creator {_record_id(record)}: {e}")
        return fallback_creator(record)


def _record_id(record: Any) -> str:
    if isinstance(record, dict) and record.get("id") is not None:
        return str(record["id"])
    return "unknown"


def fallback_creator(record: Any) -> Creator:
    """
    Safe-default Creator for a record that could not be normalized.

    Only reads fields with type checks so it cannot fail itself.
    """
    raw = record if isinstance(record, dict) else {}
    handle = _safe_str(raw.get("handle"))
    platform = _safe_str(raw.get("platform"), DEFAULT_PLATFORM).lower() or DEFAULT_PLATFORM
    hashtags = raw.get("hashtags")
    created_at = _safe_str(raw.get("created_at")) or None

    metrics: Dict[str, Any] = {}
    try:
        metrics = _metric_fields(raw, strict=False)
        for key, value in metrics.items():
            if key.endswith("_change"):
                metrics[key] = _safe_number(value)
    except Exception:
        logger.debug(f"Metric extraction failed for creator {_record_id(record)}", exc_info=True)
        metrics = {}

    return Creator(
        id=_record_id(record),
        username=_safe_str(raw.get("display_name")) or "Unknown Creator",
        username_tag=f"@{handle or 'unknown'}",
        profile_pic=_safe_str(raw.get("profile_image_url")),
        match_score=None,
        buzz_score=_safe_number(raw.get("buzz_score")),
        social_media=[
            SocialMediaLink(platform=platform, username=handle, url=f"https://{platform}.com/{handle}")
        ],
        bio=_safe_str(raw.get("bio")),
        email=_safe_str(raw.get("email")),
        niches=[],
        hashtags=[h for h in hashtags if isinstance(h, str)] if isinstance(hashtags, list) else [],
        thumbnails=[],
        expanded_thumbnails=[],
        share_urls=[],
        location=UNKNOWN_LOCATION,
        created_at=created_at,
        updated_at=_safe_str(raw.get("updated_at")) or created_at,
        **metrics,
    )


def transform_creators(records: Optional[List[Dict[str, Any]]]) -> List[Creator]:
    """Normalize a batch; one bad record never drops the rest."""
    return [transform_creator_data(record) for record in records or []]
