"""
Thumbnail warmup.

Requests each thumbnail once in the background so CDN and client caches are
hot before a page is rendered. Fire-and-forget: callers never wait on it
and failures are only logged at debug level.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, List, Optional

import httpx

from ..core.config import Config
from .creator_transform import PLACEHOLDER_THUMBNAIL
from .models import Creator

logger = logging.getLogger(__name__)


class ThumbnailPrefetcher:
    """Background GETs for creator thumbnails."""

    def __init__(
        self,
        max_workers: Optional[int] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or Config.MAX_CONCURRENT_DOWNLOADS,
            thread_name_prefix="thumbnail-prefetch",
        )
        self._client = client or httpx.Client(
            timeout=timeout or Config.PREFETCH_TIMEOUT_SECONDS,
            follow_redirects=True,
        )

    @staticmethod
    def urls_for(creators: Iterable[Creator]) -> List[str]:
        """Distinct remote thumbnail URLs (card + expanded), placeholder skipped."""
        urls: List[str] = []
        for creator in creators:
            for url in [*creator.thumbnails, *creator.expanded_thumbnails]:
                if url and url != PLACEHOLDER_THUMBNAIL and url.startswith("http") and url not in urls:
                    urls.append(url)
        return urls

    def _fetch(self, url: str) -> int:
        response = self._client.get(url)
        return response.status_code

    @staticmethod
    def _log_outcome(url: str, future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.debug(f"Thumbnail prefetch failed for {url}: {error}")

    def prefetch(self, creators: Iterable[Creator]) -> List[Future]:
        """Submit background fetches and return immediately."""
        futures = []
        for url in self.urls_for(creators):
            future = self._executor.submit(self._fetch, url)
            future.add_done_callback(lambda f, u=url: self._log_outcome(u, f))
            futures.append(future)
        return futures

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._client.close()
