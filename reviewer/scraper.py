"""Lookup orchestration: validate, consult the cache, fetch, extract, store."""

import asyncio
import logging
from typing import List, Optional

from .cache_manager import ReviewCacheManager, StreamCountCacheManager
from .dataclasses import ReviewerConfig, ReviewRecord, StreamCountQuery, StreamCountRecord
from .exceptions import FetchError, HTTPStatusError, InvalidIdentifierError
from .extraction import ReviewExtractor, StreamCountExtractor
from .fetcher import DocumentFetcher
from .search import StreamCountSearch
from .validators import ensure_valid_imdb_id, ensure_valid_stream_query
from .wire import format_reviews, format_stream_count


class ReviewScraper:
    """Resolves a title identifier to its reviews.

    Every lookup is a single pass with no retries. Invalid identifiers,
    fetch failures and extraction failures all come back as None.
    """

    def __init__(self, config: ReviewerConfig, fetcher: DocumentFetcher,
                 cache_manager: Optional[ReviewCacheManager] = None,
                 extractor: Optional[ReviewExtractor] = None) -> None:
        self.config = config
        self.fetcher = fetcher
        self.cache_manager = cache_manager
        self.extractor = extractor or ReviewExtractor(config)
        self.logger = logging.getLogger(__name__)

    def build_reviews_url(self, imdb_id: str) -> str:
        return f"{self.config.review_base_url}/title/{imdb_id}/reviews"

    async def get_reviews(self, imdb_id: str) -> Optional[List[ReviewRecord]]:
        """Get reviews for a title.

        Args:
            imdb_id: Title identifier (tt + 7-8 digits)

        Returns:
            List of reviews or None if not found
        """
        try:
            ensure_valid_imdb_id(imdb_id)
        except InvalidIdentifierError as e:
            self.logger.warning(str(e))
            return None

        if self.cache_manager:
            cached = self.cache_manager.get(imdb_id)
            if cached:
                self.logger.info(f"Found cached reviews for {imdb_id}")
                return cached

        url = self.build_reviews_url(imdb_id)
        self.logger.info(f"Fetching reviews for {imdb_id}")
        try:
            html = await self.fetcher.fetch(url, timeout=self.config.review_timeout)
        except HTTPStatusError as e:
            self.logger.warning(f"Review page for {imdb_id} returned status {e.status_code}")
            return None
        except FetchError as e:
            self.logger.warning(f"Failed to fetch reviews for {imdb_id}: {e}")
            return None

        # Pattern evaluation and the cache write are blocking; keep them off the event loop
        reviews = await asyncio.to_thread(self.extractor.extract, html)
        if not reviews:
            self.logger.info(f"No reviews found for {imdb_id}")
            return None

        if self.cache_manager:
            # A failed save is logged by the cache and does not affect the result
            await asyncio.to_thread(self.cache_manager.set, imdb_id, reviews)

        self.logger.info(f"Extracted {len(reviews)} reviews for {imdb_id}")
        return reviews

    async def get_review(self, imdb_id: str) -> Optional[str]:
        """Get reviews for a title in the delimiter-joined wire format."""
        reviews = await self.get_reviews(imdb_id)
        return format_reviews(reviews) if reviews else None


class StreamCountScraper:
    """Resolves a track to its stream count.

    An external track id goes straight to the track page; otherwise the
    name and artist drive the site search.
    """

    def __init__(self, config: ReviewerConfig, fetcher: DocumentFetcher,
                 cache_manager: Optional[StreamCountCacheManager] = None,
                 search: Optional[StreamCountSearch] = None,
                 extractor: Optional[StreamCountExtractor] = None) -> None:
        self.config = config
        self.fetcher = fetcher
        self.cache_manager = cache_manager
        self.search = search or StreamCountSearch(config, fetcher)
        self.extractor = extractor or StreamCountExtractor(config)
        self.logger = logging.getLogger(__name__)

    async def get_stream_count(self, query: StreamCountQuery) -> Optional[StreamCountRecord]:
        """Get the stream count for a track.

        Args:
            query: Identifying fields; spotify_id takes precedence over name search

        Returns:
            StreamCountRecord or None if not found
        """
        try:
            ensure_valid_stream_query(query)
        except InvalidIdentifierError as e:
            self.logger.warning(str(e))
            return None

        container_key, item_key = query.container_key, query.item_key

        if self.cache_manager:
            cached = self.cache_manager.get(container_key, item_key)
            if cached:
                self.logger.info(f"Found cached stream count for {container_key}/{item_key}")
                return cached

        html = await self._fetch_track_page(query)
        if not html:
            return None

        record = await asyncio.to_thread(self.extractor.extract, html, query.track_name, query.artist_name)
        if not record:
            self.logger.info(f"No stream count found for {container_key}/{item_key}")
            return None

        if self.cache_manager:
            await asyncio.to_thread(self.cache_manager.set, container_key, item_key, record)

        return record

    async def _fetch_track_page(self, query: StreamCountQuery) -> Optional[str]:
        if query.spotify_id:
            url = self.search.build_track_url(query.spotify_id)
            self.logger.info(f"Fetching stream count for Spotify ID {query.spotify_id}")
            try:
                return await self.fetcher.fetch(url, timeout=self.config.stream_timeout)
            except FetchError as e:
                self.logger.warning(f"Failed to fetch track page for {query.spotify_id}: {e}")
                return None

        self.logger.info("Searching stream count by track and artist name")
        return await self.search.find_track_page(query.track_name, query.artist_name)

    async def get_stream_count_text(self, query: StreamCountQuery) -> Optional[str]:
        """Get the stream count in the delimiter-joined wire format."""
        record = await self.get_stream_count(query)
        return format_stream_count(record) if record else None
