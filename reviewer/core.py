"""Core review and stream-count lookup service.

This module provides a clean interface over the scraping pipeline that can
be used standalone, from the CLI, or behind the HTTP endpoints.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .cache_manager import ReviewCacheManager, StreamCountCacheManager
from .dataclasses import ReviewerConfig, StreamCountQuery
from .fetcher import DocumentFetcher
from .scraper import ReviewScraper, StreamCountScraper


class ReviewerService:
    """Owns the caches, the HTTP session and both scrapers."""

    def __init__(self, config: Optional[ReviewerConfig] = None) -> None:
        self.config = config or ReviewerConfig()  # Use defaults if no config provided
        self.logger = logging.getLogger(__name__)

        self._init_cache_managers()
        self.fetcher = DocumentFetcher(self.config)
        self.review_scraper = ReviewScraper(self.config, self.fetcher, self.review_cache)
        self.stream_scraper = StreamCountScraper(self.config, self.fetcher, self.stream_cache)

    def _init_cache_managers(self) -> None:
        """Initialize both cache managers under the data directory."""
        self.review_cache: Optional[ReviewCacheManager] = None
        self.stream_cache: Optional[StreamCountCacheManager] = None
        if not self.config.cache_enabled:
            return

        # Make data_dir absolute if it's not already
        data_dir = Path(self.config.data_dir)
        if not data_dir.is_absolute():
            self.config.data_dir = str(data_dir.resolve())

        self.review_cache = ReviewCacheManager(
            str(self.config.review_cache_path),
            self.config.review_cache_expiry_days
        )
        self.stream_cache = StreamCountCacheManager(
            str(self.config.stream_cache_path),
            self.config.stream_cache_expiry_days
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, _exc_type, _exc_val, _exc_tb):
        await self.close()

    async def close(self) -> None:
        await self.fetcher.close()

    async def get_review(self, imdb_id: str) -> Optional[str]:
        """Get reviews for a title as author|||rating|||content records joined by @@@.

        Returns:
            Wire-format string or None if not found
        """
        try:
            return await self.review_scraper.get_review(imdb_id)
        except Exception as e:
            self.logger.error(f"Error getting reviews for {imdb_id}: {e}")
            return None

    async def get_stream_count(self, album_id: Optional[str] = None, track_id: Optional[str] = None,
                               spotify_id: Optional[str] = None, track_name: Optional[str] = None,
                               artist_name: Optional[str] = None) -> Optional[str]:
        """Get a track's stream count as count|||title|||artist|||release_date.

        Args:
            album_id: Container id used as the outer cache key
            track_id: Item id used as the inner cache key
            spotify_id: External track id; bypasses name search when present
            track_name: Track title for search (with artist_name)
            artist_name: Artist name for search (with track_name)

        Returns:
            Wire-format string or None if not found
        """
        query = StreamCountQuery(
            album_id=album_id,
            track_id=track_id,
            spotify_id=spotify_id,
            track_name=track_name,
            artist_name=artist_name,
        )
        try:
            return await self.stream_scraper.get_stream_count_text(query)
        except Exception as e:
            self.logger.error(f"Error getting stream count: {e}")
            return None

    def clear_cache(self) -> int:
        """Clear both caches and return number of entries removed."""
        removed = 0
        if self.review_cache:
            removed += self.review_cache.clear_cache()
        if self.stream_cache:
            removed += self.stream_cache.clear_cache()
        return removed

    def cleanup_expired(self) -> int:
        """Remove stale entries from both caches."""
        removed = 0
        if self.review_cache:
            removed += self.review_cache.cleanup_expired()
        if self.stream_cache:
            removed += self.stream_cache.cleanup_expired()
        return removed

    def get_cache_info(self) -> Dict[str, Any]:
        """Get cache statistics."""
        if not (self.review_cache and self.stream_cache):
            return {'cache_enabled': False}
        return {
            'cache_enabled': True,
            'data_dir': self.config.data_dir,
            'reviews': self.review_cache.get_cache_info(),
            'stream_counts': self.stream_cache.get_cache_info(),
        }
