"""Persistent JSON caches for scraped reviews and stream counts."""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from .dataclasses import (
    CachedReviews,
    CachedStreamCount,
    ReviewRecord,
    StreamCountRecord,
    utc_now,
)
from .exceptions import PersistError


class JsonCacheManager:
    """Owns one in-memory mapping and its JSON mirror on disk.

    The whole structure is rewritten on every save, so every
    mutate-then-persist sequence runs under a single lock.
    """

    def __init__(self, cache_file: str, expiry_days: int = 0) -> None:
        self.cache_file = Path(cache_file)
        self.expiry_days = expiry_days
        self.logger = logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._cache: Dict[str, Any] = {}
        self._load_cache()

    def _load_cache(self) -> None:
        """Load cache from file, starting empty on any failure."""
        try:
            if self.cache_file.exists():
                with open(self.cache_file, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError(f"expected a JSON object, got {type(data).__name__}")
                self._cache = data
                self.logger.debug(f"Loaded {len(self._cache)} entries from {self.cache_file}")
            else:
                self._cache = {}
                self.logger.debug(f"No cache file found at {self.cache_file}, starting with empty cache")
        except (json.JSONDecodeError, OSError, UnicodeDecodeError, ValueError) as e:
            self.logger.warning(f"Error loading cache from {self.cache_file}: {e}")
            self._cache = {}

    def _save_cache(self) -> None:
        """Write the full structure to a temp file and swap it into place."""
        tmp_path: Optional[str] = None
        try:
            payload = json.dumps(self._cache, ensure_ascii=False, indent=2)
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.cache_file.parent),
                prefix=f".{self.cache_file.name}.",
                suffix='.tmp'
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
            Path(tmp_path).replace(self.cache_file)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            raise PersistError(f"Failed to save cache to {self.cache_file}: {e}") from e
        finally:
            if tmp_path is not None:
                try:
                    Path(tmp_path).unlink()
                except OSError:
                    pass

    def flush(self) -> bool:
        """Persist the in-memory cache. Failures are logged, never raised."""
        with self._lock:
            try:
                self._save_cache()
            except PersistError as e:
                self.logger.error(str(e))
                return False
            self.logger.debug(f"Saved {len(self._cache)} entries to {self.cache_file}")
            return True

    def _is_expired(self, cached_at: datetime) -> bool:
        if self.expiry_days <= 0:
            return False
        return utc_now() - cached_at > timedelta(days=self.expiry_days)

    def _file_size_mb(self) -> float:
        try:
            return round(self.cache_file.stat().st_size / (1024 * 1024), 2)
        except OSError:
            return 0.0

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


class ReviewCacheManager(JsonCacheManager):
    """Review cache keyed by title identifier.

    Each identifier maps to the full list of reviews captured in one
    extraction run; a later ``set`` replaces that list wholesale.
    """

    def __init__(self, cache_file: str, expiry_days: int = 30) -> None:
        super().__init__(cache_file, expiry_days)

    def _validated_entry(self, raw: Any) -> Optional[CachedReviews]:
        try:
            entry = CachedReviews.from_dict(raw)
        except (KeyError, TypeError, ValueError, AttributeError):
            return None
        entry.reviews = [review for review in entry.reviews if review.content]
        if not entry.reviews:
            return None
        return entry

    def get(self, imdb_id: str) -> Optional[List[ReviewRecord]]:
        """Get cached reviews, pruning empty, malformed or stale entries."""
        with self._lock:
            raw = self._cache.get(imdb_id)
            if raw is None:
                self.logger.debug(f"Review cache miss: {imdb_id}")
                return None

            entry = self._validated_entry(raw)
            if entry is None:
                self.logger.warning(f"Invalid cached reviews, removing: {imdb_id}")
                del self._cache[imdb_id]
                return None

            if self._is_expired(entry.cached_at):
                self.logger.debug(f"Review cache expired: {imdb_id}")
                del self._cache[imdb_id]
                return None

            self.logger.debug(f"Review cache hit: {imdb_id} ({len(entry.reviews)} reviews)")
            return entry.reviews

    def set(self, imdb_id: str, reviews: List[ReviewRecord]) -> bool:
        """Replace the reviews cached for an identifier and persist.

        Returns:
            True if the cache file was written
        """
        if not reviews:
            self.logger.debug(f"Not caching empty review list for {imdb_id}")
            return False

        with self._lock:
            self._cache[imdb_id] = CachedReviews(reviews=list(reviews)).to_dict()
            saved = self.flush()
        if saved:
            self.logger.info(f"Cached {len(reviews)} reviews for {imdb_id}")
        return saved

    def cleanup_expired(self) -> int:
        """Remove every stale or invalid entry. Returns number removed."""
        with self._lock:
            stale = []
            for imdb_id, raw in self._cache.items():
                entry = self._validated_entry(raw)
                if entry is None or self._is_expired(entry.cached_at):
                    stale.append(imdb_id)
            for imdb_id in stale:
                del self._cache[imdb_id]
            if stale:
                self.flush()
                self.logger.info(f"Cleaned up {len(stale)} review cache entries")
            return len(stale)

    def clear_cache(self) -> int:
        """Remove all entries. Returns number removed."""
        with self._lock:
            removed = len(self._cache)
            self._cache = {}
            self.flush()
        self.logger.info(f"Cleared {removed} review cache entries")
        return removed

    def get_cache_info(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'entries': len(self._cache),
                'reviews': sum(len(raw.get('reviews') or []) for raw in self._cache.values()
                               if isinstance(raw, dict)),
                'total_size_mb': self._file_size_mb(),
                'cache_file': str(self.cache_file),
                'expiry_days': self.expiry_days,
            }


class StreamCountCacheManager(JsonCacheManager):
    """Stream-count cache keyed by container (album) then item (track)."""

    def __init__(self, cache_file: str, expiry_days: int = 7) -> None:
        super().__init__(cache_file, expiry_days)

    def _validated_entry(self, raw: Any) -> Optional[CachedStreamCount]:
        try:
            entry = CachedStreamCount.from_dict(raw)
        except (KeyError, TypeError, ValueError, AttributeError):
            return None
        if not entry.record.stream_count:
            return None
        return entry

    def _remove(self, container_key: str, item_key: str) -> None:
        container = self._cache.get(container_key)
        if not isinstance(container, dict):
            self._cache.pop(container_key, None)
            return
        container.pop(item_key, None)
        if not container:
            del self._cache[container_key]

    def get(self, container_key: str, item_key: str) -> Optional[StreamCountRecord]:
        """Get a cached stream count, pruning empty or stale entries."""
        with self._lock:
            container = self._cache.get(container_key)
            if not isinstance(container, dict) or item_key not in container:
                self.logger.debug(f"Stream count cache miss: {container_key}/{item_key}")
                return None

            entry = self._validated_entry(container[item_key])
            if entry is None:
                self.logger.warning(f"Invalid cached stream count, removing: {container_key}/{item_key}")
                self._remove(container_key, item_key)
                return None

            if self._is_expired(entry.cached_at):
                self.logger.debug(f"Stream count cache expired: {container_key}/{item_key}")
                self._remove(container_key, item_key)
                return None

            self.logger.debug(f"Stream count cache hit: {container_key}/{item_key}")
            return entry.record

    def set(self, container_key: str, item_key: str, record: StreamCountRecord) -> bool:
        """Store a stream count under its container and persist."""
        if not record.stream_count:
            self.logger.debug(f"Not caching empty stream count for {container_key}/{item_key}")
            return False

        with self._lock:
            container = self._cache.get(container_key)
            if not isinstance(container, dict):
                container = {}
                self._cache[container_key] = container
            container[item_key] = CachedStreamCount(record=record).to_dict()
            saved = self.flush()
        if saved:
            self.logger.info(f"Cached stream count for {container_key}/{item_key}")
        return saved

    def cleanup_expired(self) -> int:
        """Remove every stale or invalid entry. Returns number removed."""
        with self._lock:
            stale = []
            for container_key, container in self._cache.items():
                if not isinstance(container, dict):
                    stale.append((container_key, None))
                    continue
                for item_key, raw in container.items():
                    entry = self._validated_entry(raw)
                    if entry is None or self._is_expired(entry.cached_at):
                        stale.append((container_key, item_key))
            for container_key, item_key in stale:
                self._remove(container_key, item_key)
            if stale:
                self.flush()
                self.logger.info(f"Cleaned up {len(stale)} stream count cache entries")
            return len(stale)

    def clear_cache(self) -> int:
        """Remove all entries. Returns number of tracks removed."""
        with self._lock:
            removed = sum(len(c) for c in self._cache.values() if isinstance(c, dict))
            self._cache = {}
            self.flush()
        self.logger.info(f"Cleared {removed} stream count cache entries")
        return removed

    def get_cache_info(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'entries': sum(len(c) for c in self._cache.values() if isinstance(c, dict)),
                'containers': len(self._cache),
                'total_size_mb': self._file_size_mb(),
                'cache_file': str(self.cache_file),
                'expiry_days': self.expiry_days,
            }
