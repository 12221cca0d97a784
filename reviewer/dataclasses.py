import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .text_utils import normalize_text

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

UNKNOWN_CONTAINER = "unknown"


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(repr=True)
class ReviewerConfig:
    """Configuration for the review and stream-count scrapers."""
    # Site configuration (configurable for testing/mirrors)
    review_base_url: str = "https://www.imdb.com"
    stream_base_url: str = "https://www.mystreamcount.com"
    user_agent: str = DEFAULT_USER_AGENT

    # Request bounds
    review_timeout: float = 10.0
    stream_timeout: float = 8.0
    connect_timeout: float = 5.0
    max_response_bytes: int = 5 * 1024 * 1024

    # Extraction bounds
    regex_timeout: float = 1.5
    max_reviews: int = 7
    min_review_length: int = 50

    # Cache settings
    cache_enabled: bool = True
    data_dir: str = '.reviewer_data'
    review_cache_expiry_days: int = 30  # 0 = never expire
    stream_cache_expiry_days: int = 7  # Stream counts change continuously

    # HTTP endpoint
    server_host: str = '127.0.0.1'
    server_port: int = 8096

    def __post_init__(self) -> None:
        if self.max_response_bytes <= 0:
            raise ValueError("max_response_bytes must be positive")
        if self.regex_timeout <= 0:
            raise ValueError("regex_timeout must be positive")
        if self.max_reviews <= 0:
            raise ValueError("max_reviews must be a positive integer")
        self.review_base_url = self.review_base_url.rstrip('/')
        self.stream_base_url = self.stream_base_url.rstrip('/')

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ReviewerConfig':
        """Create ReviewerConfig from REVIEWER_* environment variables."""
        env = os.environ if environ is None else environ
        kwargs: Dict[str, Any] = {}

        string_fields = {
            'REVIEWER_REVIEW_BASE_URL': 'review_base_url',
            'REVIEWER_STREAM_BASE_URL': 'stream_base_url',
            'REVIEWER_USER_AGENT': 'user_agent',
            'REVIEWER_DATA_DIR': 'data_dir',
            'REVIEWER_HOST': 'server_host',
        }
        float_fields = {
            'REVIEWER_REVIEW_TIMEOUT': 'review_timeout',
            'REVIEWER_STREAM_TIMEOUT': 'stream_timeout',
            'REVIEWER_REGEX_TIMEOUT': 'regex_timeout',
        }
        int_fields = {
            'REVIEWER_MAX_RESPONSE_BYTES': 'max_response_bytes',
            'REVIEWER_REVIEW_CACHE_EXPIRY_DAYS': 'review_cache_expiry_days',
            'REVIEWER_STREAM_CACHE_EXPIRY_DAYS': 'stream_cache_expiry_days',
            'REVIEWER_PORT': 'server_port',
        }

        for env_name, attr in string_fields.items():
            if env.get(env_name):
                kwargs[attr] = env[env_name]
        for env_name, attr in float_fields.items():
            if env.get(env_name):
                kwargs[attr] = float(env[env_name])
        for env_name, attr in int_fields.items():
            if env.get(env_name):
                kwargs[attr] = int(env[env_name])
        if env.get('REVIEWER_CACHE_ENABLED'):
            kwargs['cache_enabled'] = _env_bool(env['REVIEWER_CACHE_ENABLED'])

        return cls(**kwargs)

    @property
    def review_cache_path(self) -> Path:
        return Path(self.data_dir) / "review-cache.json"

    @property
    def stream_cache_path(self) -> Path:
        return Path(self.data_dir) / "stream-count-cache.json"


@dataclass(repr=True)
class ReviewRecord:
    """A single review extracted from a review page."""
    author: str
    rating: str
    content: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReviewRecord':
        return cls(
            author=str(data.get('author') or ''),
            rating=str(data.get('rating') or ''),
            content=str(data.get('content') or ''),
        )

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(repr=True)
class StreamCountRecord:
    """Play-count statistic for a single track."""
    stream_count: str
    title: str = ''
    artist: str = ''
    release_date: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StreamCountRecord':
        return cls(
            stream_count=str(data.get('stream_count') or ''),
            title=str(data.get('title') or ''),
            artist=str(data.get('artist') or ''),
            release_date=str(data.get('release_date') or ''),
        )

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp, treating naive values as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(repr=True)
class CachedReviews:
    """Review cache entry: every review captured for one identifier."""
    reviews: List[ReviewRecord]
    cached_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CachedReviews':
        """Create CachedReviews from dictionary (for loading from JSON)."""
        reviews = [ReviewRecord.from_dict(item) for item in data.get('reviews') or []]
        return cls(reviews=reviews, cached_at=parse_timestamp(data['cached_at']))

    def to_dict(self) -> Dict[str, Any]:
        """Convert CachedReviews to dictionary (for saving to JSON)."""
        return {
            'reviews': [review.to_dict() for review in self.reviews],
            'cached_at': self.cached_at.isoformat(),
        }


@dataclass(repr=True)
class CachedStreamCount:
    """Stream-count cache entry for one track."""
    record: StreamCountRecord
    cached_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CachedStreamCount':
        return cls(
            record=StreamCountRecord.from_dict(data),
            cached_at=parse_timestamp(data['cached_at']),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = self.record.to_dict()
        data['cached_at'] = self.cached_at.isoformat()
        return data


@dataclass(repr=True)
class StreamCountQuery:
    """Loosely typed stream-count lookup request.

    An external catalog id (``spotify_id``) takes precedence over the
    name/artist pair, which is only used to drive the site search.
    """
    album_id: Optional[str] = None
    track_id: Optional[str] = None
    spotify_id: Optional[str] = None
    track_name: Optional[str] = None
    artist_name: Optional[str] = None

    @property
    def container_key(self) -> str:
        return self.album_id or UNKNOWN_CONTAINER

    @property
    def item_key(self) -> str:
        if self.track_id:
            return self.track_id
        if self.spotify_id:
            return self.spotify_id
        name = normalize_text(self.track_name or '', remove_accents=True, lowercase=True)
        artist = normalize_text(self.artist_name or '', remove_accents=True, lowercase=True)
        return f"{name}::{artist}"
