"""Review and stream-count scraping modules."""

__version__ = "1.0.0"

# Core standalone functionality
from .dataclasses import (
    ReviewerConfig,
    ReviewRecord,
    StreamCountQuery,
    StreamCountRecord,
)
from .core import (
    ReviewerService,
)

# Internal components (for advanced usage)
from .cache_manager import ReviewCacheManager, StreamCountCacheManager
from .fetcher import DocumentFetcher
from .extraction import ReviewExtractor, StreamCountExtractor
from .scraper import ReviewScraper, StreamCountScraper
from .search import StreamCountSearch

# Wire format
from .wire import (
    format_reviews,
    format_stream_count,
    parse_reviews,
)

__all__ = [
    # Version
    '__version__',

    # Core API
    'ReviewerService',
    'ReviewerConfig',
    'ReviewRecord',
    'StreamCountQuery',
    'StreamCountRecord',

    # Wire format
    'format_reviews',
    'format_stream_count',
    'parse_reviews',

    # Internal components (for advanced usage)
    'ReviewCacheManager',
    'StreamCountCacheManager',
    'DocumentFetcher',
    'ReviewExtractor',
    'StreamCountExtractor',
    'ReviewScraper',
    'StreamCountScraper',
    'StreamCountSearch',
]
