"""Pattern-based extraction of reviews and stream counts from page HTML.

Every pattern evaluation carries an execution-time ceiling; a pathological
document makes the evaluation raise instead of backtracking indefinitely.
"""

import logging
from typing import List, Optional

import regex

from .dataclasses import ReviewerConfig, ReviewRecord, StreamCountRecord
from .exceptions import PatternTimeoutError
from .text_utils import clean_author_name, clean_review_text, strip_tags

ANONYMOUS = "Anonymous"

# Embedded review data: "reviews": [ {...}, {...} ]
REVIEWS_BLOCK_PATTERN = regex.compile(r'"reviews"\s*:\s*\[(.*?)\]', regex.DOTALL)
REVIEW_AUTHOR_PATTERN = regex.compile(
    r'"author"\s*:\s*\{[^}]*"username"\s*:\s*\{[^}]*"text"\s*:\s*"([^"]+)"',
    regex.DOTALL
)
REVIEW_RATING_PATTERN = regex.compile(r'"authorRating"\s*:\s*(\d+)')

# Markup fallbacks, tried in this order
REVIEW_MARKUP_PATTERNS = (
    regex.compile(r'<div[^>]*reviewText[^>]*>(.*?)</div>', regex.DOTALL | regex.IGNORECASE),
    regex.compile(r'<div[^>]*class="[^"]*content[^"]*"[^>]*>(.*?)</div>', regex.DOTALL | regex.IGNORECASE),
    regex.compile(r'<div class="text show-more__control"[^>]*>(.*?)</div>', regex.DOTALL),
)
REVIEW_AUTHOR_LINK_PATTERN = regex.compile(r'<span class="display-name-link"><a[^>]*>(.*?)</a>')

_COUNT = r'(\d{1,3}(?:[,.\s]\d{3})+|\d+)'
STREAM_COUNT_PATTERN = regex.compile(
    r'class="[^"]*streams?-count[^"]*"[^>]*>\s*(?:<[^>]+>\s*)*' + _COUNT,
    regex.IGNORECASE
)
STREAM_COUNT_LABEL_PATTERN = regex.compile(
    r'(?:Total\s+streams?\s*:?|Streams\s*:)\s*(?:<[^>]+>\s*)*' + _COUNT,
    regex.IGNORECASE
)
TRACK_TITLE_PATTERN = regex.compile(r'<h1[^>]*>(.*?)</h1>', regex.DOTALL | regex.IGNORECASE)
OG_TITLE_PATTERN = regex.compile(r'<meta[^>]*property="og:title"[^>]*content="([^"]*)"', regex.IGNORECASE)
TRACK_ARTIST_PATTERN = regex.compile(
    r'<[a-z0-9]+[^>]*class="[^"]*\bartist(?:-name)?\b[^"]*"[^>]*>(.*?)</[a-z0-9]+>',
    regex.DOTALL | regex.IGNORECASE
)
RELEASE_DATE_PATTERN = regex.compile(
    r'Release(?:d| date)\s*:?\s*(?:<[^>]+>\s*)*([^<]+?)\s*<',
    regex.IGNORECASE
)


def _review_text_pattern(min_length: int) -> regex.Pattern:
    """JSON string value of reviewText with at least ``min_length`` characters."""
    return regex.compile(
        r'"reviewText"\s*:\s*"((?:[^"\\]|\\.){%d,})"' % min_length,
        regex.DOTALL
    )


def findall_bounded(pattern: regex.Pattern, text: str, timeout: float) -> List[str]:
    """``pattern.findall`` with an execution-time ceiling."""
    try:
        return pattern.findall(text, timeout=timeout)
    except TimeoutError as e:
        raise PatternTimeoutError(f"Pattern timed out after {timeout}s: {pattern.pattern[:60]}") from e


def search_bounded(pattern: regex.Pattern, text: str, timeout: float) -> Optional[str]:
    """First group of ``pattern.search`` with an execution-time ceiling."""
    try:
        match = pattern.search(text, timeout=timeout)
    except TimeoutError as e:
        raise PatternTimeoutError(f"Pattern timed out after {timeout}s: {pattern.pattern[:60]}") from e
    return match.group(1) if match else None


def _clean_inline(markup: str) -> str:
    """Strip tags, decode text and collapse whitespace for one-line fields."""
    return ' '.join(clean_review_text(strip_tags(markup)).split())


class ReviewExtractor:
    """Extracts reviews through an ordered cascade of strategies.

    1. An embedded "reviews" array: review texts, author names and ratings
       are matched in three independent passes and zipped by position, so
       lists of different length pair up by index only.
    2. Markup blocks whose class carries a review marker; the longest
       match wins, is tag-stripped and must reach the minimum length.
    """

    def __init__(self, config: ReviewerConfig) -> None:
        self.config = config
        self.logger = logging.getLogger(__name__)
        self._review_text_pattern = _review_text_pattern(config.min_review_length)

    def extract(self, document: str) -> Optional[List[ReviewRecord]]:
        """Extract reviews from a review page.

        Returns:
            List of reviews, or None when nothing usable was found
        """
        if not document:
            return None

        try:
            reviews = self._extract_structured(document)
            if reviews:
                return reviews

            self.logger.debug("No structured review data found, trying markup patterns")
            return self._extract_from_markup(document)

        except PatternTimeoutError as e:
            self.logger.warning(f"Review extraction aborted: {e}")
            return None
        except Exception as e:
            self.logger.error(f"Unexpected error extracting reviews: {e}")
            return None

    def _extract_structured(self, document: str) -> List[ReviewRecord]:
        timeout = self.config.regex_timeout

        block = search_bounded(REVIEWS_BLOCK_PATTERN, document, timeout)
        if block is None:
            return []

        texts = findall_bounded(self._review_text_pattern, block, timeout)
        authors = findall_bounded(REVIEW_AUTHOR_PATTERN, block, timeout)
        ratings = findall_bounded(REVIEW_RATING_PATTERN, block, timeout)

        self.logger.debug(f"Found {len(texts)} review texts, {len(authors)} authors, "
                          f"{len(ratings)} ratings")

        reviews = []
        for i, text in enumerate(texts):
            if len(reviews) >= self.config.max_reviews:
                break
            content = clean_review_text(text)
            # Text made only of escapes or whitespace decodes to nothing
            if not content:
                self.logger.debug(f"Skipping review {i}: empty after decoding")
                continue
            author = clean_author_name(authors[i]) if i < len(authors) else ANONYMOUS
            rating = ratings[i] if i < len(ratings) else ""
            reviews.append(ReviewRecord(author=author or ANONYMOUS, rating=rating, content=content))

        return reviews

    def _extract_from_markup(self, document: str) -> Optional[List[ReviewRecord]]:
        timeout = self.config.regex_timeout

        matches: List[str] = []
        for i, pattern in enumerate(REVIEW_MARKUP_PATTERNS, 1):
            matches = findall_bounded(pattern, document, timeout)
            self.logger.debug(f"Markup pattern {i}: {len(matches)} matches")
            if matches:
                break

        if not matches:
            self.logger.debug("No review markup found")
            return None

        # Real review text is longer than menu items sharing the class name
        best = max(matches, key=len)
        content = clean_review_text(strip_tags(best))

        if len(content) < self.config.min_review_length:
            self.logger.debug(f"Review too short ({len(content)} chars), skipping")
            return None

        author_markup = search_bounded(REVIEW_AUTHOR_LINK_PATTERN, document, timeout)
        author = clean_author_name(author_markup) if author_markup else ""

        return [ReviewRecord(author=author or ANONYMOUS, rating="", content=content)]


class StreamCountExtractor:
    """Extracts a track's play count plus title, artist and release date."""

    def __init__(self, config: ReviewerConfig) -> None:
        self.config = config
        self.logger = logging.getLogger(__name__)

    def extract(self, document: str, fallback_title: Optional[str] = None,
                fallback_artist: Optional[str] = None) -> Optional[StreamCountRecord]:
        """Extract the stream count from a track page.

        Args:
            document: Track page HTML
            fallback_title: Used when the page has no title
            fallback_artist: Used when the page has no artist

        Returns:
            StreamCountRecord, or None when no count was found
        """
        if not document:
            return None

        timeout = self.config.regex_timeout
        try:
            count = search_bounded(STREAM_COUNT_PATTERN, document, timeout)
            if count is None:
                self.logger.debug("Primary stream count pattern failed, trying label pattern")
                count = search_bounded(STREAM_COUNT_LABEL_PATTERN, document, timeout)
            if count is None:
                self.logger.debug("No stream count found in document")
                return None

            title = search_bounded(TRACK_TITLE_PATTERN, document, timeout)
            if not title:
                title = search_bounded(OG_TITLE_PATTERN, document, timeout)
            artist = search_bounded(TRACK_ARTIST_PATTERN, document, timeout)
            release_date = search_bounded(RELEASE_DATE_PATTERN, document, timeout)

            return StreamCountRecord(
                stream_count=count.strip(),
                title=(_clean_inline(title) if title else '') or (fallback_title or ''),
                artist=(_clean_inline(artist) if artist else '') or (fallback_artist or ''),
                release_date=_clean_inline(release_date) if release_date else '',
            )

        except PatternTimeoutError as e:
            self.logger.warning(f"Stream count extraction aborted: {e}")
            return None
        except Exception as e:
            self.logger.error(f"Unexpected error extracting stream count: {e}")
            return None
