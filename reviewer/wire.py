"""Flat delimiter-joined output consumed by the presentation layer.

Values containing a separator sequence are not escaped; consumers split
naively, so such values will be mis-parsed.
"""

from typing import List, Sequence

from .dataclasses import ReviewRecord, StreamCountRecord

FIELD_SEPARATOR = "|||"
RECORD_SEPARATOR = "@@@"


def format_review(review: ReviewRecord) -> str:
    return FIELD_SEPARATOR.join((review.author, review.rating, review.content))


def format_reviews(reviews: Sequence[ReviewRecord]) -> str:
    """author|||rating|||content records joined by @@@."""
    return RECORD_SEPARATOR.join(format_review(review) for review in reviews)


def format_stream_count(record: StreamCountRecord) -> str:
    """count|||title|||artist|||release_date."""
    return FIELD_SEPARATOR.join((record.stream_count, record.title, record.artist, record.release_date))


def parse_reviews(text: str) -> List[ReviewRecord]:
    """Split a review payload the way the front end does."""
    reviews = []
    for block in text.split(RECORD_SEPARATOR):
        parts = block.split(FIELD_SEPARATOR)
        author = parts[0] if parts[0] else "Anonymous"
        rating = parts[1] if len(parts) > 2 else ""
        if len(parts) > 2:
            content = parts[2]
        elif len(parts) == 2:
            content = parts[1]
        else:
            content = block
        reviews.append(ReviewRecord(author=author, rating=rating, content=content))
    return reviews
