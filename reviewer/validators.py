"""Identifier validation, evaluated before any cache or network access."""

import re
from typing import Any

from .dataclasses import StreamCountQuery
from .exceptions import InvalidIdentifierError

IMDB_ID_PATTERN = re.compile(r'^tt\d{7,8}$')
SPOTIFY_ID_PATTERN = re.compile(r'^[0-9A-Za-z]{22}$')


def is_valid_imdb_id(value: Any) -> bool:
    """Check for the ``tt`` prefix followed by 7 or 8 digits."""
    if not isinstance(value, str) or not value:
        return False
    return IMDB_ID_PATTERN.fullmatch(value) is not None


def is_valid_spotify_id(value: Any) -> bool:
    """Check for a 22 character base-62 track id."""
    if not isinstance(value, str) or not value:
        return False
    return SPOTIFY_ID_PATTERN.fullmatch(value) is not None


def validate_stream_query(query: StreamCountQuery) -> bool:
    """A query needs a valid external id, or both a track name and artist.

    A malformed external id is rejected outright rather than falling back
    to name search.
    """
    if query.spotify_id:
        return is_valid_spotify_id(query.spotify_id)
    return bool(query.track_name and query.track_name.strip()
                and query.artist_name and query.artist_name.strip())


def ensure_valid_imdb_id(value: Any) -> str:
    """Return ``value`` unchanged or raise InvalidIdentifierError."""
    if not is_valid_imdb_id(value):
        raise InvalidIdentifierError(f"Invalid IMDb ID format: {value!r}")
    return value


def ensure_valid_stream_query(query: StreamCountQuery) -> StreamCountQuery:
    """Return ``query`` unchanged or raise InvalidIdentifierError."""
    if not validate_stream_query(query):
        raise InvalidIdentifierError("Either a valid Spotify ID or both track name and artist name required")
    return query
