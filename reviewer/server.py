"""HTTP endpoints for review and stream-count lookups.

Endpoints:
- GET /Reviewer/GetReview?imdbId=... - Reviews as author|||rating|||content@@@...
- GET /Reviewer/GetStreamCount?spotifyId=...|trackName=...&artistName=... - count|||title|||artist|||date
- GET /health - Health check
"""

import logging
from typing import Optional

from aiohttp import web

from . import __version__
from .core import ReviewerService
from .dataclasses import ReviewerConfig
from .validators import is_valid_imdb_id

SERVICE_KEY = web.AppKey('reviewer_service', ReviewerService)

logger = logging.getLogger(__name__)


def _query_value(request: web.Request, name: str) -> Optional[str]:
    value = request.query.get(name, '').strip()
    return value or None


async def get_review(request: web.Request) -> web.Response:
    """Return the reviews for an IMDb title."""
    imdb_id = _query_value(request, 'imdbId')
    if not imdb_id:
        return web.Response(status=400, text="IMDb ID is required")
    if not is_valid_imdb_id(imdb_id):
        return web.Response(status=400, text="Invalid IMDb ID format. Expected format: tt1234567")

    service = request.app[SERVICE_KEY]
    review = await service.get_review(imdb_id)
    if not review:
        return web.Response(status=404, text="No review found")
    return web.Response(text=review, content_type='text/plain')


async def get_stream_count(request: web.Request) -> web.Response:
    """Return the stream count for a track."""
    spotify_id = _query_value(request, 'spotifyId')
    track_name = _query_value(request, 'trackName')
    artist_name = _query_value(request, 'artistName')

    if not spotify_id and not (track_name and artist_name):
        return web.Response(status=400, text="Either Spotify ID or both track name and artist name required")

    service = request.app[SERVICE_KEY]
    result = await service.get_stream_count(
        album_id=_query_value(request, 'albumId'),
        track_id=_query_value(request, 'trackId'),
        spotify_id=spotify_id,
        track_name=track_name,
        artist_name=artist_name,
    )
    if not result:
        return web.Response(status=404, text="No stream data found")
    return web.Response(text=result, content_type='text/plain')


async def health_check(request: web.Request) -> web.Response:
    """Health check endpoint."""
    del request
    return web.json_response({'status': 'healthy', 'version': __version__})


def create_app(service: ReviewerService) -> web.Application:
    """Build the application around a service whose session closes with the app."""
    app = web.Application()
    app[SERVICE_KEY] = service

    async def _close_service(app: web.Application) -> None:
        await app[SERVICE_KEY].close()

    app.on_cleanup.append(_close_service)
    app.router.add_get('/Reviewer/GetReview', get_review)
    app.router.add_get('/Reviewer/GetStreamCount', get_stream_count)
    app.router.add_get('/health', health_check)
    return app


def run_server(config: ReviewerConfig, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Serve until interrupted."""
    service = ReviewerService(config)
    host = host or config.server_host
    port = port or config.server_port
    logger.info(f"Serving reviewer endpoints on http://{host}:{port}")
    web.run_app(create_app(service), host=host, port=port, print=None)
