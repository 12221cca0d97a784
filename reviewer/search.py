"""Token-protected search flow for locating track pages on the stream-count site."""

import logging
import re
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .dataclasses import ReviewerConfig
from .exceptions import FetchError
from .fetcher import DocumentFetcher

CSRF_META_PATTERN = re.compile(
    r'<meta[^>]*name=["\']csrf-token["\'][^>]*content=["\']([^"\']+)["\']',
    re.IGNORECASE
)
TRACK_LINK_PATTERN = re.compile(r'/track/[0-9A-Za-z]+')
SEARCH_RESULTS_MARKER = 'search-results'
STREAM_COUNT_MARKER = re.compile(r'streams?-count', re.IGNORECASE)


class StreamCountSearch:
    """Resolves a track name and artist to a track page.

    The site requires a CSRF token from its landing page, posted back with
    the query inside the same cookie session. The search either lands
    directly on a track page or on a results list, in which case the first
    result is followed. Any missing step ends the flow with no result.
    """

    def __init__(self, config: ReviewerConfig, fetcher: DocumentFetcher) -> None:
        self.config = config
        self.fetcher = fetcher
        self.logger = logging.getLogger(__name__)

    def build_track_url(self, spotify_id: str) -> str:
        """Build direct track page URL for an external track id."""
        return f"{self.config.stream_base_url}/track/{spotify_id}"

    def build_search_url(self) -> str:
        return f"{self.config.stream_base_url}/search"

    async def find_track_page(self, track_name: str, artist_name: str) -> Optional[str]:
        """Search for a track and return its page HTML.

        Args:
            track_name: Track title
            artist_name: Artist name

        Returns:
            Track page HTML, or None if any step of the flow fails
        """
        root_url = f"{self.config.stream_base_url}/"
        timeout = self.config.stream_timeout
        query = f"{track_name} {artist_name}".strip()

        async with self.fetcher.open_session() as session:
            try:
                landing = await self.fetcher.fetch(root_url, timeout=timeout, session=session)
                token = self._extract_csrf_token(landing)
                if not token:
                    self.logger.warning("No CSRF token found on stream count landing page")
                    return None

                self.logger.debug("Submitting stream count search")
                html = await self.fetcher.post(
                    self.build_search_url(),
                    {'_token': token, 'query': query},
                    timeout=timeout,
                    session=session,
                    headers={'X-CSRF-TOKEN': token, 'Referer': root_url},
                )

                if not self._is_search_results(html):
                    return html

                track_url = self._extract_first_result_url(html, root_url)
                if not track_url:
                    self.logger.info("Search returned no track results")
                    return None

                self.logger.debug(f"Following first search result: {track_url}")
                return await self.fetcher.fetch(track_url, timeout=timeout, session=session)

            except FetchError as e:
                self.logger.warning(f"Stream count search failed: {e}")
                return None

    def _extract_csrf_token(self, html: str) -> Optional[str]:
        """Extract the CSRF token from the landing page meta tag."""
        try:
            soup = BeautifulSoup(html, 'html.parser')
            meta = soup.find('meta', attrs={'name': 'csrf-token'})
            if meta and meta.get('content'):
                return meta['content'].strip()
        except Exception as e:
            self.logger.debug(f"Error parsing landing page for CSRF token: {e}")

        # Fall back to a raw pattern for malformed markup
        match = CSRF_META_PATTERN.search(html)
        return match.group(1) if match else None

    def _is_search_results(self, html: str) -> bool:
        """A results list rather than a track page."""
        if SEARCH_RESULTS_MARKER in html:
            return True
        return not STREAM_COUNT_MARKER.search(html) and TRACK_LINK_PATTERN.search(html) is not None

    def _extract_first_result_url(self, html: str, root_url: str) -> Optional[str]:
        """Return the absolute URL of the first track link in search results."""
        try:
            soup = BeautifulSoup(html, 'html.parser')
            links = soup.find_all('a', href=TRACK_LINK_PATTERN)
            if links:
                return urljoin(root_url, links[0]['href'])
        except Exception as e:
            self.logger.error(f"Error parsing search results: {e}")
        return None
