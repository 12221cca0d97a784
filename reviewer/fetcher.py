"""Bounded HTTP document fetching for the review and stream-count sites."""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from .dataclasses import ReviewerConfig
from .exceptions import (
    FetchError,
    FetchTimeoutError,
    HTTPStatusError,
    ResponseTooLargeError,
)

CHUNK_SIZE = 64 * 1024


class DocumentFetcher:
    """Issues single GET/POST requests with timeout and size ceilings.

    There is no retry: every failure is raised as a FetchError subclass
    and the caller treats it as a definitive miss.
    """

    def __init__(self, config: ReviewerConfig) -> None:
        self.config = config
        self.logger = logging.getLogger(__name__)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        del exc_type, exc_val, exc_tb
        await self.close()

    @property
    def default_headers(self) -> Dict[str, str]:
        return {
            'User-Agent': self.config.user_agent,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.9',
        }

    def open_session(self) -> aiohttp.ClientSession:
        """Create a session with its own cookie jar.

        Multi-step flows use this so their cookies are not shared with
        concurrent lookups. The caller owns (and closes) the session.
        """
        return aiohttp.ClientSession(headers=self.default_headers)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = self.open_session()
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self.logger.debug("HTTP session closed")
        self._session = None

    def _client_timeout(self, timeout: Optional[float]) -> aiohttp.ClientTimeout:
        total = timeout if timeout is not None else self.config.review_timeout
        return aiohttp.ClientTimeout(total=total, connect=self.config.connect_timeout)

    async def fetch(self, url: str, *, timeout: Optional[float] = None,
                    session: Optional[aiohttp.ClientSession] = None) -> str:
        """GET a document.

        Args:
            url: Target URL
            timeout: Total request timeout in seconds (defaults to review_timeout)
            session: Session to use instead of the shared one

        Returns:
            Decoded response body

        Raises:
            FetchError: On timeout, size violation, bad status or connection error
        """
        return await self._request('GET', url, timeout=timeout, session=session)

    async def post(self, url: str, data: Dict[str, str], *, timeout: Optional[float] = None,
                   session: Optional[aiohttp.ClientSession] = None,
                   headers: Optional[Dict[str, str]] = None) -> str:
        """POST form data and return the decoded response body."""
        return await self._request('POST', url, timeout=timeout, session=session,
                                   data=data, headers=headers)

    async def _request(self, method: str, url: str, *, timeout: Optional[float],
                       session: Optional[aiohttp.ClientSession], **kwargs: Any) -> str:
        session = session or await self._get_session()
        self.logger.debug(f"{method} {url}")

        try:
            async with session.request(method, url, timeout=self._client_timeout(timeout),
                                       **kwargs) as response:
                self._check_status(response.status, url)
                body = await self._read_limited(response)
                text = self._decode(response, body)
                self.logger.debug(f"Received {len(body)} bytes from {url}")
                return text
        except FetchError:
            raise
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(f"Timed out fetching {url}") from e
        except (aiohttp.ClientError, OSError) as e:
            raise FetchError(f"Error fetching {url}: {e}") from e

    def _check_status(self, status_code: int, url: str) -> None:
        """Raise HTTPStatusError for anything outside 2xx."""
        if 200 <= status_code < 300:
            return
        self.logger.debug(f"Request to {url} failed with status {status_code}")
        raise HTTPStatusError(status_code)

    async def _read_limited(self, response: aiohttp.ClientResponse) -> bytes:
        """Read the body, abandoning it once the size ceiling is crossed."""
        limit = self.config.max_response_bytes

        declared = response.content_length
        if declared is not None and declared > limit:
            raise ResponseTooLargeError(limit, declared)

        chunks = []
        received = 0
        async for chunk in response.content.iter_chunked(CHUNK_SIZE):
            received += len(chunk)
            if received > limit:
                raise ResponseTooLargeError(limit)
            chunks.append(chunk)
        return b''.join(chunks)

    @staticmethod
    def _decode(response: aiohttp.ClientResponse, body: bytes) -> str:
        encoding = response.charset or 'utf-8'
        try:
            return body.decode(encoding, errors='replace')
        except LookupError:
            return body.decode('utf-8', errors='replace')
