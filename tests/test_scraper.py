"""Tests for the review and stream-count lookup orchestration."""

import threading

import pytest
from unittest.mock import AsyncMock, Mock, patch
from reviewer.cache_manager import ReviewCacheManager, StreamCountCacheManager
from reviewer.dataclasses import StreamCountQuery
from reviewer.exceptions import FetchTimeoutError, HTTPStatusError, PersistError
from reviewer.scraper import ReviewScraper, StreamCountScraper


@pytest.fixture
def mock_fetcher():
    fetcher = Mock()
    fetcher.fetch = AsyncMock()
    return fetcher


@pytest.fixture
def mock_search():
    search = Mock()
    search.find_track_page = AsyncMock()
    search.build_track_url = Mock(side_effect=lambda spotify_id: f"https://streams.example/track/{spotify_id}")
    return search


class TestReviewScraper:
    """Test suite for ReviewScraper."""

    def test_reviews_url(self, config, mock_fetcher):
        scraper = ReviewScraper(config, mock_fetcher)
        assert scraper.build_reviews_url("tt1234567") == "https://www.imdb.com/title/tt1234567/reviews"

    @pytest.mark.asyncio
    async def test_three_reviews_then_cache_hit(self, config, mock_fetcher, review_cache, sample_review_html):
        """Test a fresh lookup returns three records and the repeat is served from cache."""
        mock_fetcher.fetch.return_value = sample_review_html
        scraper = ReviewScraper(config, mock_fetcher, review_cache)

        first = await scraper.get_review("tt1234567")
        second = await scraper.get_review("tt1234567")

        records = first.split("@@@")
        assert len(records) == 3
        assert records[0].startswith("MovieFan42|||9|||A stunning film")
        assert records[2].startswith("Anonymous||||||Great soundtrack")
        assert second == first
        assert mock_fetcher.fetch.await_count == 1
        mock_fetcher.fetch.assert_awaited_with(
            "https://www.imdb.com/title/tt1234567/reviews", timeout=config.review_timeout
        )

    @pytest.mark.asyncio
    async def test_cache_survives_restart(self, config, mock_fetcher, review_cache, sample_review_html):
        mock_fetcher.fetch.return_value = sample_review_html
        first = await ReviewScraper(config, mock_fetcher, review_cache).get_review("tt1234567")

        fresh_fetcher = Mock()
        fresh_fetcher.fetch = AsyncMock()
        reloaded = ReviewCacheManager(str(config.review_cache_path))
        second = await ReviewScraper(config, fresh_fetcher, reloaded).get_review("tt1234567")

        assert second == first
        fresh_fetcher.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("imdb_id", ["", "tt123", "abc1234567", "tt1234567/../x"])
    async def test_invalid_id_short_circuits(self, config, mock_fetcher, imdb_id):
        """Test invalid identifiers touch neither the cache nor the network."""
        cache = Mock()
        scraper = ReviewScraper(config, mock_fetcher, cache)

        assert await scraper.get_review(imdb_id) is None
        cache.get.assert_not_called()
        cache.set.assert_not_called()
        mock_fetcher.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_failures_return_none(self, config, mock_fetcher, review_cache):
        scraper = ReviewScraper(config, mock_fetcher, review_cache)

        mock_fetcher.fetch.side_effect = HTTPStatusError(503)
        assert await scraper.get_reviews("tt1234567") is None

        mock_fetcher.fetch.side_effect = FetchTimeoutError("timed out")
        assert await scraper.get_reviews("tt1234567") is None

        assert len(review_cache) == 0

    @pytest.mark.asyncio
    async def test_no_reviews_not_cached(self, config, mock_fetcher, review_cache):
        mock_fetcher.fetch.return_value = "<html><body>No reviews yet</body></html>"
        scraper = ReviewScraper(config, mock_fetcher, review_cache)

        assert await scraper.get_review("tt1234567") is None
        assert len(review_cache) == 0

    @pytest.mark.asyncio
    async def test_save_failure_still_returns_result(self, config, mock_fetcher, review_cache,
                                                     sample_review_html):
        """Test a cache write failure does not affect the lookup result."""
        mock_fetcher.fetch.return_value = sample_review_html
        scraper = ReviewScraper(config, mock_fetcher, review_cache)

        with patch.object(review_cache, '_save_cache', side_effect=PersistError("disk full")):
            reviews = await scraper.get_reviews("tt1234567")

        assert len(reviews) == 3

    @pytest.mark.asyncio
    async def test_without_cache(self, config, mock_fetcher, sample_review_html):
        mock_fetcher.fetch.return_value = sample_review_html
        scraper = ReviewScraper(config, mock_fetcher)

        await scraper.get_review("tt1234567")
        await scraper.get_review("tt1234567")
        assert mock_fetcher.fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_escape_only_review_not_returned_or_cached(self, config, mock_fetcher, review_cache):
        """Test a review that decodes to nothing is a miss and never reaches the cache."""
        mock_fetcher.fetch.return_value = '{"reviews":[{"reviewText":"' + "\\n" * 60 + '"}]}'
        scraper = ReviewScraper(config, mock_fetcher, review_cache)

        assert await scraper.get_review("tt1234567") is None
        assert len(review_cache) == 0
        assert not review_cache.cache_file.exists()

    @pytest.mark.asyncio
    async def test_mixed_page_is_idempotent(self, config, mock_fetcher, review_cache, sample_review_html):
        """Test an empty review alongside real ones does not defeat the cache."""
        mock_fetcher.fetch.return_value = sample_review_html.replace(
            '"reviews": [', '"reviews": [{"reviewText":"' + "\\n" * 60 + '"},', 1
        )
        scraper = ReviewScraper(config, mock_fetcher, review_cache)

        first = await scraper.get_review("tt1234567")
        second = await scraper.get_review("tt1234567")

        assert first == second
        assert all(record.split("|||")[2] for record in first.split("@@@"))
        assert mock_fetcher.fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_extraction_runs_off_event_loop(self, config, mock_fetcher, sample_review_html):
        """Test pattern evaluation happens in a worker thread."""
        mock_fetcher.fetch.return_value = sample_review_html
        scraper = ReviewScraper(config, mock_fetcher)
        threads = []
        extract = scraper.extractor.extract

        def recording_extract(document):
            threads.append(threading.current_thread())
            return extract(document)

        with patch.object(scraper.extractor, 'extract', side_effect=recording_extract):
            assert await scraper.get_reviews("tt1234567")

        assert threads and threads[0] is not threading.main_thread()


class TestStreamCountScraper:
    """Test suite for StreamCountScraper."""

    @pytest.mark.asyncio
    async def test_spotify_id_fetches_track_page(self, config, mock_fetcher, mock_search, stream_cache,
                                                 sample_stream_html, spotify_id):
        """Test an external id goes straight to the track page without searching."""
        mock_fetcher.fetch.return_value = sample_stream_html
        scraper = StreamCountScraper(config, mock_fetcher, stream_cache, search=mock_search)

        result = await scraper.get_stream_count_text(StreamCountQuery(album_id="album1", spotify_id=spotify_id))

        assert result == "4,123,456,789|||Blinding Lights|||The Weeknd|||2019-11-29"
        mock_fetcher.fetch.assert_awaited_once_with(
            f"https://streams.example/track/{spotify_id}", timeout=config.stream_timeout
        )
        mock_search.find_track_page.assert_not_awaited()
        assert stream_cache.get("album1", spotify_id) is not None

    @pytest.mark.asyncio
    async def test_name_search(self, config, mock_fetcher, mock_search, stream_cache, sample_label_stream_html):
        """Test name and artist drive the search and fill in missing page fields."""
        mock_search.find_track_page.return_value = sample_label_stream_html
        scraper = StreamCountScraper(config, mock_fetcher, stream_cache, search=mock_search)
        query = StreamCountQuery(track_name="My Song", artist_name="My Artist")

        result = await scraper.get_stream_count_text(query)

        assert result == "1.234.567|||My Song|||My Artist|||"
        mock_search.find_track_page.assert_awaited_once_with("My Song", "My Artist")
        mock_fetcher.fetch.assert_not_awaited()
        assert stream_cache.get("unknown", "my song::my artist") is not None

    @pytest.mark.asyncio
    async def test_cache_hit_is_idempotent(self, config, mock_fetcher, mock_search, stream_cache,
                                           sample_stream_html, spotify_id):
        """Test a cache hit returns the same four fields as the fresh lookup."""
        mock_fetcher.fetch.return_value = sample_stream_html
        scraper = StreamCountScraper(config, mock_fetcher, stream_cache, search=mock_search)
        query = StreamCountQuery(album_id="album1", track_id="track1", spotify_id=spotify_id)

        first = await scraper.get_stream_count_text(query)
        second = await scraper.get_stream_count_text(query)

        assert second == first
        assert mock_fetcher.fetch.await_count == 1
        assert stream_cache.get("album1", "track1") is not None

    @pytest.mark.asyncio
    async def test_invalid_query_short_circuits(self, config, mock_fetcher, mock_search):
        cache = Mock()
        scraper = StreamCountScraper(config, mock_fetcher, cache, search=mock_search)

        assert await scraper.get_stream_count(StreamCountQuery(track_name="Only Name")) is None
        assert await scraper.get_stream_count(
            StreamCountQuery(spotify_id="bad", track_name="Song", artist_name="Artist")
        ) is None

        cache.get.assert_not_called()
        mock_fetcher.fetch.assert_not_awaited()
        mock_search.find_track_page.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_search_miss(self, config, mock_fetcher, mock_search, stream_cache):
        mock_search.find_track_page.return_value = None
        scraper = StreamCountScraper(config, mock_fetcher, stream_cache, search=mock_search)

        assert await scraper.get_stream_count(StreamCountQuery(track_name="Song", artist_name="Artist")) is None
        assert len(stream_cache) == 0

    @pytest.mark.asyncio
    async def test_track_page_fetch_failure(self, config, mock_fetcher, mock_search, spotify_id):
        mock_fetcher.fetch.side_effect = HTTPStatusError(404)
        scraper = StreamCountScraper(config, mock_fetcher, search=mock_search)

        assert await scraper.get_stream_count(StreamCountQuery(spotify_id=spotify_id)) is None

    @pytest.mark.asyncio
    async def test_page_without_count(self, config, mock_fetcher, mock_search, stream_cache, spotify_id):
        mock_fetcher.fetch.return_value = "<h1>Blinding Lights</h1>"
        scraper = StreamCountScraper(config, mock_fetcher, stream_cache, search=mock_search)

        assert await scraper.get_stream_count(StreamCountQuery(spotify_id=spotify_id)) is None
        assert len(stream_cache) == 0

    @pytest.mark.asyncio
    async def test_save_failure_still_returns_result(self, config, mock_fetcher, mock_search,
                                                     stream_cache, sample_stream_html, spotify_id):
        mock_fetcher.fetch.return_value = sample_stream_html
        scraper = StreamCountScraper(config, mock_fetcher, stream_cache, search=mock_search)

        with patch.object(stream_cache, '_save_cache', side_effect=PersistError("disk full")):
            record = await scraper.get_stream_count(StreamCountQuery(spotify_id=spotify_id))

        assert record.stream_count == "4,123,456,789"


class TestStreamCacheFile:
    """Test that stream counts persist under album then track."""

    @pytest.mark.asyncio
    async def test_reload(self, config, mock_fetcher, mock_search, sample_stream_html, spotify_id):
        mock_fetcher.fetch.return_value = sample_stream_html
        cache = StreamCountCacheManager(str(config.stream_cache_path))
        await StreamCountScraper(config, mock_fetcher, cache, search=mock_search).get_stream_count(
            StreamCountQuery(album_id="album1", track_id="track1", spotify_id=spotify_id)
        )

        reloaded = StreamCountCacheManager(str(config.stream_cache_path))
        assert reloaded.get("album1", "track1").title == "Blinding Lights"
