"""Pytest configuration and fixtures for reviewer tests."""

import pytest
from reviewer.dataclasses import ReviewerConfig
from reviewer.cache_manager import ReviewCacheManager, StreamCountCacheManager

SPOTIFY_ID = "4uLU6hMCjMI75M1A2tKUQC"


@pytest.fixture
def spotify_id():
    """A well-formed external track id."""
    return SPOTIFY_ID


@pytest.fixture
def temp_cache_dir(tmp_path):
    """Create temporary cache directory for tests."""
    return tmp_path / "test_cache"


@pytest.fixture
def make_config(temp_cache_dir):
    """Factory for configurations rooted in the temporary cache directory."""
    def _make(**overrides):
        overrides.setdefault('data_dir', str(temp_cache_dir))
        return ReviewerConfig(**overrides)
    return _make


@pytest.fixture
def config(make_config):
    """Create configuration for testing."""
    return make_config()


@pytest.fixture
def review_cache(config):
    """Create review cache manager instance for testing."""
    return ReviewCacheManager(str(config.review_cache_path), config.review_cache_expiry_days)


@pytest.fixture
def stream_cache(config):
    """Create stream count cache manager instance for testing."""
    return StreamCountCacheManager(str(config.stream_cache_path), config.stream_cache_expiry_days)


@pytest.fixture
def sample_review_html():
    """Review page with three embedded reviews; the second has no author or rating."""
    return r'''
    <html>
    <head><title>Reviews</title></head>
    <body>
    <script id="__NEXT_DATA__" type="application/json">
    {"props":{"pageProps":{"contentData":{"reviews": [
        {"author":{"username":{"text":"MovieFan42"}},"authorRating":9,
         "reviewText":"A stunning film with remarkable performances. It\u0026#39;s a masterpiece.\nHighly recommended."},
        {"authorRating":null,
         "reviewText":"Decent but overlong. The second act drags and the ending felt rushed to me."},
        {"author":{"username":{"text":"CinemaBuff"}},"authorRating":6,
         "reviewText":"Great soundtrack and cinematography, a weak script overall but still worth a watch."}
    ]}}}}
    </script>
    </body>
    </html>
    '''


@pytest.fixture
def sample_markup_review_html():
    """Review page without embedded data, only the legacy review markup."""
    return '''
    <html>
    <body>
        <div class="lister-item">
            <span class="display-name-link"><a href="/user/ur1234567/">Jane Doe</a></span>
            <div class="text show-more__control">Short one.</div>
            <div class="text show-more__control">An absorbing thriller that keeps you guessing until
            the very last scene. The lead performance is <b>outstanding</b> &amp; the score is haunting.</div>
        </div>
    </body>
    </html>
    '''


@pytest.fixture
def sample_stream_html():
    """Track page with count, title, artist and release date."""
    return '''
    <html>
    <body>
        <h1 class="track-title">Blinding Lights</h1>
        <a class="artist-name" href="/artist/1Xyo4u8uXC1ZmMpatF05PJ">The Weeknd</a>
        <div class="stream-count"><span>4,123,456,789</span></div>
        <p>Release date: <span>2019-11-29</span></p>
    </body>
    </html>
    '''


@pytest.fixture
def sample_label_stream_html():
    """Track page that only labels the total, with no title or artist."""
    return '''
    <html>
    <body>
        <section>
            <p>Total streams: <b>1.234.567</b></p>
        </section>
    </body>
    </html>
    '''


@pytest.fixture
def sample_landing_html():
    """Stream-count site landing page carrying a CSRF token."""
    return '''
    <html>
    <head>
        <meta charset="utf-8">
        <meta name="csrf-token" content="tok123">
    </head>
    <body><form action="/search" method="post"></form></body>
    </html>
    '''


@pytest.fixture
def sample_search_results_html():
    """Search results list linking to track pages."""
    return '''
    <html>
    <body>
        <div class="search-results">
            <a href="/track/0VjIjW4GlUZAMYd2vXMi3b">Blinding Lights - The Weeknd</a>
            <a href="/track/7MXVkk9YMctZqd1Srtv4MB">Starboy - The Weeknd</a>
        </div>
    </body>
    </html>
    '''
