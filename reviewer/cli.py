#!/usr/bin/env python3
"""Command-line interface for review and stream-count lookups.

This module provides a standalone CLI tool for one-off lookups, cache
maintenance, and running the HTTP endpoints.
"""

import argparse
import asyncio
import logging
import sys

from reviewer import __version__
from reviewer.core import ReviewerService
from reviewer.dataclasses import ReviewerConfig


def setup_logging(debug: bool = False):
    """Configure logging for CLI."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog='reviewer',
        description='Fetch title reviews and track stream counts',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s review tt1234567
  %(prog)s streams --spotify-id 4uLU6hMCjMI75M1A2tKUQC
  %(prog)s streams --track-name "Song" --artist-name "Artist" --album-id abc
  %(prog)s serve --port 8096
  %(prog)s --cache-info
  %(prog)s --clear-cache

Environment Variables:
  REVIEWER_DATA_DIR        Cache directory
  REVIEWER_CACHE_ENABLED   Set to 0 to disable caching
  REVIEWER_HOST            Server bind address
  REVIEWER_PORT            Server port
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--data-dir',
        help='Directory holding the cache files (default: from REVIEWER_DATA_DIR env var)'
    )

    parser.add_argument(
        '--no-cache',
        action='store_true',
        help='Disable the persistent caches'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    parser.add_argument(
        '--clear-cache',
        action='store_true',
        help='Clear cached reviews and stream counts and exit'
    )

    parser.add_argument(
        '--cache-info',
        action='store_true',
        help='Show cache statistics and exit'
    )

    subparsers = parser.add_subparsers(dest='command')

    review_parser = subparsers.add_parser('review', help='Fetch reviews for an IMDb title')
    review_parser.add_argument('imdb_id', help='IMDb title id (tt + 7-8 digits)')

    streams_parser = subparsers.add_parser('streams', help='Fetch the stream count for a track')
    streams_parser.add_argument('--spotify-id', help='Spotify track id (skips the site search)')
    streams_parser.add_argument('--track-name', help='Track title to search for')
    streams_parser.add_argument('--artist-name', help='Artist name to search for')
    streams_parser.add_argument('--album-id', help='Album id used to group cache entries')
    streams_parser.add_argument('--track-id', help='Track id used as the cache key')

    serve_parser = subparsers.add_parser('serve', help='Run the HTTP endpoints')
    serve_parser.add_argument('--host', help='Bind address (default: from REVIEWER_HOST env var)')
    serve_parser.add_argument('--port', type=int, help='Port (default: from REVIEWER_PORT env var)')

    return parser, parser.parse_args(argv)


def create_config_from_args(args) -> ReviewerConfig:
    """Create ReviewerConfig from command-line arguments and environment variables."""
    config = ReviewerConfig.from_env()
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.no_cache:
        config.cache_enabled = False
    return config


def show_cache_info(service: ReviewerService):
    cache_info = service.get_cache_info()
    if not cache_info.get('cache_enabled'):
        print("Cache is disabled")
        return

    print(f"Data directory: {cache_info.get('data_dir', 'N/A')}")
    for label, key in (('Reviews', 'reviews'), ('Stream counts', 'stream_counts')):
        info = cache_info[key]
        print(f"{label}:")
        print(f"  Cache file: {info.get('cache_file', 'N/A')}")
        print(f"  Entries: {info.get('entries', 0)}")
        print(f"  Size: {info.get('total_size_mb', 0):.2f} MB")
        print(f"  Expiry: {info.get('expiry_days', 0)} days", end='')
        if info.get('expiry_days', 0) == 0:
            print(" (never expires)")
        else:
            print()


async def run_lookup(args, config: ReviewerConfig):
    """Run a single lookup and return its wire-format result."""
    async with ReviewerService(config) as service:
        if args.command == 'review':
            return await service.get_review(args.imdb_id)
        return await service.get_stream_count(
            album_id=args.album_id,
            track_id=args.track_id,
            spotify_id=args.spotify_id,
            track_name=args.track_name,
            artist_name=args.artist_name,
        )


def main(argv=None):
    """Main CLI entry point."""
    parser, args = parse_args(argv)
    setup_logging(args.debug)
    logger = logging.getLogger(__name__)

    try:
        config = create_config_from_args(args)
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    # Handle cache management commands
    if args.cache_info or args.clear_cache:
        service = ReviewerService(config)

        if args.cache_info:
            show_cache_info(service)
            return 0

        if args.clear_cache:
            cleared_count = service.clear_cache()
            print(f"Cleared {cleared_count} cache entries")
            return 0

    if not args.command:
        parser.print_help(sys.stderr)
        return 1

    if args.command == 'serve':
        from reviewer.server import run_server
        run_server(config, host=args.host, port=args.port)
        return 0

    if args.command == 'streams' and not args.spotify_id and not (args.track_name and args.artist_name):
        print("Error: either --spotify-id or both --track-name and --artist-name are required",
              file=sys.stderr)
        return 1

    try:
        result = asyncio.run(run_lookup(args, config))

    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130

    except Exception as e:
        logger.error(f"Fatal error: {e}")
        if args.debug:
            raise
        return 1

    if not result:
        print("No result found", file=sys.stderr)
        return 1

    print(result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
