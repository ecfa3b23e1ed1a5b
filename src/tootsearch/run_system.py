"""
Main script to run the hashtag search bot.
"""
import argparse
import logging
import signal
import sys

from tootsearch.client.timeline_client import TimelineClient
from tootsearch.common.config import CONFIG_FILE, load_config, save_config
from tootsearch.common.errors import (
    ConfigError, IndexOpenError, LoginError, PersistenceError,
    QueryExecutionError, QueryParseError,
)
from tootsearch.common.utils import split_address
from tootsearch.indexer.ingestion import IngestionCycle
from tootsearch.indexer.scheduler import Scheduler
from tootsearch.indexer.search_index import SearchIndex
from tootsearch.indexer.watermarks import WatermarkStore
from tootsearch.search.query import QueryProcessor
from tootsearch.search.web import create_app

logger = logging.getLogger("tootsearch")


def setup_logging(verbose=False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] [%(name)s] %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler('tootsearch.log'),
        ]
    )


def connect_client(config, config_path):
    """Create the timeline client, registering the app and logging in as needed."""
    client = TimelineClient(
        config['instance'],
        access_token=config['access_token'] or None,
        page_limit=config['page_limit'],
    )
    if client.access_token:
        logger.info("Using configured access token")
        return client

    if not (config['client_id'] and config['client_secret']):
        client_id, client_secret = client.register_app(
            config['app_name'], config['website'], config['scopes'])
        config['client_id'] = client_id
        config['client_secret'] = client_secret
        save_config(config, config_path)
        logger.info("Registered app on instance, credentials saved")

    client.login(config['client_id'], config['client_secret'],
                 config['username'], config['password'], config['scopes'])
    logger.info("Logged in")
    return client


def build_cycle(config, config_path, index):
    client = connect_client(config, config_path)
    watermarks = WatermarkStore(config['watermark_file'])
    return IngestionCycle(client, index, watermarks, config['hashtags'])


def format_results_for_cli(hits, query):
    if not hits:
        return f"No results found for '{query}'"

    rule = "-" * 80
    output = [f"Search results for '{query}':", rule]
    for rank, hit in enumerate(hits, 1):
        output.extend(hit.text_lines(rank))
        output.append(rule)
    return "\n".join(output)


def cmd_serve(args, config):
    if not config['hashtags']:
        logger.warning("No hashtags configured, nothing will be scanned")

    index = SearchIndex.open(config['index_dir'], config['language'])
    scheduler = None
    try:
        cycle = build_cycle(config, args.config, index)
        scheduler = Scheduler(cycle, config['scan_interval'])
        app = create_app(QueryProcessor(index, config['max_results']))

        # SIGTERM takes the same path as exiting the server
        signal.signal(signal.SIGTERM, lambda signum, frame: sys.exit(0))

        logger.info("Performing initial scan and starting scan timer")
        scheduler.start()
        host, port = split_address(config['address'])
        app.run(host=host, port=port, threaded=True, use_reloader=False)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down")
    finally:
        if scheduler is not None:
            scheduler.stop()
        index.close()
    return 0


def cmd_scan(args, config):
    index = SearchIndex.open(config['index_dir'], config['language'])
    try:
        cycle = build_cycle(config, args.config, index)
        results = cycle.run()
    finally:
        index.close()
    for result in results:
        print(result)
    return 1 if any(r.error is not None for r in results) else 0


def cmd_search(args, config):
    index = SearchIndex.open(config['index_dir'], config['language'])
    try:
        processor = QueryProcessor(index, config['max_results'])
        try:
            hits = list(processor.search(args.query, args.max_results))
        except (QueryParseError, QueryExecutionError) as e:
            logger.warning(f"Search failed: {e}")
            hits = []
    finally:
        index.close()
    print(format_results_for_cli(hits, args.query))
    return 0


def build_parser():
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--config', default=CONFIG_FILE, help='Path to the JSON config file')
    common.add_argument('--verbose', action='store_true', help='Enable debug logging')

    parser = argparse.ArgumentParser(description='Hashtag timeline search bot')
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve = subparsers.add_parser('serve', parents=[common],
                                  help='Scan hashtags periodically and serve search')
    serve.set_defaults(func=cmd_serve)

    scan = subparsers.add_parser('scan', parents=[common], help='Run a single ingestion cycle and exit')
    scan.set_defaults(func=cmd_scan)

    search = subparsers.add_parser('search', parents=[common], help='Search the local index')
    search.add_argument('query', help='Search query')
    search.add_argument('--max-results', type=int, default=None,
                        help='Maximum number of results to return')
    search.set_defaults(func=cmd_search)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
        return args.func(args, config)
    except (ConfigError, IndexOpenError, LoginError, PersistenceError) as e:
        logger.critical(f"Startup failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
