import os
import sys
import logging
import argparse
from datetime import datetime
from typing import List

from dotenv import load_dotenv

from config import METRIC_SOURCES, NETWORKS, load_settings
from exceptions import ConfigError
from models import PipelineResult
from pipeline import batch_config, run_pipeline, single_config

# Load environment variables
load_dotenv()


def setup_logging(level="INFO", log_dir="logs"):
    """Setup logging to stdout and, when log_dir is given, a timestamped file."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"telemetry_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log")
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )
    return logging.getLogger(__name__)


def print_summary(results: List[PipelineResult]):
    """Print execution summary."""
    print("\n" + "=" * 60)
    print("               TELEMETRY SHEET SUMMARY")
    print("=" * 60)

    for result in results:
        status = "appended" if result.appended else "skipped (no node count)"
        print(f"{result.network:<12} nodes={result.snapshot.node_count}  "
              f"space pledged={result.space_pledged}  {status}")

    print("=" * 60)


def build_parser():
    parser = argparse.ArgumentParser(description='Scrape telemetry node counts into Google Sheets')
    parser.add_argument('--mode', choices=['batch', 'single'], default='batch',
                        help='batch: chronos + mainnet via chain RPC; single: one network via HTTP API')
    parser.add_argument('--network', action='append', choices=sorted(NETWORKS), dest='networks',
                        help='Network to scrape (repeatable); overrides the mode default')
    parser.add_argument('--metric-source', choices=METRIC_SOURCES,
                        help='Where to read space pledged from; overrides the mode default')
    parser.add_argument('--attempts', type=int,
                        help='Maximum attempts for the whole run; overrides the mode default')
    parser.add_argument('--screenshot-dir',
                        help='Save a debug screenshot of each dashboard page here')
    parser.add_argument('--log-dir', default='logs',
                        help='Directory for the run log file (empty string disables it)')
    return parser


def main(argv=None):
    """Command line interface."""
    args = build_parser().parse_args(argv)

    logger = setup_logging(os.getenv('LOG_LEVEL', 'INFO'), args.log_dir or None)
    logger.info(f"Function invoked locally at: {datetime.now().isoformat()}")

    overrides = {}
    if args.networks:
        overrides['networks'] = args.networks
    if args.metric_source:
        overrides['metric_source'] = args.metric_source
    if args.attempts:
        overrides['max_attempts'] = args.attempts
    if args.screenshot_dir:
        overrides['screenshot_dir'] = args.screenshot_dir

    factory = single_config if args.mode == 'single' else batch_config
    config = factory(**overrides)

    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)

    try:
        results = run_pipeline(config, settings)
    except Exception as e:
        logger.error(f"Error details: {e}", exc_info=True)
        sys.exit(1)

    print_summary(results)
    return results


if __name__ == "__main__":
    main()
