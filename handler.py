"""Serverless entry point, invoked hourly by the host scheduler.

The event body may carry a ``next_run`` hint which is echoed back. Failures
are retried inside the pipeline; once retries are exhausted the error is
raised so the host records the invocation as failed.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from config import SCHEDULE
from pipeline import run_pipeline, single_config

logger = logging.getLogger(__name__)

# Read by deployment tooling
schedule = SCHEDULE


def _configure_logging():
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            format='%(asctime)s - %(levelname)s - %(message)s',
            handlers=[logging.StreamHandler(sys.stdout)],
        )


def parse_next_run(event):
    """``next_run`` from the event body, which may be a dict or a JSON string."""
    if not isinstance(event, dict):
        return None
    body = event.get('body', event)
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body or '{}')
        except ValueError:
            logger.warning("Request body is not JSON; ignoring it")
            return None
    if not isinstance(body, dict):
        return None
    return body.get('next_run')


def handler(event, context=None):
    _configure_logging()

    next_run = parse_next_run(event)
    logger.info(f"Function invoked. Next run scheduled for: {next_run}")
    logger.info(f"Current time: {datetime.now(timezone.utc).isoformat()}")

    try:
        run_pipeline(single_config())
    except Exception as e:
        logger.error(f"Error details: {e}", exc_info=True)
        raise

    logger.info("Function completed successfully")
    return {
        'statusCode': 200,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps({'message': 'Data updated successfully', 'nextRun': next_run}),
    }
