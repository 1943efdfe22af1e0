"""Scrape, fetch and append, for one network or a batch of them.

One attempt runs Authenticate -> Launch Browser -> Scrape -> Fetch Metric ->
Append -> Close Browser. Pages are scraped concurrently (one worker thread
per page) and metrics fetched the same way. The browser is closed on every
exit path of an attempt, and the whole attempt is retried up to
``max_attempts`` times.
"""

import asyncio
import logging
from typing import List, Optional

from pydantic import BaseModel, field_validator

from config import (
    BATCH_NETWORKS,
    LOCAL_TIMINGS,
    MAX_RETRIES,
    METRIC_SOURCE_CHAIN,
    METRIC_SOURCE_HTTP,
    METRIC_SOURCES,
    SERVERLESS_TIMINGS,
    SINGLE_NETWORK,
    ScrapeTimings,
    Settings,
    get_network,
    load_settings,
)
from metrics import fetch_space_pledged
from models import PipelineResult, utc_timestamp
from retry import run_with_retry
from scraper import Browser, scrape_page
from sheets import SheetWriter

logger = logging.getLogger(__name__)


class PipelineConfig(BaseModel):
    """What one invocation scrapes and how hard it tries."""
    networks: List[str]
    metric_source: str = METRIC_SOURCE_CHAIN
    timings: ScrapeTimings = LOCAL_TIMINGS
    max_attempts: int = 1
    screenshot_dir: Optional[str] = None

    @field_validator('networks')
    @classmethod
    def known_networks(cls, value):
        if not value:
            raise ValueError("At least one network is required")
        for name in value:
            get_network(name)
        return value

    @field_validator('metric_source')
    @classmethod
    def known_source(cls, value):
        if value not in METRIC_SOURCES:
            raise ValueError(f"Unknown metric source '{value}'")
        return value


def batch_config(**overrides) -> PipelineConfig:
    """Local run: both tracked networks, chain RPC metric, single attempt."""
    values = dict(
        networks=list(BATCH_NETWORKS),
        metric_source=METRIC_SOURCE_CHAIN,
        timings=LOCAL_TIMINGS,
        max_attempts=1,
    )
    values.update(overrides)
    return PipelineConfig(**values)


def single_config(**overrides) -> PipelineConfig:
    """Scheduled run: one network, HTTP metric, retried."""
    values = dict(
        networks=[SINGLE_NETWORK],
        metric_source=METRIC_SOURCE_HTTP,
        timings=SERVERLESS_TIMINGS,
        max_attempts=MAX_RETRIES,
    )
    values.update(overrides)
    return PipelineConfig(**values)


async def _scrape_and_fetch(pages, networks, config: PipelineConfig, settings: Settings):
    snapshots = await asyncio.gather(*(
        asyncio.to_thread(
            scrape_page, page, network.telemetry_url, network.name,
            config.timings, config.screenshot_dir,
        )
        for page, network in zip(pages, networks)
    ))
    pledged = await asyncio.gather(*(
        asyncio.to_thread(
            fetch_space_pledged, network, config.metric_source, settings.telemetry_api_url,
        )
        for network in networks
    ))
    return snapshots, pledged


def run_attempt(config: PipelineConfig, settings: Settings) -> List[PipelineResult]:
    """One pass over every configured network."""
    networks = [get_network(name) for name in config.networks]

    writer = SheetWriter(settings)

    logger.info("Launching browser...")
    browser = Browser(settings.chrome_binary_path, settings.chromedriver_path)
    try:
        pages = [browser.new_page() for _ in networks]
        snapshots, pledged = asyncio.run(_scrape_and_fetch(pages, networks, config, settings))

        timestamp = utc_timestamp()
        results = []
        for network, snapshot, value in zip(networks, snapshots, pledged):
            row = writer.append(network.sheet_range, snapshot, value, timestamp)
            results.append(PipelineResult(
                network=network.name,
                snapshot=snapshot,
                space_pledged=value,
                appended=row is not None,
                row=row,
            ))
        return results
    finally:
        browser.close()


def run_pipeline(config: PipelineConfig, settings: Optional[Settings] = None) -> List[PipelineResult]:
    """Run the pipeline with the configured retry budget."""
    settings = settings or load_settings()
    logger.info(
        f"Running pipeline for {', '.join(config.networks)} "
        f"(metric source: {config.metric_source}, attempts: {config.max_attempts})"
    )
    results = run_with_retry(lambda: run_attempt(config, settings), config.max_attempts)
    logger.info("Pipeline completed successfully")
    return results
