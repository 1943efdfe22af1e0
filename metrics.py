"""Space pledged lookups.

Two sources are supported: a stateful JSON-RPC client against a chain node
(``chain``) and the telemetry server's public HTTP API (``http``). The value
is required for a row, so every failure propagates to the caller.
"""

import logging
from typing import Optional, Tuple

import requests

from config import (
    MAX_PIECES_IN_SECTOR,
    MAX_U64,
    METRIC_SOURCE_CHAIN,
    METRIC_SOURCE_HTTP,
    PIECE_SIZE,
    RPC_TIMEOUT,
    SLOT_PROBABILITY,
    SOLUTION_RANGES_STORAGE_KEY,
    TELEMETRY_API_URL,
    Network,
)
from exceptions import MetricFetchError
from models import SpacePledged

logger = logging.getLogger(__name__)


def compute_space_pledged(solution_range: int,
                          slot_probability: Tuple[int, int] = SLOT_PROBABILITY) -> int:
    """Network space in bytes implied by the current solution range."""
    if solution_range <= 0:
        raise ValueError(f"Solution range must be positive, got {solution_range}")
    numerator, denominator = slot_probability
    sectors = MAX_U64 * numerator // denominator // solution_range
    return sectors * MAX_PIECES_IN_SECTOR * PIECE_SIZE


def decode_solution_range(raw: Optional[str]) -> int:
    """Current solution range from SCALE-encoded ``Subspace.SolutionRanges``.

    The struct starts with ``current: u64``, so only the first eight bytes
    (little-endian) are needed.
    """
    if not raw:
        raise ValueError("SolutionRanges storage is empty")
    data = bytes.fromhex(raw[2:] if raw.startswith('0x') else raw)
    if len(data) < 8:
        raise ValueError(f"SolutionRanges storage too short: {raw}")
    return int.from_bytes(data[:8], 'little')


class ChainClient:
    """JSON-RPC connection to a Subspace node."""

    def __init__(self, rpc_url: str, network_name: str, timeout: float = RPC_TIMEOUT):
        self.rpc_url = rpc_url
        self.network_name = network_name
        self.timeout = timeout
        self.session = None
        self.chain = None
        self._request_id = 0

    def connect(self):
        """Open the session and confirm the node answers."""
        self.session = requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})
        self.chain = self.call('system_chain')
        logger.info(f"{self.network_name}: Connected to {self.chain} at {self.rpc_url}")
        return self

    def call(self, method: str, params=None):
        if self.session is None:
            raise RuntimeError(f"{self.network_name}: ChainClient is not connected")

        self._request_id += 1
        payload = {
            'jsonrpc': '2.0',
            'id': self._request_id,
            'method': method,
            'params': params or [],
        }
        response = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        body = response.json()

        error = body.get('error')
        if error:
            message = error.get('message') if isinstance(error, dict) else error
            raise MetricFetchError(self.network_name, f"{method} returned error: {message}")
        return body.get('result')

    def solution_range(self) -> int:
        raw = self.call('state_getStorage', [SOLUTION_RANGES_STORAGE_KEY])
        try:
            return decode_solution_range(raw)
        except ValueError as e:
            raise MetricFetchError(self.network_name, str(e))

    def space_pledged(self) -> int:
        return compute_space_pledged(self.solution_range())

    def close(self):
        if self.session:
            self.session.close()
            self.session = None

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc, tb):
        self.close()


def fetch_space_pledged_http(api_url: str, network_name: str,
                             timeout: float = RPC_TIMEOUT) -> SpacePledged:
    """GET the telemetry API and read its ``spacePledged`` field."""
    response = requests.get(api_url, timeout=timeout)
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict) or data.get('spacePledged') is None:
        raise MetricFetchError(network_name, f"No spacePledged in response from {api_url}")
    return data['spacePledged']


def fetch_space_pledged(network: Network, source: str = METRIC_SOURCE_CHAIN,
                        api_url: str = TELEMETRY_API_URL) -> SpacePledged:
    """Space pledged for one network from the configured source."""
    logger.info(f"Fetching space pledged data for {network.name} ({source})")
    try:
        if source == METRIC_SOURCE_CHAIN:
            with ChainClient(network.resolved_rpc_url(), network.name) as client:
                value = client.space_pledged()
        elif source == METRIC_SOURCE_HTTP:
            value = fetch_space_pledged_http(api_url, network.name)
        else:
            raise ValueError(f"Unknown metric source '{source}'")
    except Exception as e:
        logger.error(f"Error fetching space pledged data for {network.name}: {e}")
        raise

    logger.info(f"{network.name} space pledged data: {value}")
    return value
