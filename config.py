"""Central configuration: dashboard selectors, networks, timings and settings."""

import os
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel

from exceptions import ConfigError

# ---------------------------------------------------------------------------
# Telemetry dashboard
# ---------------------------------------------------------------------------

TELEMETRY_BASE_URL = "https://telemetry.subspace.network"
TELEMETRY_API_URL = f"{TELEMETRY_BASE_URL}/api"

PAGE_LOAD_TIMEOUT = 60
MARKER_TIMEOUT = 10

# Present once the chain list has rendered
MARKER_SELECTOR = ".Chains-chain-selected"

# Toggle that reveals the node details panel
DETAILS_TOGGLE_XPATH = '//*[@id="root"]/div/div[2]/div[1]/div[6]/div[3]'

CSS = "css"
XPATH = "xpath"

_CLIENT_TABLE = (
    "#root > div > div.Chain > div.Chain-content-container > div > div"
    " > div:nth-child(2) > table > tbody"
)
_OS_TABLE = '//*[@id="root"]/div/div[2]/div[2]/div/div/div[3]/table/tbody'

# Snapshot field -> (lookup kind, locator), in scrape order
FIELD_LOCATORS: Dict[str, Tuple[str, str]] = {
    "node_count": (CSS, ".Chains-chain-selected .Chains-node-count"),
    "subspace_node_count": (CSS, f"{_CLIENT_TABLE} > tr:nth-child(1) > td.Stats-count"),
    "space_acres_node_count": (CSS, f"{_CLIENT_TABLE} > tr:nth-child(2) > td.Stats-count"),
    "linux_node_count": (XPATH, f"{_OS_TABLE}/tr[1]/td[2]"),
    "windows_node_count": (XPATH, f"{_OS_TABLE}/tr[2]/td[2]"),
    "macos_node_count": (XPATH, f"{_OS_TABLE}/tr[3]/td[2]"),
}

CHROME_ARGUMENTS = [
    "--headless",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--dns-prefetch-disable",
    "--window-size=1920,1080",
]

# ---------------------------------------------------------------------------
# Chain RPC
# ---------------------------------------------------------------------------

RPC_TIMEOUT = 30

# twox128("Subspace") ++ twox128("SolutionRanges")
SOLUTION_RANGES_STORAGE_KEY = (
    "0x3e1e8e35b440038ed6e6cf14c413a102"
    "46dc9c4b31fff24eff0b1be61bfe8f12"
)
SLOT_PROBABILITY = (1, 6)
MAX_PIECES_IN_SECTOR = 1000
PIECE_SIZE = 1024 * 1024
MAX_U64 = 2 ** 64 - 1

METRIC_SOURCE_CHAIN = "chain"
METRIC_SOURCE_HTTP = "http"
METRIC_SOURCES = (METRIC_SOURCE_CHAIN, METRIC_SOURCE_HTTP)

# ---------------------------------------------------------------------------
# Google Sheets
# ---------------------------------------------------------------------------

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
VALUE_INPUT_OPTION = "USER_ENTERED"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

# ---------------------------------------------------------------------------
# Retry / scheduling
# ---------------------------------------------------------------------------

MAX_RETRIES = 3
SCHEDULE = "@hourly"


class ScrapeTimings(BaseModel):
    """Fixed waits applied while scraping a dashboard page (seconds)."""
    settle_delay: float = 10.0
    click_attempts: int = 3
    click_retry_delay: float = 2.0
    post_click_delay: float = 5.0


LOCAL_TIMINGS = ScrapeTimings()
SERVERLESS_TIMINGS = ScrapeTimings(settle_delay=5.0, post_click_delay=2.0)


class Network(BaseModel):
    """A telemetry network tracked in its own sheet range."""
    name: str
    chain_id: str
    telemetry_url: str
    sheet_range: str
    rpc_url: str
    rpc_env: Optional[str] = None

    def resolved_rpc_url(self) -> str:
        """RPC endpoint, honouring the per-network environment override."""
        if self.rpc_env:
            return os.getenv(self.rpc_env, self.rpc_url)
        return self.rpc_url


NETWORKS: Dict[str, Network] = {
    "chronos": Network(
        name="chronos",
        chain_id="0x91912b429ce7bf2975440a0920b46a892fddeeaed6ccc11c93f2d57ad1bd69ab",
        telemetry_url=f"{TELEMETRY_BASE_URL}/#list/0x91912b429ce7bf2975440a0920b46a892fddeeaed6ccc11c93f2d57ad1bd69ab",
        sheet_range="Chronos",
        rpc_url="https://rpc.chronos.autonomys.xyz/ws",
        rpc_env="CHRONOS_RPC_URL",
    ),
    "mainnet": Network(
        name="mainnet",
        chain_id="0x66455a580aabff303720aa83adbe6c44502922251c03ba73686d5245da9e21bd",
        telemetry_url=f"{TELEMETRY_BASE_URL}/#list/0x66455a580aabff303720aa83adbe6c44502922251c03ba73686d5245da9e21bd",
        sheet_range="mainnet",
        rpc_url="https://rpc-0.mainnet.subspace.network/ws",
        rpc_env="MAINNET_RPC_URL",
    ),
    "gemini-3h": Network(
        name="gemini-3h",
        chain_id="0x0c121c75f4ef450f40619e1fca9d1e8e7fbabc42c895bc4790801e85d5a91c34",
        telemetry_url=f"{TELEMETRY_BASE_URL}/#/0x0c121c75f4ef450f40619e1fca9d1e8e7fbabc42c895bc4790801e85d5a91c34",
        sheet_range="Sheet1",
        rpc_url="https://rpc-0.gemini-3h.subspace.network/ws",
        rpc_env="GEMINI_3H_RPC_URL",
    ),
}

BATCH_NETWORKS = ["chronos", "mainnet"]
SINGLE_NETWORK = "gemini-3h"


def get_network(name: str) -> Network:
    """Look up a network by name."""
    try:
        return NETWORKS[name]
    except KeyError:
        raise ValueError(f"Unknown network '{name}'. Known networks: {', '.join(NETWORKS)}")


class Settings(BaseModel):
    """Values read from the process environment."""
    client_email: str
    private_key: str
    spreadsheet_id: str
    telemetry_api_url: str = TELEMETRY_API_URL
    chrome_binary_path: Optional[str] = None
    chromedriver_path: Optional[str] = None
    log_level: str = "INFO"

    def service_account_info(self) -> dict:
        """Service-account mapping accepted by google-auth."""
        return {
            "type": "service_account",
            "client_email": self.client_email,
            "private_key": self.private_key,
            "token_uri": GOOGLE_TOKEN_URI,
        }


def _required(name):
    value = os.getenv(name)
    if not value:
        raise ConfigError(name)
    return value


def load_settings() -> Settings:
    """Load settings from the environment (and a .env file if present).

    Raises:
        ConfigError: If a required variable is missing.
    """
    load_dotenv()

    # Keys pasted into env vars carry literal "\n" sequences
    private_key = _required("GOOGLE_CLOUD_PRIVATE_KEY").replace("\\n", "\n")

    return Settings(
        client_email=_required("GOOGLE_CLOUD_CLIENT_EMAIL"),
        private_key=private_key,
        spreadsheet_id=_required("GOOGLE_SHEET_ID"),
        telemetry_api_url=os.getenv("TELEMETRY_API_URL", TELEMETRY_API_URL),
        chrome_binary_path=os.getenv("CHROME_BINARY_PATH") or None,
        chromedriver_path=os.getenv("CHROMEDRIVER_PATH") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
