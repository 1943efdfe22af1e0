import os
import re
import time
import logging
from typing import Optional
from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import WebDriverWait
from selenium.webdriver.support import expected_conditions as EC
from selenium.common.exceptions import TimeoutException, WebDriverException
from webdriver_manager.chrome import ChromeDriverManager
from selenium.webdriver.chrome.service import Service
from fake_useragent import UserAgent

from config import (
    CHROME_ARGUMENTS,
    CSS,
    DETAILS_TOGGLE_XPATH,
    FIELD_LOCATORS,
    LOCAL_TIMINGS,
    MARKER_SELECTOR,
    MARKER_TIMEOUT,
    PAGE_LOAD_TIMEOUT,
    ScrapeTimings,
)
from models import StatsSnapshot

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r'^[+-]?\d[\d,]*')


class Browser:
    """
    Headless Chrome for one run. Every page handle is its own WebDriver
    session so pages can be driven from separate threads.
    """

    def __init__(self, chrome_binary_path=None, chromedriver_path=None):
        self.chrome_binary_path = chrome_binary_path
        self.chromedriver_path = chromedriver_path
        self.ua = UserAgent()
        self.pages = []
        self.closed = False

    def _setup_selenium_driver(self):
        """Setup Selenium Chrome driver."""
        chrome_options = Options()
        for argument in CHROME_ARGUMENTS:
            chrome_options.add_argument(argument)
        chrome_options.add_argument(f'--user-agent={self.ua.random}')
        # Lets get_log('browser') return the page console
        chrome_options.set_capability('goog:loggingPrefs', {'browser': 'ALL'})
        if self.chrome_binary_path:
            chrome_options.binary_location = self.chrome_binary_path

        try:
            if self.chromedriver_path:
                service = Service(self.chromedriver_path)
            else:
                service = Service(ChromeDriverManager().install())
            driver = webdriver.Chrome(service=service, options=chrome_options)
        except Exception as e:
            logger.error(f"Failed to setup Selenium driver: {e}")
            raise

        driver.set_page_load_timeout(PAGE_LOAD_TIMEOUT)
        return driver

    def new_page(self):
        """Open a new page handle."""
        if self.closed:
            raise RuntimeError("Browser already closed")
        driver = self._setup_selenium_driver()
        self.pages.append(driver)
        return driver

    def close(self):
        """Clean up resources."""
        if self.closed:
            return
        self.closed = True
        logger.info("Closing browser...")
        for driver in self.pages:
            try:
                driver.quit()
            except WebDriverException as e:
                logger.warning(f"Failed to quit Chrome session: {e}")
        self.pages = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def parse_count(text: Optional[str]) -> Optional[int]:
    """Leading integer of a cell's text ("1,204 nodes" -> 1204), or None."""
    if text is None:
        return None
    match = _LEADING_INT.match(text.strip())
    if not match:
        return None
    return int(match.group().replace(',', ''))


def wait_for_marker(driver, network_name: str, timeout: float = MARKER_TIMEOUT) -> bool:
    """Wait for the chain list marker. A timeout is not fatal."""
    try:
        WebDriverWait(driver, timeout).until(
            EC.presence_of_element_located((By.CSS_SELECTOR, MARKER_SELECTOR))
        )
        return True
    except TimeoutException:
        logger.warning(f"{network_name}: Timeout waiting for selector: {MARKER_SELECTOR}")
        return False


def click_details_toggle(driver, network_name: str, timings: ScrapeTimings = LOCAL_TIMINGS) -> bool:
    """Click the node details toggle, retrying a fixed number of times."""
    for attempt in range(timings.click_attempts):
        try:
            elements = driver.find_elements(By.XPATH, DETAILS_TOGGLE_XPATH)
            if elements:
                driver.execute_script("arguments[0].click();", elements[0])
                logger.info(f"{network_name}: Details toggle clicked")
                return True
            logger.warning(f"{network_name}: Click attempt {attempt + 1} failed: element not found")
        except WebDriverException as e:
            logger.warning(f"{network_name}: Click attempt {attempt + 1} failed: {e.msg}")

        if attempt < timings.click_attempts - 1:
            time.sleep(timings.click_retry_delay)

    logger.warning(f"{network_name}: Failed to click the element after {timings.click_attempts} attempts")
    return False


def read_field(driver, kind: str, locator: str) -> Optional[int]:
    """Look up one element by CSS selector or XPath and parse its count."""
    by = By.CSS_SELECTOR if kind == CSS else By.XPATH
    try:
        elements = driver.find_elements(by, locator)
        if not elements:
            return None
        return parse_count(elements[0].get_attribute('textContent'))
    except WebDriverException as e:
        logger.warning(f"Lookup failed for {locator}: {e.msg}")
        return None


def extract_stats(driver, network_name: str) -> StatsSnapshot:
    """Read every snapshot field from the rendered dashboard."""
    values = {}
    for field, (kind, locator) in FIELD_LOCATORS.items():
        value = read_field(driver, kind, locator)
        if value is None:
            logger.warning(f"{network_name}: {field} not found")
        else:
            logger.info(f"{network_name}: {field} = {value}")
        values[field] = value
    return StatsSnapshot(**values)


def save_debug_screenshot(driver, network_name: str, screenshot_dir: str):
    """Take a screenshot for debugging. Failures are only logged."""
    path = os.path.join(screenshot_dir, f"{network_name}_debug.png")
    try:
        os.makedirs(screenshot_dir, exist_ok=True)
        if driver.save_screenshot(path):
            logger.info(f"{network_name}: Saved screenshot to {path}")
            return path
        logger.warning(f"{network_name}: Screenshot could not be written to {path}")
    except (OSError, WebDriverException) as e:
        logger.warning(f"{network_name}: Screenshot failed: {e}")
    return None


def forward_console_logs(driver, network_name: str):
    """Copy the page's console output into our log."""
    try:
        entries = driver.get_log('browser')
    except WebDriverException as e:
        logger.debug(f"{network_name}: Browser console unavailable: {e.msg}")
        return
    for entry in entries:
        logger.info(f"{network_name} Page Console: {entry.get('message')}")


def scrape_page(driver, url: str, network_name: str,
                timings: ScrapeTimings = LOCAL_TIMINGS,
                screenshot_dir: Optional[str] = None) -> StatsSnapshot:
    """
    Load a telemetry dashboard page and scrape its node counts.

    Navigation errors propagate; everything after the page has loaded is
    best effort and missing fields come back as None.
    """
    logger.info(f"Navigating to {network_name} page: {url}")
    try:
        driver.get(url)
    except WebDriverException as e:
        logger.error(f"{network_name}: Navigation failed: {e.msg}")
        raise
    logger.info(f"{network_name}: Initial page load complete")

    if not wait_for_marker(driver, network_name):
        logger.warning(f"{network_name}: Chain selector not found after waiting")

    # Dynamic content keeps arriving over the websocket after load
    time.sleep(timings.settle_delay)
    logger.info(f"{network_name}: Completed initial wait period")

    if screenshot_dir:
        save_debug_screenshot(driver, network_name, screenshot_dir)

    click_details_toggle(driver, network_name, timings)

    time.sleep(timings.post_click_delay)
    logger.info(f"{network_name}: Proceeding to extract stats")

    stats = extract_stats(driver, network_name)
    forward_console_logs(driver, network_name)

    logger.info(f"{network_name} stats extracted: {stats.model_dump()}")
    return stats
