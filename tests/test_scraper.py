"""Tests for scraper.py — dashboard navigation and field extraction."""

from unittest.mock import MagicMock, call, patch

import pytest
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By

from conftest import POPULATED_PAGE, make_driver
from config import (
    CHROME_ARGUMENTS,
    DETAILS_TOGGLE_XPATH,
    FIELD_LOCATORS,
    PAGE_LOAD_TIMEOUT,
    SERVERLESS_TIMINGS,
    ScrapeTimings,
)
from models import StatsSnapshot

FAST = ScrapeTimings(settle_delay=0, click_attempts=3, click_retry_delay=2.0, post_click_delay=0)


# ---------------------------------------------------------------------------
# TestParseCount
# ---------------------------------------------------------------------------

class TestParseCount:

    @pytest.mark.parametrize("text, expected", [
        ("42", 42),
        ("  17 \n", 17),
        ("1,204", 1204),
        ("12 nodes", 12),
        ("0", 0),
    ])
    def test_parses_leading_integer(self, text, expected):
        from scraper import parse_count
        assert parse_count(text) == expected

    @pytest.mark.parametrize("text", [None, "", "   ", "n/a", "-"])
    def test_returns_none_for_non_numeric(self, text):
        from scraper import parse_count
        assert parse_count(text) is None


# ---------------------------------------------------------------------------
# TestReadField
# ---------------------------------------------------------------------------

class TestReadField:

    def test_css_lookup(self):
        from scraper import read_field
        driver = make_driver({"node_count": "99"})
        kind, locator = FIELD_LOCATORS["node_count"]

        assert read_field(driver, kind, locator) == 99
        driver.find_elements.assert_called_once_with(By.CSS_SELECTOR, locator)

    def test_xpath_lookup(self):
        from scraper import read_field
        driver = make_driver({"linux_node_count": "7"})
        kind, locator = FIELD_LOCATORS["linux_node_count"]

        assert read_field(driver, kind, locator) == 7
        driver.find_elements.assert_called_once_with(By.XPATH, locator)

    def test_missing_element_is_none(self):
        from scraper import read_field
        kind, locator = FIELD_LOCATORS["macos_node_count"]
        assert read_field(make_driver({}), kind, locator) is None

    def test_webdriver_error_is_none(self):
        from scraper import read_field
        driver = MagicMock()
        driver.find_elements.side_effect = WebDriverException("stale")
        kind, locator = FIELD_LOCATORS["node_count"]

        assert read_field(driver, kind, locator) is None


# ---------------------------------------------------------------------------
# TestClickDetailsToggle
# ---------------------------------------------------------------------------

class TestClickDetailsToggle:

    @patch("scraper.time.sleep")
    def test_clicks_on_first_attempt(self, mock_sleep):
        from scraper import click_details_toggle
        driver = make_driver({})

        assert click_details_toggle(driver, "mainnet", FAST) is True
        driver.execute_script.assert_called_once()
        mock_sleep.assert_not_called()

    @patch("scraper.time.sleep")
    def test_gives_up_after_configured_attempts(self, mock_sleep):
        from scraper import click_details_toggle
        driver = make_driver({}, toggle_present=False)

        assert click_details_toggle(driver, "mainnet", FAST) is False
        toggle_lookups = [
            c for c in driver.find_elements.call_args_list
            if c == call(By.XPATH, DETAILS_TOGGLE_XPATH)
        ]
        assert len(toggle_lookups) == 3
        assert mock_sleep.call_args_list == [call(2.0), call(2.0)]

    @patch("scraper.time.sleep")
    def test_recovers_after_click_error(self, mock_sleep):
        from scraper import click_details_toggle
        driver = make_driver({})
        driver.execute_script.side_effect = [WebDriverException("not clickable"), None]

        assert click_details_toggle(driver, "chronos", FAST) is True
        assert driver.execute_script.call_count == 2
        mock_sleep.assert_called_once_with(2.0)


# ---------------------------------------------------------------------------
# TestScrapePage
# ---------------------------------------------------------------------------

class TestScrapePage:

    @patch("scraper.time.sleep")
    @patch("scraper.WebDriverWait")
    def test_fully_populated_page(self, mock_wait, mock_sleep, populated_driver):
        from scraper import scrape_page

        stats = scrape_page(populated_driver, "https://example/#list/0x1", "mainnet", FAST)

        populated_driver.get.assert_called_once_with("https://example/#list/0x1")
        assert stats == StatsSnapshot(
            node_count=1204,
            subspace_node_count=800,
            space_acres_node_count=404,
            linux_node_count=950,
            windows_node_count=200,
            macos_node_count=54,
        )

    @patch("scraper.time.sleep")
    @patch("scraper.WebDriverWait")
    def test_missing_marker_returns_empty_snapshot(self, mock_wait, mock_sleep, empty_driver):
        from scraper import scrape_page
        mock_wait.return_value.until.side_effect = TimeoutException()

        stats = scrape_page(empty_driver, "https://example/#list/0x1", "chronos", FAST)

        assert isinstance(stats, StatsSnapshot)
        assert stats.is_empty()

    @patch("scraper.time.sleep")
    @patch("scraper.WebDriverWait")
    def test_partial_page_keeps_found_fields(self, mock_wait, mock_sleep):
        from scraper import scrape_page
        driver = make_driver({"node_count": "31", "windows_node_count": "4"})

        stats = scrape_page(driver, "https://example", "chronos", FAST)

        assert stats.node_count == 31
        assert stats.windows_node_count == 4
        assert stats.linux_node_count is None

    @patch("scraper.time.sleep")
    @patch("scraper.WebDriverWait")
    def test_navigation_failure_propagates(self, mock_wait, mock_sleep):
        from scraper import scrape_page
        driver = make_driver(POPULATED_PAGE)
        driver.get.side_effect = TimeoutException("page load timed out")

        with pytest.raises(TimeoutException):
            scrape_page(driver, "https://example", "mainnet", FAST)
        driver.find_elements.assert_not_called()

    @patch("scraper.time.sleep")
    @patch("scraper.WebDriverWait")
    def test_waits_use_timings(self, mock_wait, mock_sleep, populated_driver):
        from scraper import scrape_page

        scrape_page(populated_driver, "https://example", "gemini-3h", SERVERLESS_TIMINGS)

        assert mock_sleep.call_args_list == [call(5.0), call(2.0)]

    @patch("scraper.time.sleep")
    @patch("scraper.WebDriverWait")
    def test_saves_debug_screenshot(self, mock_wait, mock_sleep, populated_driver, tmp_path):
        from scraper import scrape_page

        scrape_page(populated_driver, "https://example", "mainnet", FAST, screenshot_dir=str(tmp_path))

        populated_driver.save_screenshot.assert_called_once_with(str(tmp_path / "mainnet_debug.png"))

    @patch("scraper.time.sleep")
    @patch("scraper.WebDriverWait")
    def test_console_log_unavailable_is_ignored(self, mock_wait, mock_sleep, populated_driver):
        from scraper import scrape_page
        populated_driver.get_log.side_effect = WebDriverException("log type not supported")

        stats = scrape_page(populated_driver, "https://example", "mainnet", FAST)

        assert stats.node_count == 1204


# ---------------------------------------------------------------------------
# TestBrowser
# ---------------------------------------------------------------------------

class TestBrowser:

    @patch("scraper.UserAgent")
    @patch("scraper.ChromeDriverManager")
    @patch("scraper.Service")
    @patch("scraper.webdriver")
    def test_new_page_uses_driver_manager(self, mock_webdriver, mock_service, mock_manager, mock_ua):
        from scraper import Browser
        mock_manager.return_value.install.return_value = "/tmp/chromedriver"

        browser = Browser()
        page = browser.new_page()

        mock_service.assert_called_once_with("/tmp/chromedriver")
        assert page is mock_webdriver.Chrome.return_value
        page.set_page_load_timeout.assert_called_once_with(PAGE_LOAD_TIMEOUT)
        options = mock_webdriver.Chrome.call_args.kwargs["options"]
        for argument in CHROME_ARGUMENTS:
            assert argument in options.arguments

    @patch("scraper.UserAgent")
    @patch("scraper.ChromeDriverManager")
    @patch("scraper.Service")
    @patch("scraper.webdriver")
    def test_explicit_binaries(self, mock_webdriver, mock_service, mock_manager, mock_ua):
        from scraper import Browser

        browser = Browser(chrome_binary_path="/opt/chrome", chromedriver_path="/opt/chromedriver")
        browser.new_page()

        mock_service.assert_called_once_with("/opt/chromedriver")
        mock_manager.assert_not_called()
        options = mock_webdriver.Chrome.call_args.kwargs["options"]
        assert options.binary_location == "/opt/chrome"

    @patch("scraper.UserAgent")
    @patch("scraper.ChromeDriverManager")
    @patch("scraper.Service")
    @patch("scraper.webdriver")
    def test_close_quits_every_page_once(self, mock_webdriver, mock_service, mock_manager, mock_ua):
        from scraper import Browser
        first, second = MagicMock(), MagicMock()
        mock_webdriver.Chrome.side_effect = [first, second]

        with Browser() as browser:
            browser.new_page()
            browser.new_page()
        browser.close()

        first.quit.assert_called_once()
        second.quit.assert_called_once()
        assert browser.closed

    @patch("scraper.UserAgent")
    @patch("scraper.ChromeDriverManager")
    @patch("scraper.Service")
    @patch("scraper.webdriver")
    def test_launch_failure_raises(self, mock_webdriver, mock_service, mock_manager, mock_ua):
        from scraper import Browser
        mock_webdriver.Chrome.side_effect = WebDriverException("chrome not reachable")

        with pytest.raises(WebDriverException):
            Browser().new_page()

    @patch("scraper.UserAgent")
    def test_new_page_after_close_raises(self, mock_ua):
        from scraper import Browser
        browser = Browser()
        browser.close()

        with pytest.raises(RuntimeError):
            browser.new_page()
