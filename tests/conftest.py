"""
Pytest configuration and fixtures for the Vue School downloader tests.
"""
import pytest
from unittest.mock import MagicMock

import logger

CDN = "https://vod-adaptive-ak.vimeocdn.com/exp=1700000000~acl=%2F~hmac=abc123/5f1c2d3e"


def _request_event(url, method="Network.requestWillBeSent"):
    return {"method": method, "params": {"request": {"url": url}}}


@pytest.fixture
def request_event():
    """Factory for DevTools network messages as returned by BrowserManager.get_network_events."""
    return _request_event


@pytest.fixture
def cdn_base():
    """Base of a Vimeo CDN segment URL."""
    return CDN


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keep tests from writing log files and reset the logger between tests."""
    logger.reset_logger()
    logger.setup_logger(level=logger.DEBUG, log_to_file=False)
    yield
    logger.reset_logger()


@pytest.fixture
def audio_url():
    """Audio segment URL with a range parameter, as requested by the player."""
    return f"{CDN}/v2/range/avf/audio-aaa111.mp4?pathsig=8c953e4f&r=dXMtZWFzdDE&range=0-1999"


@pytest.fixture
def video_url():
    """Video segment URL with a range parameter, as requested by the player."""
    return f"{CDN}/v2/range/avf/video-bbb222.mp4?pathsig=8c953e4f&r=dXMtZWFzdDE&range=0-49999"


@pytest.fixture
def mock_driver():
    """Create a mock Selenium WebDriver."""
    driver = MagicMock()
    driver.get.return_value = None
    driver.execute_script.return_value = None
    driver.find_elements.return_value = []
    driver.get_cookies.return_value = []
    driver.get_log.return_value = []
    driver.current_url = "https://vueschool.io/"
    driver.switch_to = MagicMock()
    return driver


@pytest.fixture
def mock_browser_manager(mock_driver):
    """Create a mock BrowserManager wrapping the mock driver."""
    manager = MagicMock()
    manager.driver = mock_driver
    manager.get_network_events.return_value = []
    return manager
