"""
Stream capture for Vue School lessons.

A lesson page embeds a Vimeo player. The player streams audio and video as
two separate adaptive segments from the Vimeo CDN. StreamCapture drives the
player to 1080p, starts playback and reads the segment requests back from the
browser's network log:

    page loaded -> controls opened -> quality menu -> 1080p (twice)
    -> collector armed -> play -> progress > 0 -> pause -> collector disarmed

The collector is armed only after the quality menu has been used, so requests
made for the default resolution are not picked up, and it is disarmed only
after the progress bar shows that real playback started.
"""
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import WebDriverWait
from selenium.common.exceptions import TimeoutException

from url_utils import VIMEO_PLAYER_BASE, is_stream_request, strip_range_param

import logger
log = logger

PLAYER_IFRAME_SELECTOR = f'iframe[src^="{VIMEO_PLAYER_BASE}"]'
SETTINGS_BUTTON_SELECTOR = "#prefs-control-bar-button"
PLAY_BUTTON_SELECTOR = '[data-play-button="true"]'
PROGRESS_BAR_SELECTOR = '[aria-label="Progress Bar"]'
PROGRESS_ATTRIBUTE = "aria-valuenow"

QUALITY_MENU_LABEL = "Quality"
TARGET_QUALITY_LABEL = "1080p"

REQUEST_EVENT = "Network.requestWillBeSent"
STREAM_COUNT = 2


class CaptureError(Exception):
    """Raised when a lesson's stream URLs cannot be captured."""


class PlaybackTimeoutError(CaptureError):
    """Raised when playback never starts within the allowed time."""


class StreamCollector:
    """
    Collects the segment URLs a single lesson's player requests.

    The collector only accepts requests while armed. It keeps at most
    STREAM_COUNT distinct URLs, stored without their range parameter, and
    closes as soon as it is full.
    """

    def __init__(self, browser_manager, limit=STREAM_COUNT):
        self.browser_manager = browser_manager
        self.limit = limit
        self.urls = []
        self.armed = False
        self.observed = 0

    @property
    def complete(self):
        return len(self.urls) >= self.limit

    def arm(self):
        """Start accepting requests, discarding everything logged before now."""
        self.urls = []
        self.observed = 0
        discarded = self.browser_manager.get_network_events()
        log.debug(f"Collector armed, discarded {len(discarded)} earlier network events")
        self.armed = True

    def disarm(self):
        """Stop accepting requests."""
        if self.armed:
            log.debug(f"Collector disarmed after observing {self.observed} requests")
        self.armed = False

    def handle_request(self, url):
        """
        Offer one request URL to the collector.

        Args:
            url (str): URL of a request the page issued

        Returns:
            bool: True if the URL was added
        """
        if not self.armed or self.complete:
            return False
        if not is_stream_request(url):
            return False

        clean_url = strip_range_param(url)
        if clean_url in self.urls:
            return False

        self.urls.append(clean_url)
        log.debug(f"Captured stream URL {len(self.urls)}/{self.limit}: {clean_url[:100]}...")
        return True

    def collect(self):
        """
        Drain pending network events and offer each request to the collector.

        Every pending event is consumed, whether or not it matches.

        Returns:
            int: Number of URLs added by this call
        """
        if not self.armed:
            return 0

        added = 0
        for event in self.browser_manager.get_network_events():
            if event.get("method") != REQUEST_EVENT:
                continue
            self.observed += 1
            url = event.get("params", {}).get("request", {}).get("url")
            if self.handle_request(url):
                added += 1
        return added


def _numeric(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def wait_for_playback(driver, element, attribute=PROGRESS_ATTRIBUTE, timeout=120, interval=1.0, on_sample=None):
    """
    Wait until a numeric element attribute becomes greater than zero.

    Args:
        driver: WebDriver the element belongs to
        element (WebElement): Element to sample, normally the progress bar
        attribute (str): Attribute holding the numeric value
        timeout (float): Seconds before giving up
        interval (float): Seconds between samples
        on_sample (callable, optional): Called before every sample

    Returns:
        str: The first attribute value greater than zero

    Raises:
        PlaybackTimeoutError: If the value stays at zero for the whole timeout
    """
    def _started(_driver):
        if on_sample is not None:
            on_sample()
        value = element.get_attribute(attribute)
        return value if _numeric(value) > 0 else False

    try:
        return WebDriverWait(driver, timeout, poll_frequency=interval).until(_started)
    except TimeoutException as e:
        raise PlaybackTimeoutError(f"Playback did not start within {timeout}s") from e


def find_control_by_label(browser_manager, label):
    """
    Find the first span whose text contains a label.

    Args:
        browser_manager (BrowserManager): Browser positioned in the player frame
        label (str): Text to look for, e.g. "Quality"

    Returns:
        WebElement: The matching element, or None if the player shows no such control
    """
    elements = browser_manager.driver.find_elements(By.XPATH, f"//span[contains(., '{label}')]")
    return elements[0] if elements else None


class StreamCapture:
    """
    Captures the audio and video segment URLs of one lesson at a time.
    """

    PAGE_LOADED = "page_loaded"
    CONTROLS_OPENED = "controls_opened"
    QUALITY_SELECTED = "quality_selected"
    ARMED = "armed"
    PLAYING = "playing"
    CONFIRMED = "confirmed"
    STOPPED = "stopped"

    def __init__(self, browser_manager, element_timeout=30, playback_timeout=120, poll_interval=1.0):
        """
        Args:
            browser_manager (BrowserManager): Shared browser session
            element_timeout (float): Seconds to wait for each player element
            playback_timeout (float): Seconds to wait for playback to start
            poll_interval (float): Seconds between progress samples
        """
        self.browser_manager = browser_manager
        self.element_timeout = element_timeout
        self.playback_timeout = playback_timeout
        self.poll_interval = poll_interval
        self.state = None

    def _enter(self, state):
        self.state = state
        log.debug(f"Capture state: {state}")

    def _require(self, selector, step, condition="presence"):
        try:
            return self.browser_manager.require_element(
                By.CSS_SELECTOR, selector, timeout=self.element_timeout, condition=condition
            )
        except TimeoutException as e:
            raise CaptureError(f"{step}: element {selector} not found") from e

    def _click(self, selector, step):
        try:
            return self.browser_manager.click(By.CSS_SELECTOR, selector, timeout=self.element_timeout)
        except TimeoutException as e:
            raise CaptureError(f"{step}: element {selector} not clickable") from e

    def _click_label(self, label):
        control = find_control_by_label(self.browser_manager, label)
        if control is None:
            log.warning(f"Player control '{label}' not found, resolution may not be {TARGET_QUALITY_LABEL}")
            return False
        self.browser_manager.click_element(control)
        return True

    def select_quality(self):
        """
        Open the player's settings and pick 1080p.

        Missing menu entries are logged and skipped. The 1080p entry is clicked
        twice because the menu re-renders a confirmation item with the same label.

        Returns:
            bool: True if every menu click found its control
        """
        self._click(SETTINGS_BUTTON_SELECTOR, "Opening player settings")
        self._enter(self.CONTROLS_OPENED)

        found = self._click_label(QUALITY_MENU_LABEL)
        found = self._click_label(TARGET_QUALITY_LABEL) and found
        found = self._click_label(TARGET_QUALITY_LABEL) and found
        self._enter(self.QUALITY_SELECTED)
        return found

    def capture(self, lesson_url):
        """
        Capture the stream URLs of a lesson.

        Args:
            lesson_url (str): Lesson page URL

        Returns:
            list: Two distinct segment URLs in request order

        Raises:
            CaptureError: If a player element is missing, playback never starts
                          or fewer than two stream URLs were seen
        """
        bm = self.browser_manager
        self.state = None

        bm.goto(lesson_url)
        iframe = self._require(PLAYER_IFRAME_SELECTOR, "Loading lesson page")
        self._enter(self.PAGE_LOADED)

        collector = StreamCollector(bm)
        bm.enter_frame(iframe)
        try:
            self.select_quality()

            collector.arm()
            self._enter(self.ARMED)

            self._click(PLAY_BUTTON_SELECTOR, "Starting playback")
            self._enter(self.PLAYING)

            progress_bar = self._require(PROGRESS_BAR_SELECTOR, "Waiting for progress bar")
            wait_for_playback(
                bm.driver,
                progress_bar,
                timeout=self.playback_timeout,
                interval=self.poll_interval,
                on_sample=collector.collect,
            )
            self._enter(self.CONFIRMED)

            self._click(PLAY_BUTTON_SELECTOR, "Pausing playback")
            collector.collect()
            self._enter(self.STOPPED)
        finally:
            collector.disarm()
            bm.leave_frame()

        if not collector.complete:
            raise CaptureError(
                f"Expected {STREAM_COUNT} stream URLs, captured {len(collector.urls)} on {lesson_url}"
            )

        return list(collector.urls)
