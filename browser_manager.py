"""
Browser Management Module for the Vue School downloader

This module owns the single Chrome session used for a run: initialization,
navigation, element waits, clicks, frame switching and access to the network
events Chrome records in its performance log.
"""
import json
import os
import platform
from selenium import webdriver
from selenium.webdriver.support.ui import WebDriverWait
from selenium.webdriver.support import expected_conditions as EC
from selenium.common.exceptions import TimeoutException, WebDriverException

# Import logger
import logger
log = logger

USER_AGENT = ("Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
              "(KHTML, like Gecko) Chrome/134.0.0.0 Safari/537.36")


class BrowserManager:
    """
    Manages browser initialization and provides common browser interaction methods.

    Only one page is ever driven. While a player iframe is entered, every
    lookup is scoped to that frame until leave_frame() is called.
    """

    def __init__(self, headless=True, user_data_dir=None, default_timeout=30, page_load_timeout=60):
        """
        Initialize the browser manager.

        Args:
            headless (bool): Whether to run browser in headless mode
            user_data_dir (str, optional): Path to user data directory for Chrome profile
            default_timeout (float): Seconds to wait for elements when no timeout is given
            page_load_timeout (float): Seconds a navigation may take before it fails
        """
        self.driver = None
        self.headless = headless
        self.user_data_dir = user_data_dir
        self.default_timeout = default_timeout
        self.page_load_timeout = page_load_timeout
        self.in_frame = False

    def initialize(self):
        """
        Initialize the browser with appropriate settings.

        Returns:
            webdriver.Chrome: Initialized WebDriver, or None if every method failed
        """
        options = self._configure_chrome_options()
        self.driver = self._initialize_chrome_driver(options)

        if self.driver:
            self.driver.set_window_size(800, 600)
            self.driver.set_page_load_timeout(self.page_load_timeout)

        return self.driver

    def _configure_chrome_options(self):
        """
        Configure Chrome options for video playback and network logging.

        Returns:
            webdriver.ChromeOptions: Configured options
        """
        chrome_options = webdriver.ChromeOptions()

        chrome_options.add_argument("--disable-notifications")
        chrome_options.add_argument("--disable-popup-blocking")
        chrome_options.add_argument("--disable-infobars")
        chrome_options.add_argument("--disable-extensions")
        chrome_options.add_argument("--no-sandbox")
        chrome_options.add_argument("--disable-dev-shm-usage")
        chrome_options.add_argument("--autoplay-policy=no-user-gesture-required")
        chrome_options.add_argument("--mute-audio")

        if self.headless:
            chrome_options.add_argument("--headless=new")

        if self.user_data_dir:
            chrome_options.add_argument(f"--user-data-dir={self.user_data_dir}")

        chrome_options.add_argument(f"--user-agent={USER_AGENT}")

        # Network requests are read back from the performance log
        chrome_options.set_capability("goog:loggingPrefs", {"performance": "ALL"})

        return chrome_options

    def _initialize_chrome_driver(self, options):
        """
        Initialize Chrome driver with multiple fallback methods.

        Args:
            options (webdriver.ChromeOptions): Chrome options

        Returns:
            webdriver.Chrome: Chrome WebDriver instance or None if initialization fails
        """
        driver = None

        # Method 1: Try system Chrome
        try:
            log.debug("Attempting to initialize Chrome driver with system Chrome")
            driver = webdriver.Chrome(options=options)
            log.info("Successfully initialized Chrome driver with system Chrome")
            return driver
        except Exception as e:
            log.warning(f"Failed to create Chrome driver with default settings: {e}")

        # Method 2: Try using ChromeDriverManager
        try:
            log.debug("Attempting to initialize Chrome driver with ChromeDriverManager")
            from selenium.webdriver.chrome.service import Service as ChromeService
            from webdriver_manager.chrome import ChromeDriverManager

            driver_path = ChromeDriverManager().install()

            # Some releases point at the notices file instead of the executable
            if "THIRD_PARTY_NOTICES" in driver_path:
                driver_dir = os.path.dirname(driver_path)
                for file in os.listdir(driver_dir):
                    if file.startswith("chromedriver") and not file.endswith(".zip") and not file.endswith(".md"):
                        driver_path = os.path.join(driver_dir, file)
                        break

            service = ChromeService(executable_path=driver_path)
            driver = webdriver.Chrome(service=service, options=options)
            log.info("Successfully initialized Chrome driver with ChromeDriverManager")
            return driver
        except Exception as e:
            log.warning(f"Failed to create Chrome driver with ChromeDriverManager: {e}")

        # Method 3: Try standard Chrome path by OS
        try:
            log.debug("Attempting to initialize Chrome driver with standard OS path")
            from selenium.webdriver.chrome.service import Service as ChromeService

            if platform.system() == "Darwin":  # macOS
                driver_path = "/usr/local/bin/chromedriver"
            elif platform.system() == "Linux":
                driver_path = "/usr/bin/chromedriver"
            else:  # Windows
                driver_path = "C:\\Program Files\\Google\\Chrome\\Application\\chromedriver.exe"

            service = ChromeService(executable_path=driver_path)
            driver = webdriver.Chrome(service=service, options=options)
            log.info("Successfully initialized Chrome driver with standard OS path")
            return driver
        except Exception as e:
            log.error(f"All Chrome driver initialization methods failed: {e}", exc_info=True)
            return None

    def goto(self, url):
        """Navigate the page to a URL, leaving any entered frame first."""
        self.leave_frame()
        log.debug(f"Navigating to {url}")
        self.driver.get(url)

    def _condition(self, by, value, condition):
        if condition == "visible":
            return EC.visibility_of_element_located((by, value))
        elif condition == "clickable":
            return EC.element_to_be_clickable((by, value))
        return EC.presence_of_element_located((by, value))

    def wait_for_element(self, by, value, timeout=None, condition="presence"):
        """
        Wait for an element to be available in the DOM.

        Args:
            by (selenium.webdriver.common.by.By): The method to locate the element
            value (str): The locator value
            timeout (float, optional): Maximum time to wait (seconds)
            condition (str): Type of wait condition: "presence", "visible", or "clickable"

        Returns:
            WebElement: The element if found, None otherwise
        """
        try:
            return self.require_element(by, value, timeout=timeout, condition=condition)
        except TimeoutException:
            log.warning(f"Timeout waiting for element: {value} (condition: {condition})")
            return None
        except WebDriverException as e:
            log.warning(f"Error waiting for element {value}: {e}")
            return None

    def require_element(self, by, value, timeout=None, condition="presence"):
        """
        Wait for an element and raise if it never shows up.

        Raises:
            TimeoutException: If the element is not found within the timeout
        """
        if timeout is None:
            timeout = self.default_timeout
        wait = WebDriverWait(self.driver, timeout)
        return wait.until(
            self._condition(by, value, condition),
            message=f"Timed out after {timeout}s waiting for {value} ({condition})"
        )

    def click(self, by, value, timeout=None):
        """
        Wait until an element is clickable and click it through JavaScript,
        which is not blocked by overlays such as the player's control bar.

        Raises:
            TimeoutException: If the element never becomes clickable
        """
        element = self.require_element(by, value, timeout=timeout, condition="clickable")
        self.click_element(element)
        return element

    def click_element(self, element):
        """Click an element handle through JavaScript."""
        self.driver.execute_script("arguments[0].click();", element)

    def enter_frame(self, iframe_element):
        """Switch lookups into the content frame of an iframe element."""
        self.driver.switch_to.frame(iframe_element)
        self.in_frame = True

    def leave_frame(self):
        """Switch lookups back to the top-level page."""
        if self.in_frame:
            self.driver.switch_to.default_content()
            self.in_frame = False

    def get_network_events(self):
        """
        Drain Chrome's performance log.

        Each call returns only the entries recorded since the previous call.

        Returns:
            list: DevTools messages as dicts with "method" and "params" keys
        """
        events = []
        for entry in self.driver.get_log("performance"):
            try:
                message = json.loads(entry["message"])["message"]
            except (KeyError, TypeError, ValueError):
                continue
            events.append(message)
        return events

    def get_cookies(self):
        """Return the cookies of the current browser session."""
        return self.driver.get_cookies()

    @property
    def current_url(self):
        """URL of the top-level page."""
        return self.driver.current_url

    def close(self):
        """Close the browser."""
        if self.driver:
            try:
                self.driver.quit()
                log.debug("Browser closed successfully")
            except Exception as e:
                log.warning(f"Error closing browser: {e}")
            self.driver = None
