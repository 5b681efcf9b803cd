"""
Vue School Video Downloader

Logs in to vueschool.io, walks the configured courses and, for every lesson,
captures the player's stream URLs, downloads them and merges them into one
file:

    <downloadPath>/<course>/<n>. <chapter>/<m>. <lesson>.mp4
"""
import os
import time

import requests
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import WebDriverWait
from selenium.common.exceptions import TimeoutException, WebDriverException

from browser_manager import BrowserManager
from download import DownloadManager, DownloadError
from remux import merge_files, RemuxError
from stream_capture import StreamCapture, CaptureError
from url_utils import VUESCHOOL_LOGIN_URL, sanitize_title, lesson_filename, chapter_dirname

# Import logger
import logger
log = logger

# Errors that end one lesson but leave the browser session usable
LESSON_ERRORS = (CaptureError, DownloadError, RemuxError, WebDriverException, requests.RequestException, OSError)


class VideoDownloader:
    """
    Main class for downloading Vue School courses.
    Handles authentication, course enumeration and the per-lesson
    capture -> download -> merge pipeline.
    """

    def __init__(self, email, password, download_path, headless=True, element_timeout=30,
                 playback_timeout=120, poll_interval=1.0, skip_existing=True, concurrent_downloads=False):
        """
        Initialize the downloader with user credentials.

        Args:
            email (str): Vue School account email
            password (str): Vue School account password
            download_path (str): Root directory for downloaded courses
            headless (bool): Whether to run the browser in headless mode
            element_timeout (float): Seconds to wait for page elements
            playback_timeout (float): Seconds to wait for playback to start
            poll_interval (float): Seconds between playback progress samples
            skip_existing (bool): Skip lessons whose merged file already exists
            concurrent_downloads (bool): Fetch a lesson's audio and video in parallel
        """
        self.login_url = VUESCHOOL_LOGIN_URL
        self.email = email
        self.password = password
        self.download_path = download_path
        self.element_timeout = element_timeout
        self.skip_existing = skip_existing

        self.browser_manager = BrowserManager(headless=headless, default_timeout=element_timeout)
        self.driver = self.browser_manager.initialize()

        if not self.driver:
            raise Exception("Failed to initialize chrome browser")

        self.download_manager = DownloadManager(concurrent=concurrent_downloads)
        self.stream_capture = StreamCapture(
            self.browser_manager,
            element_timeout=element_timeout,
            playback_timeout=playback_timeout,
            poll_interval=poll_interval,
        )

    def login(self):
        """
        Log in to Vue School and copy the session cookies to the download session.

        Returns:
            bool: True if login successful, False otherwise
        """
        try:
            log.info(f"Logging in as: {self.email}")
            self.browser_manager.goto(self.login_url)

            email_field = self.browser_manager.wait_for_element(By.CSS_SELECTOR, 'input[tabindex="1"]')
            if not email_field:
                raise Exception("Email field not found")
            email_field.clear()
            email_field.send_keys(self.email)

            password_field = self.browser_manager.wait_for_element(By.CSS_SELECTOR, 'input[tabindex="2"]')
            if not password_field:
                raise Exception("Password field not found")
            password_field.clear()
            password_field.send_keys(self.password)

            login_button = self.browser_manager.wait_for_element(
                By.CSS_SELECTOR, 'button[tabindex="3"]', condition="clickable"
            )
            if not login_button:
                raise Exception("Login button not found")
            self.browser_manager.click_element(login_button)

            log.info("Waiting for login to complete")
            try:
                WebDriverWait(self.driver, self.element_timeout).until(
                    lambda _: "/login" not in self.browser_manager.current_url
                )
            except TimeoutException:
                log.error("Login failed: still on login page, check the credentials")
                return False

            self.download_manager.transfer_cookies(self.browser_manager.get_cookies())
            log.info("Login successful")
            return True

        except Exception as e:
            log.error(f"Login failed: {str(e)}", exc_info=True)
            return False

    def get_chapters(self, course_url):
        """
        Read the course title and its chapters and lessons from a course page.

        Args:
            course_url (str): Course entry URL

        Returns:
            tuple: (course_title, chapters) where chapters is a list of
                   {'title': str, 'lessons': [{'title': str, 'url': str}, ...]}

        Raises:
            TimeoutException: If the course page never shows its title
        """
        self.browser_manager.goto(course_url)
        heading = self.browser_manager.require_element(By.CSS_SELECTOR, "h1[title]")
        course_title = sanitize_title(heading.get_attribute("textContent"))
        log.info(f'Downloading course: "{course_title}"')

        chapters = []
        for i, chapter_element in enumerate(self.driver.find_elements(By.CSS_SELECTOR, '[class="chapter"]'), 1):
            title_elements = chapter_element.find_elements(By.CSS_SELECTOR, "h2[title]")
            if title_elements:
                chapter_title = sanitize_title(title_elements[0].get_attribute("textContent"))
            else:
                log.warning("No h2 with title attribute found in this chapter.")
                chapter_title = ""
            if not chapter_title:
                chapter_title = f"Chapter {i}"

            lessons = []
            for j, anchor in enumerate(chapter_element.find_elements(By.CSS_SELECTOR, 'a[class="title"]'), 1):
                lessons.append({
                    'title': sanitize_title(anchor.get_attribute("textContent")) or f"Lesson {j}",
                    'url': anchor.get_attribute("href"),
                })

            log.debug(f"Found chapter '{chapter_title}' with {len(lessons)} lessons")
            chapters.append({'title': chapter_title, 'lessons': lessons})

        log.info(f"Found {len(chapters)} chapters in course '{course_title}'")
        return course_title, chapters

    def lesson_output_path(self, course_title, chapter_index, chapter, lesson_index, lesson):
        """Return (chapter directory, merged file path) for a lesson."""
        save_path = os.path.join(
            self.download_path, course_title, chapter_dirname(chapter_index, chapter['title'])
        )
        return save_path, os.path.join(save_path, lesson_filename(lesson_index, lesson['title']))

    def download_lesson(self, course_title, chapter_index, chapter, lesson_index, lesson):
        """
        Capture, download and merge one lesson.

        Returns:
            str: Path of the merged lesson file
        """
        save_path, output_path = self.lesson_output_path(
            course_title, chapter_index, chapter, lesson_index, lesson
        )

        urls = self.stream_capture.capture(lesson['url'])

        log.info(f"Downloading lesson: {lesson['title']}")
        filenames = self.download_manager.download_pair(urls, save_path)
        audio_path, video_path = self.download_manager.order_by_role(filenames, save_path)

        return merge_files(audio_path, video_path, output_path)

    def download_course(self, course_url):
        """
        Download every lesson of a course, one at a time.

        A failing lesson is logged and skipped.

        Returns:
            tuple: (succeeded, failed) lesson counts
        """
        course_title, chapters = self.get_chapters(course_url)
        succeeded = failed = 0

        for chapter_index, chapter in enumerate(chapters, 1):
            log.info(f"Chapter: {chapter['title']}")

            for lesson_index, lesson in enumerate(chapter['lessons'], 1):
                _, output_path = self.lesson_output_path(
                    course_title, chapter_index, chapter, lesson_index, lesson
                )
                if self.skip_existing and os.path.exists(output_path):
                    log.info(f"Skipping existing lesson: {output_path}")
                    succeeded += 1
                    continue

                try:
                    self.download_lesson(course_title, chapter_index, chapter, lesson_index, lesson)
                    succeeded += 1
                except LESSON_ERRORS as e:
                    failed += 1
                    log.error(
                        f"Failed lesson '{lesson['title']}' ({lesson_index}) in chapter "
                        f"'{chapter['title']}' ({chapter_index}) of course '{course_title}': {e}",
                        exc_info=True
                    )

        return succeeded, failed

    def download_all_courses(self, courses):
        """
        Download every configured course in order.

        Returns:
            tuple: (succeeded, failed) lesson counts over all courses
        """
        start_time = time.time()
        succeeded = failed = 0

        for course_url in courses:
            try:
                course_succeeded, course_failed = self.download_course(course_url)
            except (WebDriverException, OSError) as e:
                log.error(f"Could not read course {course_url}: {e}", exc_info=True)
                continue
            succeeded += course_succeeded
            failed += course_failed

        elapsed_time = time.time() - start_time
        log.info(f"Finished downloading in {elapsed_time:.2f} seconds: "
                 f"{succeeded} lessons succeeded, {failed} failed")
        return succeeded, failed

    def list_courses(self, courses):
        """
        Log every course's chapters and lessons with their target paths.

        Returns:
            list: (course_title, chapters) for every course that could be read
        """
        listing = []
        for course_url in courses:
            try:
                course_title, chapters = self.get_chapters(course_url)
            except WebDriverException as e:
                log.error(f"Could not read course {course_url}: {e}")
                continue

            for chapter_index, chapter in enumerate(chapters, 1):
                for lesson_index, lesson in enumerate(chapter['lessons'], 1):
                    _, output_path = self.lesson_output_path(
                        course_title, chapter_index, chapter, lesson_index, lesson
                    )
                    log.info(f"{output_path} <- {lesson['url']}")
            listing.append((course_title, chapters))
        return listing

    def close(self):
        """Close the browser."""
        self.browser_manager.close()
