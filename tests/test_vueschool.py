"""
Tests for the vueschool.py entry point using mock objects.
"""
import pytest
from unittest.mock import MagicMock

import vueschool
from settings import SettingsError, DEFAULTS


@pytest.fixture
def settings():
    data = dict(DEFAULTS)
    data.update({
        "email": "test@example.com",
        "password": "password123",
        "downloadPath": "downloads",
        "downloadCourses": ["https://vueschool.io/courses/basics"],
    })
    return data


@pytest.fixture
def mocks(monkeypatch, settings):
    """Patch logging setup, settings loading and the downloader class."""
    mock_setup_logger = MagicMock()
    mock_load_settings = MagicMock(return_value=settings)
    mock_downloader_class = MagicMock()
    mock_downloader = mock_downloader_class.return_value
    mock_downloader.login.return_value = True
    mock_downloader.download_all_courses.return_value = (2, 0)

    monkeypatch.setattr(vueschool.logger, 'setup_logger', mock_setup_logger)
    monkeypatch.setattr(vueschool, 'load_settings', mock_load_settings)
    monkeypatch.setattr(vueschool, 'VideoDownloader', mock_downloader_class)

    return {
        "setup_logger": mock_setup_logger,
        "load_settings": mock_load_settings,
        "downloader_class": mock_downloader_class,
        "downloader": mock_downloader,
    }


def test_main_successful_execution(mocks):
    """Test a full run with the default settings file."""
    assert vueschool.main([]) == 0

    mocks["setup_logger"].assert_called_once()
    mocks["load_settings"].assert_called_once_with("settings.json")
    mocks["downloader_class"].assert_called_once_with(
        "test@example.com",
        "password123",
        "downloads",
        headless=True,
        element_timeout=30,
        playback_timeout=120,
        poll_interval=1.0,
        skip_existing=True,
        concurrent_downloads=False,
    )
    mocks["downloader"].login.assert_called_once()
    mocks["downloader"].download_all_courses.assert_called_once_with(["https://vueschool.io/courses/basics"])
    mocks["downloader"].close.assert_called_once()


def test_main_lesson_failures_still_exit_zero(mocks):
    """Test that per-lesson failures are logged, not turned into an exit code."""
    mocks["downloader"].download_all_courses.return_value = (1, 3)
    assert vueschool.main([]) == 0


def test_main_cli_overrides(mocks):
    """Test that command line options override the settings file."""
    result = vueschool.main([
        "--settings", "other.json",
        "--course", "https://vueschool.io/courses/a",
        "--course", "https://vueschool.io/courses/b",
        "--output", "/tmp/videos",
        "--show-browser",
        "--playback-timeout", "30",
    ])

    assert result == 0
    mocks["load_settings"].assert_called_once_with("other.json")
    args, kwargs = mocks["downloader_class"].call_args
    assert args[2] == "/tmp/videos"
    assert kwargs["headless"] is False
    assert kwargs["playback_timeout"] == 30.0
    mocks["downloader"].download_all_courses.assert_called_once_with(
        ["https://vueschool.io/courses/a", "https://vueschool.io/courses/b"]
    )


def test_main_settings_error(mocks):
    """Test that a broken settings file is fatal."""
    mocks["load_settings"].side_effect = SettingsError("Settings file not found: settings.json")

    assert vueschool.main([]) == 1
    mocks["downloader_class"].assert_not_called()


def test_main_browser_start_failure(mocks):
    """Test that a browser that cannot start is fatal."""
    mocks["downloader_class"].side_effect = Exception("Failed to initialize chrome browser")
    assert vueschool.main([]) == 1


def test_main_login_failure(mocks):
    """Test main function when login fails."""
    mocks["downloader"].login.return_value = False

    assert vueschool.main([]) == 1
    mocks["downloader"].download_all_courses.assert_not_called()
    mocks["downloader"].close.assert_called_once()


def test_main_list_mode(mocks):
    """Test that --list enumerates without downloading."""
    assert vueschool.main(["--list"]) == 0

    mocks["downloader"].list_courses.assert_called_once_with(["https://vueschool.io/courses/basics"])
    mocks["downloader"].download_all_courses.assert_not_called()


def test_main_keyboard_interrupt(mocks):
    """Test that Ctrl-C exits with 130 and still closes the browser."""
    mocks["downloader"].download_all_courses.side_effect = KeyboardInterrupt

    assert vueschool.main([]) == 130
    mocks["downloader"].close.assert_called_once()


def test_main_unhandled_exception(mocks):
    """Test that an unexpected error exits with 1."""
    mocks["downloader"].download_all_courses.side_effect = RuntimeError("boom")

    assert vueschool.main([]) == 1
    mocks["downloader"].close.assert_called_once()


def test_log_level_options(mocks):
    """Test that log options reach setup_logger."""
    vueschool.main(["--log-level", "debug", "--verbose", "--no-log-file"])

    mocks["setup_logger"].assert_called_once_with(
        level=vueschool.logger.DEBUG,
        log_to_file=False,
        console_level=vueschool.logger.DEBUG,
    )
