#!/usr/bin/env python3
"""
Vue School Course Downloader

Main entry point script for downloading lesson videos from vueschool.io.
Reads settings.json, logs in and hands the configured courses to
VideoDownloader.
"""
import argparse
import sys

from settings import load_settings, SettingsError
from video_downloader import VideoDownloader

# Import the logger module
import logger


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Download course videos from Vue School')
    parser.add_argument('--settings', default='settings.json',
                        help='Path to the JSON settings file (default: settings.json)')
    parser.add_argument('--course', action='append', dest='courses', metavar='URL',
                        help='Course URL to download instead of the configured list (repeatable)')
    parser.add_argument('--output', help='Download directory, overrides downloadPath')
    parser.add_argument('--show-browser', action='store_true',
                        help='Run the browser with a visible window')
    parser.add_argument('--playback-timeout', type=float,
                        help='Seconds to wait for a lesson video to start playing')
    parser.add_argument('--list', action='store_true',
                        help='List chapters and lessons without downloading')
    parser.add_argument('--log-level', choices=['debug', 'info', 'warning', 'error'],
                        default='info', help='Logging level (for file logging)')
    parser.add_argument('--no-log-file', action='store_true',
                        help='Disable logging to file')
    parser.add_argument('--verbose', action='store_true',
                        help='Use the same log level for console as for the log file')
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the script."""
    args = parse_args(argv)

    log_levels = {
        'debug': logger.DEBUG,
        'info': logger.INFO,
        'warning': logger.WARNING,
        'error': logger.ERROR
    }
    console_level = log_levels[args.log_level] if args.verbose else log_levels['info']

    logger.setup_logger(
        level=log_levels[args.log_level],
        log_to_file=not args.no_log_file,
        console_level=console_level
    )

    logger.info("Starting Vue School downloader")

    try:
        settings = load_settings(args.settings)
    except SettingsError as e:
        logger.error(str(e))
        return 1

    courses = args.courses or settings['downloadCourses']
    download_path = args.output or settings['downloadPath']
    headless = False if args.show_browser else settings['headless']
    playback_timeout = args.playback_timeout or settings['playbackTimeout']

    try:
        downloader = VideoDownloader(
            settings['email'],
            settings['password'],
            download_path,
            headless=headless,
            element_timeout=settings['elementTimeout'],
            playback_timeout=playback_timeout,
            poll_interval=settings['pollInterval'],
            skip_existing=settings['skipExisting'],
            concurrent_downloads=settings['concurrentDownloads'],
        )
    except Exception as e:
        logger.error(f"Could not start the browser: {str(e)}")
        return 1

    try:
        if not downloader.login():
            logger.error("Failed to login. Exiting...")
            return 1

        if args.list:
            downloader.list_courses(courses)
            return 0

        downloader.download_all_courses(courses)
        logger.info("Finished downloading.")
        return 0

    except KeyboardInterrupt:
        logger.warning("Download interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Unhandled exception: {str(e)}", exc_info=True)
        return 1
    finally:
        logger.info("Closing browser and cleaning up")
        downloader.close()


if __name__ == "__main__":
    sys.exit(main())
