"""
URL Utilities Module for Vue School Video Downloads

Constants for the site and the Vimeo player, plus the small pure helpers used
while capturing and saving lesson streams: range stripping, the stream
request filter, segment file naming and title sanitizing.
"""
import posixpath
import re
from urllib.parse import urlsplit, urlunsplit


# Site and player constants
VUESCHOOL_BASE = "https://vueschool.io"
VUESCHOOL_LOGIN_URL = f"{VUESCHOOL_BASE}/login"
VIMEO_PLAYER_BASE = "https://player.vimeo.com/video"
VIMEO_CDN_PREFIX = "https://vod-adaptive-ak.vimeocdn.com"
MEDIA_FILE_MARKER = ".mp4"
SEGMENT_PATH_MARKER = "/v2/range/avf/"
RANGE_PARAM = "range"

# Characters that are not allowed in file names on common filesystems
ILLEGAL_FILENAME_PATTERN = re.compile(r'[<>:"/\\|?*]+')


def strip_range_param(url):
    """
    Remove the ``range`` query parameter from a URL.

    Partial-range requests for the same segment collapse to one canonical URL.
    Other query parameters keep their order; a URL without a range parameter
    is returned unchanged.

    Args:
        url (str): Request URL as seen on the network

    Returns:
        str: The URL without its range parameter
    """
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = parts.query.split("&")
    kept = [param for param in params if param.split("=", 1)[0] != RANGE_PARAM]
    if len(kept) == len(params):
        return url

    return urlunsplit((parts.scheme, parts.netloc, parts.path, "&".join(kept), parts.fragment))


def is_stream_request(url):
    """
    Check whether a request URL is an adaptive-stream media segment.

    Args:
        url (str): Request URL

    Returns:
        bool: True for URLs on the Vimeo CDN that reference an mp4 segment
    """
    if not url:
        return False
    return url.startswith(VIMEO_CDN_PREFIX) and MEDIA_FILE_MARKER in url


def segment_filename(url):
    """
    Derive the local file name for a segment URL.

    The name is the basename of the path part following the avf marker, or the
    basename of the whole path when the marker is missing.

    Args:
        url (str): Segment URL

    Returns:
        str: File name, or None when the URL has no usable path
    """
    path = urlsplit(url).path
    if SEGMENT_PATH_MARKER in path:
        path = path.split(SEGMENT_PATH_MARKER, 1)[1]
    name = posixpath.basename(path)
    return name or None


def sanitize_title(title):
    """
    Replace filesystem-illegal characters with spaces.

    Illegal characters become spaces and whitespace runs collapse to one
    space, so sanitizing an already clean title changes nothing.

    Args:
        title (str): Title scraped from the page

    Returns:
        str: Title safe to use as a file or directory name
    """
    if title is None:
        return ""
    return " ".join(ILLEGAL_FILENAME_PATTERN.sub(" ", title).split())


def lesson_filename(index, title, container="mp4"):
    """Build the merged file name ``<index>. <title>.<container>``."""
    return f"{index}. {title}.{container}"


def chapter_dirname(index, title):
    """Build the chapter directory name ``<index>. <title>``."""
    return f"{index}. {title}"
