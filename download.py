"""
Download Manager for captured lesson streams.

Fetches the two captured segment URLs of a lesson into the chapter
directory and works out which of the downloaded files holds the audio and
which the video.
"""
import os
from concurrent.futures import ThreadPoolExecutor

import ffmpeg
import requests

from url_utils import segment_filename

import logger
log = logger

DOWNLOAD_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 '
                  '(KHTML, like Gecko) Chrome/134.0.0.0 Safari/537.36',
    'Accept': '*/*',
    'Origin': 'https://player.vimeo.com',
    'Referer': 'https://player.vimeo.com/',
}


class DownloadError(Exception):
    """Raised when a stream cannot be fetched or written to disk."""


def local_filenames(urls):
    """
    Name the local files for a lesson's captured URLs.

    Distinct URLs can share a segment name (signed URLs differ only in their
    query), so colliding names get the URL's position as a suffix:
    ``seg.mp4`` becomes ``seg-0.mp4`` and ``seg-1.mp4``.

    Returns:
        list: One name per URL, None where no name can be derived
    """
    names = [segment_filename(url) for url in urls]
    unique = []
    for i, name in enumerate(names):
        if name and names.count(name) > 1:
            root, ext = os.path.splitext(name)
            name = f"{root}-{i}{ext}"
        unique.append(name)
    return unique


def _remove_quietly(path):
    try:
        os.remove(path)
        log.debug(f"Removed partial download: {path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning(f"Could not remove {path}: {e}")


class DownloadManager:
    """
    Streams captured URLs to local files.
    """

    def __init__(self, session=None, chunk_size=1024 * 1024, timeout=60, concurrent=False):
        """
        Args:
            session (requests.Session, optional): Session to download with
            chunk_size (int): Bytes written per chunk
            timeout (float): Connect/read timeout for each request (seconds)
            concurrent (bool): Download the two files of a lesson in parallel
        """
        self.session = session if session is not None else requests.Session()
        self.session.headers.update(DOWNLOAD_HEADERS)
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.concurrent = concurrent

    def transfer_cookies(self, cookies):
        """Copy browser cookies (as returned by WebDriver.get_cookies) into the session."""
        for cookie in cookies:
            self.session.cookies.set(
                cookie['name'],
                cookie['value'],
                domain=cookie.get('domain'),
                path=cookie.get('path', '/')
            )
        log.debug(f"Transferred {len(cookies)} cookies to download session")

    def download_file(self, url, save_path, filename=None):
        """
        Download one URL into save_path.

        Args:
            url (str): Segment URL
            save_path (str): Directory to write into, created if missing
            filename (str, optional): Local name, derived from the URL if not given

        Returns:
            str: Name of the written file inside save_path

        Raises:
            DownloadError: On HTTP errors, transport errors or write errors.
                           The partial file is removed first.
        """
        filename = filename or segment_filename(url)
        if not filename:
            raise DownloadError(f"Cannot derive a file name from {url}")

        os.makedirs(save_path, exist_ok=True)
        file_path = os.path.join(save_path, filename)

        log.debug(f"Downloading {url[:100]}... to {file_path}")
        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
            try:
                if not 200 <= response.status_code < 300:
                    raise DownloadError(f"Download failed: HTTP {response.status_code} for {url}")

                with open(file_path, 'wb') as file:
                    for chunk in response.iter_content(self.chunk_size):
                        if chunk:
                            file.write(chunk)
            finally:
                response.close()
        except DownloadError:
            _remove_quietly(file_path)
            raise
        except (requests.RequestException, OSError) as e:
            _remove_quietly(file_path)
            raise DownloadError(f"Download failed for {url}: {e}") from e

        log.debug(f"Download completed: {file_path}")
        return filename

    def download_pair(self, urls, save_path):
        """
        Download both captured URLs of a lesson.

        Args:
            urls (list): Captured URLs, in capture order
            save_path (str): Chapter directory

        Returns:
            list: File names in the same order as urls

        Raises:
            DownloadError: If any download fails. Files already written for
                           this lesson are removed before raising.
        """
        names = local_filenames(urls)
        if self.concurrent:
            with ThreadPoolExecutor(max_workers=len(urls)) as executor:
                futures = [
                    executor.submit(self.download_file, url, save_path, name)
                    for url, name in zip(urls, names)
                ]
                filenames = []
                failure = None
                for future in futures:
                    try:
                        filenames.append(future.result())
                    except DownloadError as e:
                        failure = failure or e
                if failure is not None:
                    for filename in filenames:
                        _remove_quietly(os.path.join(save_path, filename))
                    raise failure
                return filenames

        filenames = []
        try:
            for url, name in zip(urls, names):
                filenames.append(self.download_file(url, save_path, name))
        except DownloadError:
            for filename in filenames:
                _remove_quietly(os.path.join(save_path, filename))
            raise
        return filenames

    def order_by_role(self, filenames, save_path):
        """
        Return the two downloaded files as (audio, video).

        Each file is probed with ffprobe. Only when probing is impossible or
        inconclusive is the capture order (audio first) trusted.

        Args:
            filenames (list): Two file names inside save_path
            save_path (str): Chapter directory

        Returns:
            tuple: (audio_path, video_path)
        """
        paths = [os.path.join(save_path, name) for name in filenames]
        roles = [probe_role(path) for path in paths]

        if roles == ['audio', 'video']:
            return paths[0], paths[1]
        if roles == ['video', 'audio']:
            log.debug("Stream order was video first, swapping")
            return paths[1], paths[0]

        log.warning(f"Could not tell audio from video (probed {roles}), keeping capture order")
        return paths[0], paths[1]


def probe_role(path):
    """
    Probe a media file and report its role.

    Returns:
        str: "video" if it has a video stream, "audio" if it has only audio
             streams, None if ffprobe is unavailable or finds neither
    """
    try:
        info = ffmpeg.probe(path)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode('utf-8', errors='replace') if e.stderr else ''
        log.debug(f"ffprobe failed for {path}: {stderr[-300:]}")
        return None
    except FileNotFoundError:
        log.debug("ffprobe executable not found")
        return None

    codec_types = {stream.get('codec_type') for stream in info.get('streams', [])}
    if 'video' in codec_types:
        return 'video'
    if 'audio' in codec_types:
        return 'audio'
    return None
