"""
Remux Engine: combines a lesson's audio and video files into one container
without re-encoding, then removes the inputs.
"""
import os

import ffmpeg

import logger
log = logger

PARTIAL_SUFFIX = ".part"


class RemuxError(Exception):
    """Raised when ffmpeg cannot combine the audio and video files."""


def _partial_path(output_path):
    root, ext = os.path.splitext(output_path)
    return f"{root}{PARTIAL_SUFFIX}{ext}"


def merge_files(audio_path, video_path, output_path):
    """
    Stream-copy audio and video into output_path.

    ffmpeg writes to a temporary sibling file that is renamed into place only
    when it succeeds. Both inputs are deleted after the rename. On failure the
    temporary file is removed and the inputs are left untouched.

    Args:
        audio_path (str): Downloaded audio-only file
        video_path (str): Downloaded video-only file
        output_path (str): Final merged file

    Returns:
        str: output_path

    Raises:
        RemuxError: If ffmpeg fails or is not installed
    """
    if os.path.abspath(audio_path) == os.path.abspath(video_path):
        raise RemuxError(f"Audio and video are the same file: {audio_path}")

    partial_path = _partial_path(output_path)
    log.debug(f"Merging {audio_path} + {video_path} -> {output_path}")

    stream = ffmpeg.output(
        ffmpeg.input(audio_path),
        ffmpeg.input(video_path),
        partial_path,
        c="copy",
    )

    try:
        ffmpeg.run(stream, overwrite_output=True, capture_stdout=True, capture_stderr=True)
    except ffmpeg.Error as e:
        _discard(partial_path)
        stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else ""
        log.error(f"ffmpeg failed merging into {output_path}: {stderr[-500:]}")
        raise RemuxError(f"ffmpeg failed merging into {output_path}") from e
    except FileNotFoundError as e:
        _discard(partial_path)
        raise RemuxError("ffmpeg executable not found") from e

    os.replace(partial_path, output_path)

    os.remove(audio_path)
    os.remove(video_path)

    log.info(f"Merged lesson saved to {output_path}")
    return output_path


def _discard(path):
    if os.path.exists(path):
        os.remove(path)
