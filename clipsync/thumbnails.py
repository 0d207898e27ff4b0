import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import cv2
import ffmpeg

from .log_utils import sanitize_for_logging, sanitize_path_for_logging

logger = logging.getLogger(__name__)

THUMBNAIL_WIDTH = 320
THUMBNAIL_HEIGHT = 180
JPEG_QUALITY = 85


class FfmpegThumbnailGenerator:
    """
    Extracts a single frame with ffmpeg and stores it as a small JPEG named
    after the clip id. Never raises: failures are logged and None returned.
    """

    def __init__(self, thumbnail_dir: str = "thumbnails", binary_folder: Optional[str] = None):
        self.thumbnail_dir = Path(thumbnail_dir)
        self.binary_folder = binary_folder
        if binary_folder:
            self.ffmpeg_cmd = os.path.join(binary_folder, "ffmpeg")
            self.ffprobe_cmd = os.path.join(binary_folder, "ffprobe")
        else:
            self.ffmpeg_cmd = "ffmpeg"
            self.ffprobe_cmd = "ffprobe"

    def thumbnail_path(self, clip_id: int) -> Path:
        return self.thumbnail_dir / f"{clip_id}.jpg"

    def get_duration(self, video_path: str) -> Optional[float]:
        probe = ffmpeg.probe(video_path, cmd=self.ffprobe_cmd)
        duration = probe.get('format', {}).get('duration')
        if duration is None:
            video_stream = next((s for s in probe.get('streams', []) if s.get('codec_type') == 'video'), None)
            duration = video_stream.get('duration') if video_stream else None
        return float(duration) if duration is not None else None

    def generate(self, video_path: str, clip_id: int, timestamp: Optional[float] = None) -> Optional[str]:
        """
        Grabs a frame at `timestamp` seconds, or 10% into the video when not
        given (1 second if the duration can't be probed).
        Returns the thumbnail path.
        """
        if not os.path.isfile(video_path):
            logger.warning("Video file not found: %s", sanitize_path_for_logging(video_path))
            return None

        try:
            if timestamp is None:
                duration = self.get_duration(video_path)
                timestamp = duration * 0.1 if duration else 1.0

            output_path = self.thumbnail_path(clip_id)
            self.thumbnail_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory() as tmp:
                frame_path = os.path.join(tmp, "frame.png")
                (
                    ffmpeg
                    .input(video_path, ss=timestamp)
                    .output(frame_path, vframes=1)
                    .overwrite_output()
                    .run(cmd=self.ffmpeg_cmd, quiet=True)
                )
                if not self._write_jpeg(frame_path, output_path):
                    return None
            return str(output_path)
        except ffmpeg.Error as e:
            stderr = e.stderr.decode('utf8', errors='replace') if e.stderr else str(e)
            self._log_failure(video_path, clip_id, stderr)
            return None
        except (OSError, ValueError, cv2.error) as e:
            self._log_failure(video_path, clip_id, self.describe_error(e))
            return None

    def delete_thumbnail(self, thumbnail_path: str) -> bool:
        """Best effort. Returns True if a file was removed."""
        if not thumbnail_path:
            return False
        try:
            os.remove(thumbnail_path)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(
                "Failed to delete thumbnail %s: %s",
                sanitize_path_for_logging(thumbnail_path), e.strerror or e,
            )
            return False
        logger.debug("Deleted thumbnail %s", sanitize_path_for_logging(thumbnail_path))
        return True

    def _write_jpeg(self, frame_path: str, output_path: Path) -> bool:
        image = cv2.imread(frame_path)
        if image is None:
            logger.warning("ffmpeg produced no frame for %s", sanitize_path_for_logging(str(output_path)))
            return False

        height, width = image.shape[:2]
        scale = min(THUMBNAIL_WIDTH / width, THUMBNAIL_HEIGHT / height, 1.0)
        if scale < 1.0:
            size = (max(1, int(width * scale)), max(1, int(height * scale)))
            image = cv2.resize(image, size, interpolation=cv2.INTER_AREA)

        return bool(cv2.imwrite(str(output_path), image, [cv2.IMWRITE_JPEG_QUALITY, JPEG_QUALITY]))

    def describe_error(self, error: Exception) -> str:
        if isinstance(error, FileNotFoundError):
            if self.binary_folder:
                return (
                    f"FFmpeg/ffprobe not found in configured folder '{self.binary_folder}'. "
                    "Check FFMPEG_BINARY_FOLDER or install FFmpeg on the system PATH."
                )
            return (
                "FFmpeg/ffprobe not found. Install FFmpeg and add it to the system PATH, "
                "or set FFMPEG_BINARY_FOLDER to the folder containing the binaries."
            )
        return str(error)

    def _log_failure(self, video_path: str, clip_id: int, message: str):
        logger.error(
            "Failed to generate thumbnail for clip %s from %s. %s",
            clip_id, sanitize_path_for_logging(video_path), sanitize_for_logging(message),
        )


def build_thumbnail_generator(thumbnail_dir: str, binary_folder: Optional[str] = None) -> FfmpegThumbnailGenerator:
    """
    One-time setup at startup. A configured binary folder that doesn't exist
    is ignored in favour of the PATH.
    """
    folder = None
    if binary_folder:
        candidate = os.path.abspath(binary_folder)
        if os.path.isdir(candidate):
            folder = candidate
            logger.info("FFmpeg configured to use custom path: %s", sanitize_path_for_logging(candidate))
        else:
            logger.warning(
                "FFmpeg binary folder not found: %s. Will try to use FFmpeg from PATH.",
                sanitize_path_for_logging(candidate),
            )
    elif shutil.which("ffmpeg") is None:
        logger.warning("ffmpeg not found on PATH; thumbnails will not be generated")
    else:
        logger.debug("No custom FFmpeg path configured, using FFmpeg from PATH")

    return FfmpegThumbnailGenerator(thumbnail_dir, binary_folder=folder)
