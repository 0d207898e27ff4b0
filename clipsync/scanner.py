import logging
import os
from typing import Callable, Iterable, List, Optional

from .log_utils import sanitize_path_for_logging

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = frozenset({'.mp4', '.webm', '.mov', '.avi', '.ogg'})


class DirectoryScanner:
    def __init__(self, extensions: Iterable[str] = VIDEO_EXTENSIONS):
        self.extensions = frozenset(ext.lower() for ext in extensions)

    def is_video(self, file_name: str) -> bool:
        return os.path.splitext(file_name)[1].lower() in self.extensions

    def scan(self, root_folder: str, on_error: Optional[Callable[[OSError], None]] = None) -> List[str]:
        """
        Recursively scan root_folder for video files.
        Unreadable directories are logged, passed to on_error and skipped;
        symlinked directories are not followed. Returns absolute paths, sorted.
        """
        video_files = []

        def walk_error(error: OSError):
            self._on_walk_error(error)
            if on_error is not None:
                on_error(error)

        for root, dirs, files in os.walk(root_folder, onerror=walk_error):
            dirs.sort()
            for file in files:
                if self.is_video(file):
                    video_files.append(os.path.join(root, file))

        video_files.sort()
        logger.debug("Scanned %s: %d video files", sanitize_path_for_logging(root_folder), len(video_files))
        return video_files

    @staticmethod
    def _on_walk_error(error: OSError):
        logger.warning(
            "Error scanning directory %s: %s",
            sanitize_path_for_logging(error.filename),
            error.strerror or error,
        )
