import os
from typing import Optional, Protocol


class PathIdentity(Protocol):
    def key(self, path: str) -> str:
        ...


class CaseInsensitivePaths:
    """
    Treats paths differing only by case as the same file.
    This is the default regardless of the host filesystem.
    """

    def key(self, path: str) -> str:
        return path.lower()


class CaseSensitivePaths:
    def key(self, path: str) -> str:
        return path


DEFAULT_IDENTITY = CaseInsensitivePaths()


def validate_root_folder(root_folder: Optional[str]) -> Optional[str]:
    """
    Returns an error message if the root folder can't be scanned, None otherwise.
    Checks run in order: non-empty, absolute, existing directory.
    """
    if root_folder is None or not root_folder.strip():
        return "Root folder path is required"
    if not os.path.isabs(root_folder):
        return "Root folder path must be an absolute path"
    if not os.path.isdir(root_folder):
        return "Root folder does not exist"
    return None
