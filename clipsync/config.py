import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .catalog import ROOT_FOLDER_KEY, JsonCatalogStore
from .errors import ConfigurationError


@dataclass(frozen=True)
class Settings:
    root_folder: Optional[str] = None
    catalog_path: str = "catalog.json"
    thumbnail_dir: str = "thumbnails"
    ffmpeg_binary_folder: Optional[str] = None
    log_level: str = "INFO"


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Reads settings from the environment, after loading a .env file if present."""
    load_dotenv(env_file)
    return Settings(
        root_folder=os.getenv("CLIPSYNC_ROOT_FOLDER") or None,
        catalog_path=os.getenv("CLIPSYNC_CATALOG_PATH") or "catalog.json",
        thumbnail_dir=os.getenv("CLIPSYNC_THUMBNAIL_DIR") or "thumbnails",
        ffmpeg_binary_folder=os.getenv("FFMPEG_BINARY_FOLDER") or None,
        log_level=os.getenv("CLIPSYNC_LOG_LEVEL") or "INFO",
    )


def resolve_root_folder(explicit: Optional[str], store: JsonCatalogStore, settings: Settings) -> str:
    """
    Picks the root folder to reconcile: the explicit argument, then the
    folder saved in the catalog, then CLIPSYNC_ROOT_FOLDER.
    """
    for candidate in (explicit, store.get_setting(ROOT_FOLDER_KEY), settings.root_folder):
        if candidate and candidate.strip():
            return candidate
    raise ConfigurationError(
        "Root folder path is not configured. Run 'set-root', set CLIPSYNC_ROOT_FOLDER, or pass it explicitly."
    )
