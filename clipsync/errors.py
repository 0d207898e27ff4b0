class ClipSyncError(Exception):
    """Base class for clipsync errors."""


class CatalogError(ClipSyncError):
    """The catalog could not be read or written."""


class RecordNotFoundError(CatalogError):
    def __init__(self, clip_id: int):
        super().__init__(f"Clip with ID {clip_id} not found")
        self.clip_id = clip_id


class ConfigurationError(ClipSyncError):
    """Required configuration is missing or invalid."""
