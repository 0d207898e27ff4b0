import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from .errors import CatalogError, RecordNotFoundError
from .log_utils import sanitize_path_for_logging
from .models import ClipRecord
from .paths import DEFAULT_IDENTITY, PathIdentity

logger = logging.getLogger(__name__)

ROOT_FOLDER_KEY = "VideoLibrary.RootFolder"


class CatalogStore(Protocol):
    def list_local_records(self) -> List[ClipRecord]:
        ...

    def insert(self, record: ClipRecord) -> int:
        ...

    def delete(self, clip_id: int):
        ...

    def find_by_normalized_path(self, path: str, identity: PathIdentity = DEFAULT_IDENTITY) -> Optional[ClipRecord]:
        ...

    def find_by_id(self, clip_id: int) -> Optional[ClipRecord]:
        ...

    def set_thumbnail(self, clip_id: int, thumbnail_path: Optional[str]):
        ...


class JsonCatalogStore:
    """
    Clip catalog persisted as a single JSON document.
    The whole file is rewritten after every mutation, so each insert or
    delete is durable on its own.
    """

    def __init__(self, catalog_file: str = "catalog.json"):
        self.catalog_file = Path(catalog_file)
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = self._load()

    def _empty(self) -> Dict[str, Any]:
        return {"next_id": 1, "clips": {}, "settings": {}}

    def _load(self) -> Dict[str, Any]:
        if not self.catalog_file.exists():
            return self._empty()
        try:
            with open(self.catalog_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError:
            corrupt = self.catalog_file.with_name(self.catalog_file.name + ".corrupt")
            logger.warning(
                "Catalog %s is not valid JSON, moved to %s and starting empty",
                sanitize_path_for_logging(str(self.catalog_file)),
                sanitize_path_for_logging(str(corrupt)),
            )
            os.replace(self.catalog_file, corrupt)
            return self._empty()
        except OSError as e:
            raise CatalogError(f"Cannot read catalog {self.catalog_file}: {e}") from e

        base = self._empty()
        base.update(data)
        return base

    def save(self):
        with self._lock:
            directory = self.catalog_file.parent
            try:
                directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(prefix=self.catalog_file.name, suffix=".tmp", dir=directory)
            except OSError as e:
                raise CatalogError(f"Cannot write catalog {self.catalog_file}: {e}") from e

            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(self._data, f, indent=2)
                os.replace(tmp_name, self.catalog_file)
            except OSError as e:
                self._discard(tmp_name)
                raise CatalogError(f"Cannot write catalog {self.catalog_file}: {e}") from e
            except Exception:
                self._discard(tmp_name)
                raise

    @staticmethod
    def _discard(tmp_name: str):
        try:
            os.remove(tmp_name)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove temporary catalog file %s: %s", sanitize_path_for_logging(tmp_name), e)

    def list_records(self) -> List[ClipRecord]:
        with self._lock:
            records = [ClipRecord.from_dict(c) for c in self._data["clips"].values()]
        return sorted(records, key=lambda r: r.id)

    def list_local_records(self) -> List[ClipRecord]:
        return [r for r in self.list_records() if r.is_local]

    def insert(self, record: ClipRecord) -> int:
        with self._lock:
            clip_id = int(self._data["next_id"])
            record.id = clip_id
            self._data["clips"][str(clip_id)] = record.to_dict()
            self._data["next_id"] = clip_id + 1
            try:
                self.save()
            except CatalogError:
                del self._data["clips"][str(clip_id)]
                self._data["next_id"] = clip_id
                record.id = None
                raise
        return clip_id

    def delete(self, clip_id: int):
        with self._lock:
            removed = self._data["clips"].pop(str(clip_id), None)
            if removed is None:
                raise RecordNotFoundError(clip_id)
            try:
                self.save()
            except CatalogError:
                self._data["clips"][str(clip_id)] = removed
                raise

    def find_by_id(self, clip_id: int) -> Optional[ClipRecord]:
        with self._lock:
            data = self._data["clips"].get(str(clip_id))
        return ClipRecord.from_dict(data) if data else None

    def find_by_normalized_path(self, path: str, identity: PathIdentity = DEFAULT_IDENTITY) -> Optional[ClipRecord]:
        wanted = identity.key(path)
        for record in self.list_local_records():
            if identity.key(record.location) == wanted:
                return record
        return None

    def set_thumbnail(self, clip_id: int, thumbnail_path: Optional[str]):
        with self._lock:
            data = self._data["clips"].get(str(clip_id))
            if data is None:
                raise RecordNotFoundError(clip_id)
            data["thumbnail_path"] = thumbnail_path
            self.save()

    def get_setting(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data["settings"].get(key)

    def set_setting(self, key: str, value: str):
        with self._lock:
            self._data["settings"][key] = value
            self.save()
