import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Tuple, Union

from .catalog import CatalogStore
from .errors import CatalogError
from .log_utils import sanitize_for_logging, sanitize_path_for_logging
from .models import (
    AddedClip,
    ClipRecord,
    FileSystemEntry,
    ItemOutcome,
    ItemStatus,
    PreviewItem,
    PreviewReport,
    RemovedClip,
    StorageKind,
    SyncError,
    SyncReport,
)
from .paths import DEFAULT_IDENTITY, PathIdentity, validate_root_folder
from .reconciler import reconcile
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)

FILE_NOT_FOUND = "File does not exist"
DUPLICATE_PATH = "A clip with this file path already exists"


class ThumbnailGenerator(Protocol):
    def generate(self, file_path: str, clip_id: int) -> Optional[str]:
        ...

    def delete_thumbnail(self, thumbnail_path: str) -> bool:
        ...


def stat_entry(path: str) -> FileSystemEntry:
    st = os.stat(path)
    return FileSystemEntry(
        path=path,
        size=st.st_size,
        modified=datetime.fromtimestamp(st.st_mtime).isoformat(),
    )


def create_local_clip(store: CatalogStore, path: str, identity: PathIdentity) -> Union[ClipRecord, SyncError]:
    """Catalogs a file as a new local clip. Title is the file name without extension."""
    if not os.path.isfile(path):
        return SyncError(path=path, message=FILE_NOT_FOUND)
    if store.find_by_normalized_path(path, identity) is not None:
        return SyncError(path=path, message=DUPLICATE_PATH)

    record = ClipRecord(
        title=Path(path).stem,
        location=path,
        storage_kind=StorageKind.LOCAL,
        description="",
        duration=0,
    )
    try:
        store.insert(record)
    except CatalogError as e:
        logger.error("Error adding clip %s: %s", sanitize_path_for_logging(path), sanitize_for_logging(str(e)))
        return SyncError(path=path, message=f"Error adding clip: {e}")
    return record


def remove_clip(
    store: CatalogStore,
    record: ClipRecord,
    thumbnails: Optional[ThumbnailGenerator] = None,
) -> ItemOutcome:
    try:
        store.delete(record.id)
    except CatalogError as e:
        logger.error("Error removing clip %s: %s", record.id, sanitize_for_logging(str(e)))
        return SyncError(path=record.location, message=f"Error removing clip: {e}")
    if thumbnails is not None and record.thumbnail_path:
        _delete_thumbnail(thumbnails, record)
    return RemovedClip(id=record.id, path=record.location, title=record.title)


def _delete_thumbnail(thumbnails: ThumbnailGenerator, record: ClipRecord):
    try:
        thumbnails.delete_thumbnail(record.thumbnail_path)
    except Exception:
        # The clip is already gone; a leftover thumbnail never fails the item.
        logger.warning(
            "Could not delete thumbnail %s of clip %s",
            sanitize_path_for_logging(record.thumbnail_path), record.id, exc_info=True,
        )


def scan_error(error: OSError) -> SyncError:
    return SyncError(path=error.filename or "", message=f"Error scanning directory: {error.strerror or error}")


class _Reconciling:
    def __init__(
        self,
        store: CatalogStore,
        scanner: Optional[DirectoryScanner] = None,
        identity: PathIdentity = DEFAULT_IDENTITY,
        thumbnails: Optional[ThumbnailGenerator] = None,
    ):
        self.store = store
        self.scanner = scanner or DirectoryScanner()
        self.identity = identity
        self.thumbnails = thumbnails

    def _scan(self, root_folder: str) -> Tuple[List[str], List[SyncError]]:
        errors: List[SyncError] = []
        paths = self.scanner.scan(root_folder, on_error=lambda e: errors.append(scan_error(e)))
        return paths, errors


class SyncExecutor(_Reconciling):
    """
    Full sync: catalogs every new video under the root and deletes records
    whose files are gone. Each record is written on its own, so a failure
    only costs that one item. Directories that can't be read are reported
    as errors.
    """

    def sync(self, root_folder: str) -> SyncReport:
        error = validate_root_folder(root_folder)
        if error:
            return SyncReport.failed(root_folder or "", error)

        paths, scan_errors = self._scan(root_folder)
        try:
            result = reconcile(paths, self.store.list_local_records(), self.identity)
        except CatalogError as e:
            logger.error("Sync of %s failed: %s", sanitize_path_for_logging(root_folder), sanitize_for_logging(str(e)))
            return SyncReport.failed(root_folder, f"Sync operation failed: {e}")

        report = SyncReport(total_scanned=len(paths))
        for scan_failure in scan_errors:
            report.record(scan_failure)
        for path in result.new:
            report.record(self._add(path))
        for record in result.missing:
            report.record(remove_clip(self.store, record, self.thumbnails))

        logger.info(
            "Synced %s: %d scanned, %d added, %d removed, %d errors",
            sanitize_path_for_logging(root_folder),
            report.total_scanned, report.total_added, report.total_removed, len(report.errors),
        )
        return report

    def _add(self, path: str) -> ItemOutcome:
        # The file may have vanished since the scan.
        created = create_local_clip(self.store, path, self.identity)
        if isinstance(created, SyncError):
            return created
        self._generate_thumbnail(path, created.id)
        return AddedClip(id=created.id, path=path, title=created.title)

    def _generate_thumbnail(self, path: str, clip_id: int):
        if self.thumbnails is None:
            return
        try:
            thumbnail_path = self.thumbnails.generate(path, clip_id)
            if thumbnail_path:
                self.store.set_thumbnail(clip_id, thumbnail_path)
        except Exception:
            # Thumbnails never fail the item.
            logger.warning(
                "Thumbnail generation failed for clip %s (%s)",
                clip_id, sanitize_path_for_logging(path), exc_info=True,
            )


class PreviewBuilder(_Reconciling):
    """Read-only sync: classifies every file and record without touching the catalog."""

    def preview(self, root_folder: str) -> PreviewReport:
        report = PreviewReport(root_folder_path=root_folder or "")
        error = validate_root_folder(root_folder)
        if error:
            report.items.append(PreviewItem(path=root_folder or "", status=ItemStatus.ERROR, error_message=error))
            return report

        paths, scan_errors = self._scan(root_folder)
        try:
            result = reconcile(paths, self.store.list_local_records(), self.identity)
        except CatalogError as e:
            report.items.append(
                PreviewItem(path=root_folder, status=ItemStatus.ERROR, error_message=f"Preview failed: {e}")
            )
            return report

        report.total_scanned = len(paths)
        for scan_failure in scan_errors:
            report.items.append(
                PreviewItem(path=scan_failure.path, status=ItemStatus.ERROR, error_message=scan_failure.message)
            )
        for path, record in result.matched:
            report.items.append(self._matched_item(path, record))
        for path in result.new:
            report.items.append(self._new_item(path))
        for record in result.missing:
            report.items.append(self._missing_item(record))
        return report

    def _matched_item(self, path: str, record: ClipRecord) -> PreviewItem:
        item = PreviewItem(
            path=path,
            status=ItemStatus.MATCHED,
            directory=os.path.dirname(path),
            clip_id=record.id,
            title=record.title,
            description=record.description,
            tags=list(record.tags),
        )
        return self._with_stat(item)

    def _new_item(self, path: str) -> PreviewItem:
        return self._with_stat(PreviewItem(path=path, status=ItemStatus.NEW, directory=os.path.dirname(path)))

    def _missing_item(self, record: ClipRecord) -> PreviewItem:
        return PreviewItem(
            path=record.location,
            status=ItemStatus.MISSING,
            directory=os.path.dirname(record.location),
            clip_id=record.id,
            title=record.title,
            description=record.description,
            tags=list(record.tags),
        )

    def _with_stat(self, item: PreviewItem) -> PreviewItem:
        try:
            entry = stat_entry(item.path)
        except OSError as e:
            logger.warning("Cannot stat %s: %s", sanitize_path_for_logging(item.path), e.strerror or e)
            item.status = ItemStatus.ERROR
            item.error_message = f"Error reading file: {e.strerror or e}"
            return item
        item.file_size = entry.size
        item.last_modified = entry.modified
        return item


class SelectiveExecutor(_Reconciling):
    """Applies only the additions and removals the caller picked, usually from a preview."""

    def selective_sync(
        self,
        root_folder: str,
        files_to_add: Iterable[str] = (),
        clip_ids_to_remove: Iterable[int] = (),
    ) -> SyncReport:
        error = validate_root_folder(root_folder)
        if error:
            return SyncReport.failed(root_folder or "", error)

        files_to_add = list(files_to_add)
        report = SyncReport(total_scanned=len(files_to_add))
        for path in files_to_add:
            report.record(self._add(path))
        for clip_id in clip_ids_to_remove:
            report.record(self._remove(clip_id))

        logger.info(
            "Selective sync in %s: %d added, %d removed, %d errors",
            sanitize_path_for_logging(root_folder),
            report.total_added, report.total_removed, len(report.errors),
        )
        return report

    def _add(self, path: str) -> ItemOutcome:
        if not path or not os.path.isabs(path):
            return SyncError(path=path or "", message="File path must be an absolute path")
        created = create_local_clip(self.store, path, self.identity)
        if isinstance(created, SyncError):
            return created
        return AddedClip(id=created.id, path=path, title=created.title)

    def _remove(self, clip_id: int) -> ItemOutcome:
        record = self.store.find_by_id(clip_id)
        if record is None:
            return SyncError(path="", message=f"Clip with ID {clip_id} not found")
        if not record.is_local:
            return SyncError(path=record.location, message=f"Clip with ID {clip_id} is not a local clip")
        return remove_clip(self.store, record, self.thumbnails)
