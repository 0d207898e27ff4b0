import os
import threading
from contextlib import contextmanager, nullcontext
from typing import Dict, Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .catalog import ROOT_FOLDER_KEY, JsonCatalogStore
from .config import Settings, load_settings, resolve_root_folder
from .errors import ConfigurationError
from .models import ItemStatus, PreviewReport, SyncReport
from .paths import DEFAULT_IDENTITY, PathIdentity, validate_root_folder
from .scanner import DirectoryScanner
from .sync import PreviewBuilder, SelectiveExecutor, SyncExecutor, ThumbnailGenerator
from .thumbnails import build_thumbnail_generator

console = Console()

STATUS_STYLES = {
    ItemStatus.MATCHED: "green",
    ItemStatus.NEW: "cyan",
    ItemStatus.MISSING: "yellow",
    ItemStatus.ERROR: "bold red",
}


class Orchestrator:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[JsonCatalogStore] = None,
        thumbnails: Optional[ThumbnailGenerator] = None,
        identity: PathIdentity = DEFAULT_IDENTITY,
        show_progress: bool = True,
    ):
        self.settings = settings or load_settings()
        self.show_progress = show_progress
        self.store = store if store else JsonCatalogStore(self.settings.catalog_path)

        # Dependency Injection or Default
        if thumbnails is None:
            thumbnails = build_thumbnail_generator(self.settings.thumbnail_dir, self.settings.ffmpeg_binary_folder)
        self.thumbnails = thumbnails

        self.identity = identity
        scanner = DirectoryScanner()
        self.executor = SyncExecutor(self.store, scanner, identity, thumbnails=self.thumbnails)
        self.previewer = PreviewBuilder(self.store, scanner, identity)
        self.selective = SelectiveExecutor(self.store, scanner, identity, thumbnails=self.thumbnails)

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def resolve_root(self, root_folder: Optional[str] = None) -> str:
        return resolve_root_folder(root_folder, self.store, self.settings)

    @contextmanager
    def _root_lock(self, root_folder: str):
        """One reconciliation run per root at a time."""
        key = self.identity.key(os.path.normpath(root_folder)) if root_folder else ""
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield

    def _status(self, message: str):
        if not self.show_progress:
            return nullcontext()
        return console.status(f"[cyan]{escape(message)}[/cyan]")

    def sync(self, root_folder: Optional[str] = None) -> SyncReport:
        root = self.resolve_root(root_folder)
        with self._root_lock(root), self._status(f"Syncing {root}..."):
            return self.executor.sync(root)

    def preview(self, root_folder: Optional[str] = None) -> PreviewReport:
        root = self.resolve_root(root_folder)
        with self._root_lock(root), self._status(f"Scanning {root}..."):
            return self.previewer.preview(root)

    def selective_sync(
        self,
        root_folder: Optional[str],
        files_to_add: Iterable[str],
        clip_ids_to_remove: Iterable[int],
    ) -> SyncReport:
        root = self.resolve_root(root_folder)
        with self._root_lock(root):
            return self.selective.selective_sync(root, files_to_add, clip_ids_to_remove)

    def set_root(self, root_folder: str) -> str:
        error = validate_root_folder(root_folder)
        if error:
            raise ConfigurationError(error)
        self.store.set_setting(ROOT_FOLDER_KEY, root_folder)
        return root_folder

    def show_root(self) -> Optional[str]:
        return self.store.get_setting(ROOT_FOLDER_KEY) or self.settings.root_folder


def print_sync_report(report: SyncReport, out: Console = console):
    out.print(
        f"Scanned [bold]{report.total_scanned}[/bold] files: "
        f"[green]{report.total_added} added[/green], "
        f"[yellow]{report.total_removed} removed[/yellow], "
        f"[red]{len(report.errors)} errors[/red]"
    )

    if report.added_clips or report.removed_clips:
        table = Table(title="Catalog changes")
        table.add_column("Change")
        table.add_column("ID", justify="right")
        table.add_column("Title")
        table.add_column("Path", overflow="fold")
        for clip in report.added_clips:
            table.add_row("[green]added[/green]", str(clip.id), escape(clip.title), escape(clip.path))
        for clip in report.removed_clips:
            table.add_row("[yellow]removed[/yellow]", str(clip.id), escape(clip.title), escape(clip.path))
        out.print(table)

    for error in report.errors:
        out.print(f"[bold red]Error:[/bold red] {escape(error.message)} [dim]{escape(error.path)}[/dim]")


def print_preview_report(report: PreviewReport, out: Console = console):
    out.print(
        f"[bold]{escape(report.root_folder_path)}[/bold]: {report.total_scanned} scanned, "
        f"[green]{report.matched_files_count} matched[/green], "
        f"[cyan]{report.new_files_count} new[/cyan], "
        f"[yellow]{report.missing_files_count} missing[/yellow], "
        f"[red]{report.error_count} errors[/red]"
    )
    if not report.items:
        return

    table = Table()
    table.add_column("Status")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    table.add_column("Path", overflow="fold")
    for item in report.items:
        style = STATUS_STYLES[item.status]
        table.add_row(
            f"[{style}]{item.status.value}[/{style}]",
            str(item.clip_id) if item.clip_id is not None else "",
            escape(item.title or item.error_message or ""),
            str(item.file_size) if item.file_size is not None else "",
            item.last_modified or "",
            escape(item.path),
        )
    out.print(table)
