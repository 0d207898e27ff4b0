from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class StorageKind(str, Enum):
    LOCAL = "Local"
    REMOTE = "Remote"


class TagCategory(str, Enum):
    SKILL_TACTIC = "SkillTactic"
    FIELD_AREA = "FieldArea"
    PLAYER_ROLE = "PlayerRole"
    OUTCOME_QUALITY = "OutcomeQuality"


class ItemStatus(str, Enum):
    MATCHED = "matched"
    NEW = "new"
    MISSING = "missing"
    ERROR = "error"


@dataclass
class Tag:
    id: int
    category: TagCategory
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "category": self.category.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tag":
        return cls(id=int(data["id"]), category=TagCategory(data["category"]), value=data["value"])


@dataclass
class ClipRecord:
    """A catalogued clip. `location` is an absolute file path for local clips."""

    title: str
    location: str
    storage_kind: StorageKind = StorageKind.LOCAL
    description: str = ""
    duration: int = 0
    tags: List[Tag] = field(default_factory=list)
    thumbnail_path: Optional[str] = None
    favorite: bool = False
    id: Optional[int] = None

    @property
    def is_local(self) -> bool:
        return self.storage_kind == StorageKind.LOCAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "storage_kind": self.storage_kind.value,
            "location": self.location,
            "duration": self.duration,
            "tags": [t.to_dict() for t in self.tags],
            "thumbnail_path": self.thumbnail_path,
            "favorite": self.favorite,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClipRecord":
        return cls(
            id=data.get("id"),
            title=data.get("title", ""),
            description=data.get("description", ""),
            storage_kind=StorageKind(data.get("storage_kind", StorageKind.LOCAL.value)),
            location=data.get("location", ""),
            duration=int(data.get("duration", 0)),
            tags=[Tag.from_dict(t) for t in data.get("tags", [])],
            thumbnail_path=data.get("thumbnail_path"),
            favorite=bool(data.get("favorite", False)),
        )


@dataclass(frozen=True)
class FileSystemEntry:
    path: str
    size: int
    modified: str  # ISO-8601


# Per-item outcomes. Each add/remove step returns exactly one of these.

@dataclass(frozen=True)
class AddedClip:
    id: int
    path: str
    title: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "path": self.path, "title": self.title}


@dataclass(frozen=True)
class RemovedClip:
    id: int
    path: str
    title: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "path": self.path, "title": self.title}


@dataclass(frozen=True)
class SyncError:
    path: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "message": self.message}


ItemOutcome = Union[AddedClip, RemovedClip, SyncError]


@dataclass
class SyncReport:
    total_scanned: int = 0
    added_clips: List[AddedClip] = field(default_factory=list)
    removed_clips: List[RemovedClip] = field(default_factory=list)
    errors: List[SyncError] = field(default_factory=list)

    @property
    def total_added(self) -> int:
        return len(self.added_clips)

    @property
    def total_removed(self) -> int:
        return len(self.removed_clips)

    def record(self, outcome: ItemOutcome):
        if isinstance(outcome, AddedClip):
            self.added_clips.append(outcome)
        elif isinstance(outcome, RemovedClip):
            self.removed_clips.append(outcome)
        else:
            self.errors.append(outcome)

    @classmethod
    def failed(cls, path: str, message: str) -> "SyncReport":
        return cls(errors=[SyncError(path=path, message=message)])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalScanned": self.total_scanned,
            "totalAdded": self.total_added,
            "totalRemoved": self.total_removed,
            "addedClips": [c.to_dict() for c in self.added_clips],
            "removedClips": [c.to_dict() for c in self.removed_clips],
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class PreviewItem:
    path: str
    status: ItemStatus
    directory: Optional[str] = None
    file_size: Optional[int] = None
    last_modified: Optional[str] = None
    clip_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[Tag]] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"path": self.path, "status": self.status.value}
        optional = {
            "directory": self.directory,
            "fileSize": self.file_size,
            "lastModified": self.last_modified,
            "clipId": self.clip_id,
            "title": self.title,
            "description": self.description,
            "tags": [t.to_dict() for t in self.tags] if self.tags is not None else None,
            "errorMessage": self.error_message,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass
class PreviewReport:
    root_folder_path: str
    total_scanned: int = 0
    items: List[PreviewItem] = field(default_factory=list)

    def count(self, status: ItemStatus) -> int:
        return sum(1 for item in self.items if item.status == status)

    @property
    def matched_files_count(self) -> int:
        return self.count(ItemStatus.MATCHED)

    @property
    def new_files_count(self) -> int:
        return self.count(ItemStatus.NEW)

    @property
    def missing_files_count(self) -> int:
        return self.count(ItemStatus.MISSING)

    @property
    def error_count(self) -> int:
        return self.count(ItemStatus.ERROR)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rootFolderPath": self.root_folder_path,
            "totalScanned": self.total_scanned,
            "matchedFilesCount": self.matched_files_count,
            "newFilesCount": self.new_files_count,
            "missingFilesCount": self.missing_files_count,
            "errorCount": self.error_count,
            "items": [item.to_dict() for item in self.items],
        }
