import pytest

from clipsync.catalog import JsonCatalogStore
from clipsync.models import ClipRecord


class FakeThumbnails:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []
        self.deleted = []

    def generate(self, file_path, clip_id):
        self.calls.append((file_path, clip_id))
        if self.error:
            raise self.error
        return self.result

    def delete_thumbnail(self, thumbnail_path):
        self.deleted.append(thumbnail_path)
        return True


@pytest.fixture()
def store(tmp_path):
    return JsonCatalogStore(str(tmp_path / "catalog.json"))


@pytest.fixture()
def video_root(tmp_path):
    root = tmp_path / "videos"
    root.mkdir()
    return root


@pytest.fixture()
def write_video():
    def _write(directory, name):
        path = directory / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"00")
        return path
    return _write


@pytest.fixture()
def thumbnails():
    return FakeThumbnails


@pytest.fixture()
def scenario(video_root, store, write_video):
    """fileA.mp4 catalogued as id 1, fileB.mp4 uncatalogued, id 2 points at a missing file."""
    file_a = write_video(video_root, "fileA.mp4")
    file_b = write_video(video_root, "fileB.mp4")
    missing = video_root / "missing.mp4"
    store.insert(ClipRecord(title="fileA", location=str(file_a), description="Counter attack"))
    store.insert(ClipRecord(title="missing", location=str(missing)))
    return {"root": str(video_root), "a": str(file_a), "b": str(file_b), "missing": str(missing)}
