import pytest

from clipsync.paths import CaseInsensitivePaths, CaseSensitivePaths, validate_root_folder


@pytest.mark.parametrize("value", [None, "", "   "])
def test_root_folder_is_required(value):
    assert validate_root_folder(value) == "Root folder path is required"


def test_root_folder_must_be_absolute():
    assert validate_root_folder("videos/clips") == "Root folder path must be an absolute path"


def test_root_folder_must_exist(tmp_path):
    assert validate_root_folder(str(tmp_path / "nope")) == "Root folder does not exist"


def test_root_folder_must_be_a_directory(tmp_path):
    f = tmp_path / "clip.mp4"
    f.touch()
    assert validate_root_folder(str(f)) == "Root folder does not exist"


def test_valid_root_folder(tmp_path):
    assert validate_root_folder(str(tmp_path)) is None


def test_identity_keys():
    assert CaseInsensitivePaths().key("C:\\V\\a.mp4") == CaseInsensitivePaths().key("c:\\v\\A.MP4")
    assert CaseSensitivePaths().key("/v/A.mp4") != CaseSensitivePaths().key("/v/a.mp4")
