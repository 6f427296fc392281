import pytest
from pathlib import Path
from typing import Dict, Optional, Set

from camera_renamer.exceptions import MetadataToolError
from camera_renamer.metadata.extract import ExifTool


class FakeExifTool(ExifTool):
    """
    In-memory stand-in for the exiftool binary.
    DateTimeOriginal values are keyed by path and follow the file on rename;
    sidecars are plain text files holding the title.
    """

    def __init__(self):
        super().__init__("fake-exiftool")
        self.dates: Dict[Path, str] = {}
        self.fail_sidecars: Set[str] = set()
        self.fail_renames: Set[str] = set()
        self.reads = []

    def set_date(self, path: Path, raw: Optional[str]):
        if raw:
            self.dates[path] = raw

    def read_datetime_original(self, path: Path) -> str:
        self.reads.append(path)
        return self.dates.get(path, "")

    def rename(self, path: Path, target_name: str):
        dest = path.parent / target_name
        if path.name in self.fail_renames:
            raise MetadataToolError(f"cannot rename {path}")
        if dest.exists():
            raise MetadataToolError(f"Error: '{dest}' already exists")
        path.rename(dest)
        if path in self.dates:
            self.dates[dest] = self.dates.pop(path)

    def write_sidecar(self, path: Path, sidecar_path: Path, title: str):
        if path.name in self.fail_sidecars:
            raise MetadataToolError(f"cannot write {sidecar_path}")
        if sidecar_path.exists():
            raise MetadataToolError(f"Error: '{sidecar_path}' already exists")
        sidecar_path.write_text(title, encoding="utf-8")


@pytest.fixture
def tool():
    return FakeExifTool()


@pytest.fixture
def photo_root(tmp_path):
    root = tmp_path / "shoot"
    root.mkdir()
    return root


@pytest.fixture
def make_photo(tool):
    """Creates a file with unique content and registers its DateTimeOriginal."""
    def _make(root: Path, name: str, date: Optional[str] = "2024:09:24 14:23:12") -> Path:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(f"pixels of {name}".encode())
        tool.set_date(path, date)
        return path
    return _make
