from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from . import config
from .exceptions import InvalidEventError, InvalidSidecarModeError


@dataclass(frozen=True, order=True)
class Timestamp:
    """
    Capture moment at one-second resolution.
    Two files with equal Timestamp and extension belong to the same burst group.
    """
    value: datetime

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["Timestamp"]:
        """
        Parses an EXIF style "YYYY:MM:DD HH:MM:SS" string.
        Sub-second and time-zone suffixes are dropped. Returns None when
        the value is empty or not a real date (e.g. "0000:00:00 00:00:00").
        """
        if not raw:
            return None
        clean = str(raw).strip()[:19]
        try:
            dt = datetime.strptime(clean, config.EXIF_DATE_FORMAT)
        except ValueError:
            return None
        return cls(dt.replace(microsecond=0))

    def canonical(self) -> str:
        return self.value.strftime(config.TIMESTAMP_FORMAT)

    def __str__(self) -> str:
        return self.canonical()


@dataclass
class MediaFile:
    """
    A file found during a scan.
    While un-renamed its identity is its path; afterwards only
    (capture_timestamp, extension) ties it back to the original.
    """
    path: Path
    extension: str                          # upper-case, no dot
    capture_timestamp: Optional[Timestamp] = None

    @classmethod
    def from_path(cls, path: Path) -> "MediaFile":
        return cls(path=path, extension=path.suffix.lstrip('.').upper())

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def group_key(self) -> Tuple[Optional[Timestamp], str]:
        return (self.capture_timestamp, self.extension)


@dataclass
class TimestampGroup:
    """Burst group: files sharing one capture timestamp and one extension, in discovery order."""
    timestamp: Optional[Timestamp]
    extension: str
    files: List[MediaFile] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.files)


@dataclass(frozen=True)
class IndexEntry:
    original_name: str
    extension: str
    path: Path


class TimestampIndex:
    """
    Timestamp -> originals sharing it, in discovery order.
    Built once before any rename; read-only after freeze().
    """

    def __init__(self):
        self._entries: Dict[Timestamp, List[IndexEntry]] = defaultdict(list)
        self._frozen = False

    def add(self, media: MediaFile):
        if self._frozen:
            raise RuntimeError("TimestampIndex is frozen")
        if media.capture_timestamp is None:
            return
        self._entries[media.capture_timestamp].append(
            IndexEntry(media.name, media.extension, media.path)
        )

    def freeze(self) -> "TimestampIndex":
        self._frozen = True
        return self

    def entries(self, ts: Timestamp) -> List[IndexEntry]:
        return list(self._entries.get(ts, ()))

    def candidates(self, ts: Timestamp, extension: str) -> List[IndexEntry]:
        """Entries for ts whose extension matches exactly (case-insensitive)."""
        ext = extension.upper()
        return [e for e in self._entries.get(ts, ()) if e.extension == ext]

    def duplicate_groups(self) -> int:
        """Number of (timestamp, extension) burst groups holding more than one file."""
        counts: Dict[Tuple[Timestamp, str], int] = defaultdict(int)
        for ts, entries in self._entries.items():
            for e in entries:
                counts[(ts, e.extension)] += 1
        return sum(1 for n in counts.values() if n > 1)

    def __contains__(self, ts: Timestamp) -> bool:
        return ts in self._entries

    def __len__(self) -> int:
        return sum(len(v) for v in self._entries.values())


class SidecarMode(str, Enum):
    BACKUP = "backup"
    SKIP = "skip"
    OVERWRITE = "overwrite"

    @classmethod
    def parse(cls, value: str) -> "SidecarMode":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise InvalidSidecarModeError(
                f"Invalid sidecar mode '{value}'. Valid modes: {valid}"
            ) from None


@dataclass(frozen=True)
class NamingTemplate:
    event: str
    category: Optional[str] = None

    def validate(self) -> "NamingTemplate":
        if not self.event:
            raise InvalidEventError("Event descriptor is required")
        if len(self.event) > config.MAX_EVENT_LENGTH:
            raise InvalidEventError(
                f"Event descriptor too long (>{config.MAX_EVENT_LENGTH} chars)"
            )
        for part, label in ((self.event, "Event descriptor"), (self.category or "", "Category")):
            # exiftool expands %-codes in -FileName values
            if any(c.isspace() or c in '/\\%' for c in part):
                raise InvalidEventError(f"{label} must not contain spaces, path separators or '%'")
        return self

    def infix(self) -> str:
        if self.category:
            return f"_{self.category}-{self.event}"
        return f"_{self.event}"


@dataclass
class RenamePlan:
    """original path -> target filename (same directory)."""
    targets: Dict[Path, str] = field(default_factory=dict)
    _originals: Dict[Path, Path] = field(default_factory=dict, repr=False)

    def add(self, path: Path, target_name: str):
        self.targets[path] = target_name
        self._originals[path.parent / target_name] = path

    def original_for(self, renamed: Path) -> Optional[Path]:
        return self._originals.get(renamed)

    def items(self):
        return self.targets.items()

    def __len__(self) -> int:
        return len(self.targets)

    def __contains__(self, path: Path) -> bool:
        return path in self.targets


@dataclass
class RenameResult:
    renamed: Dict[Path, Path] = field(default_factory=dict)   # original -> new path
    unchanged: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)


@dataclass
class BackupSnapshot:
    backup_root: Path
    created_at: datetime
    copied: Set[Path] = field(default_factory=set)     # paths relative to the scan root
    failed: List[Path] = field(default_factory=list)


@dataclass(frozen=True)
class SidecarRecord:
    target_file: Path
    original_filename: str
    mode: SidecarMode

    @property
    def sidecar_path(self) -> Path:
        return self.target_file.with_name(self.target_file.name + config.SIDECAR_EXT)

    @property
    def title(self) -> str:
        return f"{config.SIDECAR_TITLE_PREFIX}{self.original_filename}"


@dataclass
class SidecarResult:
    created: List[SidecarRecord] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)
    unmatched: List[Path] = field(default_factory=list)
    existing_backed_up: int = 0
    existing_deleted: int = 0


@dataclass
class RunOptions:
    root: Path
    template: NamingTemplate
    recursive: bool = False
    backup: bool = True
    sidecar_mode: SidecarMode = SidecarMode.BACKUP
    create_sidecars: bool = True
    dry_run: bool = False
    progress: bool = False
    max_workers: int = 1


@dataclass
class RunSummary:
    files_scanned: int = 0
    raw_count: int = 0
    image_count: int = 0
    brands: Dict[str, int] = field(default_factory=dict)
    undated: int = 0
    duplicate_groups: int = 0
    files_renamed: int = 0
    files_unchanged: int = 0
    rename_failures: int = 0
    sidecars_created: int = 0
    sidecars_skipped: int = 0
    sidecar_failures: int = 0
    unmatched_originals: int = 0
    existing_sidecars_backed_up: int = 0
    existing_sidecars_deleted: int = 0
    backup_root: Optional[Path] = None
    backup_failures: int = 0
