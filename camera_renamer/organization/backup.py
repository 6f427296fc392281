import shutil
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List

from tqdm import tqdm

from .. import config
from ..exceptions import BackupError
from ..models import BackupSnapshot, MediaFile


def unique_path(dest: Path) -> Path:
    """
    If dest exists, append ' (1)', ' (2)', ... before the suffix.
    Returns a Path that does not exist.
    """
    if not dest.exists():
        return dest

    i = 1
    while True:
        candidate = dest.parent / f"{dest.stem} ({i}){dest.suffix}"
        if not candidate.exists():
            return candidate
        i += 1


class BackupSnapshotter:
    def __init__(self, root: Path, clock: Callable[[], datetime] = datetime.now):
        self.root = root
        self.clock = clock

    def create_root(self) -> BackupSnapshot:
        """Creates an empty backup_<YYYYMMDD_HHMMSS> directory under the scan root."""
        created_at = self.clock()
        base = f"{config.BACKUP_PREFIX}{created_at.strftime(config.BACKUP_DATE_FORMAT)}"
        backup_root = self.root / base
        i = 1
        while backup_root.exists():
            backup_root = self.root / f"{base}_{i}"
            i += 1
        try:
            backup_root.mkdir(parents=True)
        except OSError as e:
            raise BackupError(f"Could not create backup directory {backup_root}: {e}") from e
        return BackupSnapshot(backup_root=backup_root, created_at=created_at)

    def snapshot(self, files: List[MediaFile], progress: bool = False) -> BackupSnapshot:
        """
        Copies every file into a fresh backup root, mirroring its path
        relative to the scan root. A failed copy is logged and skipped.
        """
        snap = self.create_root()
        logging.info(f"Starting backup: {len(files)} files -> {snap.backup_root}")

        for media in tqdm(files, desc="Backup progress", unit="file", disable=not progress):
            rel = media.path.relative_to(self.root)
            dest = snap.backup_root / rel
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(media.path, dest)
                snap.copied.add(rel)
            except OSError as e:
                logging.warning(f"Backup copy failed for {media.path}: {e}")
                snap.failed.append(rel)

        logging.info(f"Backup created in: {snap.backup_root} "
                     f"({len(snap.copied)} copied, {len(snap.failed)} failed)")
        return snap

    def stash(self, snap: BackupSnapshot, path: Path) -> Path:
        """Moves path into the snapshot at its mirrored location, never overwriting."""
        dest = unique_path(snap.backup_root / path.relative_to(self.root))
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(path), str(dest))
        return dest
