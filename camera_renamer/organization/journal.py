import json
import logging
from pathlib import Path
from typing import List

from .. import config
from ..models import BackupSnapshot, MediaFile, RenameResult


class RenameJournal:
    """Writes a JSON manifest of original -> renamed paths into the backup snapshot."""

    def __init__(self, root: Path):
        self.root = root

    def write(self, snap: BackupSnapshot, files: List[MediaFile], result: RenameResult) -> Path:
        entries = []
        for media in files:
            new_path = result.renamed.get(media.path)
            if new_path is None:
                continue
            entries.append({
                "original": media.path.relative_to(self.root).as_posix(),
                "renamed": new_path.relative_to(self.root).as_posix(),
                "timestamp": str(media.capture_timestamp) if media.capture_timestamp else None,
            })

        manifest = snap.backup_root / config.MANIFEST_NAME
        data = {
            "root": str(self.root),
            "created_at": snap.created_at.isoformat(),
            "renames": entries,
        }
        manifest.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logging.info(f"Wrote rename manifest ({len(entries)} entries): {manifest}")
        return manifest
