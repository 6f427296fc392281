import logging
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from ..exceptions import MetadataToolError
from ..models import (
    BackupSnapshot, RenamePlan, SidecarMode, SidecarRecord, SidecarResult, TimestampIndex,
)
from ..organization.backup import BackupSnapshotter
from ..scanning.filesystem import InventoryScanner
from .extract import ExifTool, TimestampExtractor


class SidecarReconciler:
    """
    Writes an XMP sidecar next to every renamed file recording its
    pre-rename filename as 'Original: <name>'.

    Modes (one per run):
      - backup:    existing sidecars are moved into the backup snapshot first.
      - skip:      existing sidecars stay; their targets get no new sidecar.
      - overwrite: existing sidecars are deleted first.
    """

    def __init__(self,
                 tool: ExifTool,
                 extractor: TimestampExtractor,
                 scanner: InventoryScanner,
                 snapshotter: BackupSnapshotter,
                 mode: SidecarMode = SidecarMode.BACKUP):
        self.tool = tool
        self.extractor = extractor
        self.scanner = scanner
        self.snapshotter = snapshotter
        self.mode = mode
        self.result = SidecarResult()

    def prepare(self, root: Path, recursive: bool,
                snapshot: Optional[BackupSnapshot]) -> Optional[BackupSnapshot]:
        """
        Clears pre-existing sidecars out of the way according to the mode.
        In backup mode a backup root is created if the run has none yet;
        the (possibly new) snapshot is returned.
        """
        existing = self.scanner.scan_sidecars(root, recursive)
        if not existing:
            return snapshot
        logging.info(f"Found {len(existing)} existing XMP sidecar files")

        if self.mode is SidecarMode.BACKUP:
            if snapshot is None:
                snapshot = self.snapshotter.create_root()
            logging.info(f"Backing up existing XMP sidecar files to {snapshot.backup_root}...")
            for path in existing:
                try:
                    self.snapshotter.stash(snapshot, path)
                    self.result.existing_backed_up += 1
                except OSError as e:
                    logging.warning(f"Could not back up sidecar {path}: {e}")

        elif self.mode is SidecarMode.OVERWRITE:
            logging.info("Removing existing XMP sidecar files...")
            for path in existing:
                try:
                    path.unlink()
                    self.result.existing_deleted += 1
                except OSError as e:
                    logging.warning(f"Could not delete sidecar {path}: {e}")

        else:
            logging.info("Skipping images with existing XMP sidecar files...")

        return snapshot

    def resolve_original(self, renamed: Path, index: TimestampIndex,
                         plan: Optional[RenamePlan] = None) -> Optional[str]:
        """
        Joins a renamed file back to its pre-rename name through
        (timestamp, extension). Several originals with the same key are
        told apart by the rename plan, then by the file still sitting at its
        original path (its rename failed); otherwise the first wins. Falls back
        to the first original with the same timestamp of any extension.
        """
        ts = self.extractor.read_timestamp(renamed)
        if ts is None:
            return None

        exact = index.candidates(ts, renamed.suffix.lstrip('.'))
        if exact:
            if len(exact) > 1:
                keys = [plan.original_for(renamed)] if plan is not None else []
                keys.append(renamed)
                for key in keys:
                    for entry in exact:
                        if entry.path == key:
                            return entry.original_name
            return exact[0].original_name

        entries = index.entries(ts)
        if entries:
            return entries[0].original_name
        return None

    def reconcile(self, files: List[Path], index: TimestampIndex,
                  plan: Optional[RenamePlan] = None, progress: bool = False) -> SidecarResult:
        logging.info(f"Creating XMP sidecar files for {len(files)} files...")

        for path in tqdm(files, desc="Sidecars", unit="file", disable=not progress):
            original = self.resolve_original(path, index, plan)
            if original is None:
                logging.warning(f"Could not match DateTimeOriginal for {path}, using current filename")
                self.result.unmatched.append(path)
                original = path.name

            record = SidecarRecord(target_file=path, original_filename=original, mode=self.mode)
            if self.mode is SidecarMode.SKIP and record.sidecar_path.exists():
                self.result.skipped.append(path)
                continue

            try:
                self.tool.write_sidecar(path, record.sidecar_path, record.title)
                self.result.created.append(record)
            except MetadataToolError as e:
                logging.warning(f"XMP sidecar creation failed for {path}: {e}")
                self.result.failed.append(path)

        logging.info(f"Sidecars: {len(self.result.created)} created, "
                     f"{len(self.result.skipped)} skipped, {len(self.result.failed)} failed")
        return self.result
