import os
import logging
from collections import Counter
from pathlib import Path
from typing import List, Tuple

from tqdm import tqdm

from ..exceptions import MetadataToolError
from ..metadata.extract import ExifTool
from ..models import RenamePlan, RenameResult
from .backup import unique_path

PENDING_SUFFIX = ".pending"


class RenameExecutor:
    def __init__(self, tool: ExifTool):
        self.tool = tool

    def execute(self, plan: RenamePlan, dry_run: bool = False, progress: bool = False) -> RenameResult:
        """
        Applies the plan one file at a time through ExifTool.

        Only files from the scan are ever handed to the tool, so backup
        directories stay out of the pass without being moved. A target that is
        still occupied by another batch member is reached via a temporary
        '<target>.pending' name once the whole batch has moved.
        """
        result = RenameResult()
        # Folder-scoped, case-folded names of batch members not yet moved
        remaining = Counter(self._key(p) for p in plan.targets)
        deferred: List[Tuple[Path, Path]] = []  # (original, temporary path)

        if dry_run:
            for src, name in plan.items():
                if src.name == name:
                    result.unchanged.append(src)
                else:
                    logging.info(f"[DRY RUN] Rename {src} -> {name}")
            return result

        logging.info(f"Renaming {len(plan)} files...")
        for src, name in tqdm(list(plan.items()), desc="Renaming", disable=not progress):
            remaining[self._key(src)] -= 1
            dest = src.parent / name

            if src.name == name:
                result.unchanged.append(src)
                continue

            if dest.exists() and not self._same_file(src, dest):
                if remaining[self._key(dest)] > 0:
                    temp = src.parent / (name + PENDING_SUFFIX)
                    if self._rename(src, temp.name):
                        deferred.append((src, temp))
                    else:
                        result.failed.append(src)
                    continue
                logging.warning(f"Target {dest} already exists; leaving {src.name} unchanged")
                result.failed.append(src)
                continue

            if self._rename(src, name):
                result.renamed[src] = dest
            else:
                result.failed.append(src)

        for src, temp in deferred:
            name = plan.targets[src]
            dest = src.parent / name
            if dest.exists():
                logging.warning(f"Target {dest} already exists; restoring {src.name}")
            elif self._rename(temp, name):
                result.renamed[src] = dest
                continue
            self._restore(src, temp)
            result.failed.append(src)

        logging.info(f"Renamed {len(result.renamed)} files "
                     f"({len(result.unchanged)} unchanged, {len(result.failed)} failed)")
        return result

    def _rename(self, src: Path, name: str) -> bool:
        try:
            self.tool.rename(src, name)
        except MetadataToolError as e:
            logging.warning(f"Rename failed for {src}: {e}")
            return False
        return True

    @staticmethod
    def _restore(src: Path, temp: Path):
        """
        Moves a stranded temporary file back under its original name, or the
        next free ' (n)' variant when another batch member took that name.
        """
        restored = unique_path(src)
        try:
            temp.rename(restored)
        except OSError as e:
            logging.warning(f"Could not restore {temp} to {restored.name}: {e}")
            return
        if restored != src:
            logging.warning(f"{src.name} was taken; restored as {restored.name}")

    @staticmethod
    def _key(path: Path) -> Tuple[Path, str]:
        return (path.parent, path.name.lower())

    @staticmethod
    def _same_file(a: Path, b: Path) -> bool:
        """Case-insensitive filesystems report the source itself as the target."""
        try:
            return os.path.samefile(a, b)
        except OSError:
            return False
