import os
import logging
from collections import Counter
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Tuple, Dict

from .. import config
from ..exceptions import NoEligibleFilesError
from ..models import MediaFile


def is_backup_dir(name: str) -> bool:
    return name.startswith(config.BACKUP_PREFIX)


class InventoryScanner:
    def __init__(self, allowed_exts: Optional[Set[str]] = None):
        self.allowed_exts = {e.upper() for e in (allowed_exts or config.SUPPORTED_EXTS)}

    def scan(self, root: Path, recursive: bool = False) -> Iterator[MediaFile]:
        """
        Lazily yields every supported media file under root, in a stable
        discovery order. backup_* directories are never entered.
        """
        for path in self._iter_files(root, recursive):
            if path.suffix.lstrip('.').upper() in self.allowed_exts:
                yield MediaFile.from_path(path)

    def collect(self, root: Path, recursive: bool = False) -> List[MediaFile]:
        """Materialises the inventory. An empty inventory stops the whole run."""
        files = list(self.scan(root, recursive))
        if not files:
            supported = " ".join(sorted(self.allowed_exts))
            raise NoEligibleFilesError(
                f"No supported photo files found in {root} (supported formats: {supported})"
            )
        logging.info(f"Found {len(files)} photo files to process in {root}")
        return files

    def scan_sidecars(self, root: Path, recursive: bool = False) -> List[Path]:
        """Existing .xmp sidecars in scope, backup directories excluded."""
        return [
            p for p in self._iter_files(root, recursive)
            if p.suffix.lower() == config.SIDECAR_EXT
        ]

    def _iter_files(self, root: Path, recursive: bool) -> Iterator[Path]:
        """Depth-first walker using os.scandir for speed."""
        stack = [root]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except (OSError, PermissionError):
                logging.warning(f"Permission denied: {current}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            files = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    if recursive and not is_backup_dir(e.name):
                        dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    files.append(Path(e.path))

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)

            for f in files:
                yield f


def inventory_stats(files: Iterable[MediaFile]) -> Tuple[int, int, Dict[str, int]]:
    """
    Returns (raw_count, image_count, brands) where brands counts RAW files
    per camera maker as guessed from the extension.
    """
    raw_count = 0
    image_count = 0
    brands: Counter = Counter()
    for f in files:
        if f.extension in config.RAW_EXTS:
            raw_count += 1
            brands[config.CAMERA_BRANDS.get(f.extension, config.OTHER_BRAND)] += 1
        else:
            image_count += 1
    return raw_count, image_count, dict(brands)
