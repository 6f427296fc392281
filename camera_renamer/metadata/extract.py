import logging
import shutil
import subprocess
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import exifread
from tqdm import tqdm

from .. import config
from ..exceptions import MetadataToolError
from ..models import MediaFile, Timestamp, TimestampGroup, TimestampIndex


class ExifTool:
    """
    Wraps the 'exiftool' command line utility.
    Must be installed and on the system PATH. Every call works on a single
    file, so the tool never sees anything outside the list we hand it.
    """

    def __init__(self, binary: str = config.EXIFTOOL_BIN):
        self.binary = binary

    def ensure_available(self):
        if shutil.which(self.binary) is None:
            raise MetadataToolError(
                f"ExifTool is not installed or not in PATH ({self.binary}). "
                "Please install ExifTool: https://exiftool.org/"
            )

    def read_datetime_original(self, path: Path) -> str:
        """Raw DateTimeOriginal value, or "" when the tag is absent."""
        return self._run(["-DateTimeOriginal", "-s3", str(path)]).strip()

    def rename(self, path: Path, target_name: str):
        """Renames path in place. ExifTool refuses to overwrite an existing file."""
        self._run(["-q", f"-FileName={target_name}", str(path)])

    def write_sidecar(self, path: Path, sidecar_path: Path, title: str):
        """Creates an XMP sidecar next to path carrying XMP:Title."""
        self._run(["-q", f"-XMP:Title={title}", "-o", str(sidecar_path), str(path)])

    def _run(self, args: List[str]) -> str:
        cmd = [self.binary, *args]
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise MetadataToolError(f"Failed to start {self.binary}: {e}") from e
        if proc.returncode != 0:
            detail = (proc.stderr or "").strip() or f"exit status {proc.returncode}"
            raise MetadataToolError(f"{self.binary} {' '.join(args)}: {detail}")
        return proc.stdout or ""


class TimestampExtractor:
    """
    Reads DateTimeOriginal for each file and groups files into burst groups.

    Strategies:
      - 'exifread' (fast, Python-native) for the EXIF DateTimeOriginal tag.
      - 'exiftool' when exifread finds nothing or cannot parse the container.
    """

    def __init__(self, tool: ExifTool, use_exifread: bool = True, max_workers: int = 1):
        self.tool = tool
        self.use_exifread = use_exifread
        self.max_workers = max_workers

    def read_timestamp(self, path: Path) -> Optional[Timestamp]:
        if self.use_exifread:
            ts = Timestamp.parse(self._read_exifread(path))
            if ts:
                return ts

        try:
            raw = self.tool.read_datetime_original(path)
        except MetadataToolError as e:
            logging.debug(f"ExifTool failed for {path}: {e}")
            return None
        return Timestamp.parse(raw)

    def extract(self, files: List[MediaFile], progress: bool = False) -> TimestampIndex:
        """
        Fills in capture_timestamp on every file and returns the frozen
        TimestampIndex. Discovery order is preserved even when reads run
        in parallel.
        """
        paths = [f.path for f in files]
        if self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(tqdm(executor.map(self.read_timestamp, paths),
                                    total=len(paths), desc="Reading timestamps",
                                    disable=not progress))
        else:
            results = [self.read_timestamp(p)
                       for p in tqdm(paths, desc="Reading timestamps", disable=not progress)]

        index = TimestampIndex()
        undated = 0
        for media, ts in zip(files, results):
            media.capture_timestamp = ts
            if ts is None:
                undated += 1
                logging.warning(f"No DateTimeOriginal for {media.path}; fallback naming will be used")
            index.add(media)

        if undated:
            logging.info(f"{undated} file(s) without DateTimeOriginal")
        return index.freeze()

    def _read_exifread(self, path: Path) -> Optional[str]:
        try:
            with path.open('rb') as f:
                # details=False speeds up processing significantly
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            logging.debug(f"ExifRead failed for {path}: {e}")
            return None
        value = tags.get(config.EXIFREAD_DATE_TAG)
        return str(value).strip() if value is not None else None


def group_by_timestamp(files: List[MediaFile]) -> List[TimestampGroup]:
    """
    Splits files into burst groups keyed by (timestamp, extension).
    Groups come out in order of their first member; members keep discovery order.
    Undated files form their own (None, extension) groups.
    """
    groups: Dict[Tuple[Optional[Timestamp], str], TimestampGroup] = OrderedDict()
    for media in files:
        key = media.group_key
        if key not in groups:
            groups[key] = TimestampGroup(timestamp=key[0], extension=key[1])
        groups[key].files.append(media)
    return list(groups.values())
