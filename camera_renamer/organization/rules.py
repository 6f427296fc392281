import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from .. import config
from ..exceptions import RenameCollisionError
from ..models import MediaFile, NamingTemplate, RenamePlan, Timestamp, TimestampGroup

GroupKey = Tuple[Optional[Timestamp], str]


class RenamePlanner:
    """
    Computes the target filename of every file:

        <timestamp>_[<category>-]<event>[-<n>].<ext>

    The burst counter <n> is scoped to (timestamp, extension), so a RAW/JPEG
    pair sharing a timestamp both stay suffix-free while a three-shot JPEG
    burst becomes -1, -2, -3 in discovery order.
    """

    def __init__(self, template: NamingTemplate):
        self.template = template

    def plan(self, groups: List[TimestampGroup]) -> RenamePlan:
        sizes: Dict[GroupKey, int] = {(g.timestamp, g.extension): g.size for g in groups}
        counters: Dict[GroupKey, int] = {}
        # Names claimed so far, per folder (lower-cased for case-insensitive filesystems)
        used_names: Dict[Path, Set[str]] = defaultdict(set)

        plan = RenamePlan()
        for group in groups:
            for media in group.files:
                ordinal = self.next_ordinal(counters, media.group_key)
                name = self.target_name(media, ordinal, sizes[media.group_key])

                folder = media.path.parent
                if name.lower() in used_names[folder]:
                    raise RenameCollisionError(
                        f"Two files in {folder} would both be renamed to {name}"
                    )
                used_names[folder].add(name.lower())
                plan.add(media.path, name)

        logging.info(f"Planned {len(plan)} renames across {len(groups)} timestamp groups")
        return plan

    def target_name(self, media: MediaFile, ordinal: int, group_size: int) -> str:
        if media.capture_timestamp is not None:
            base = media.capture_timestamp.canonical()
        else:
            base = config.UNDATED_PLACEHOLDER
        suffix = f"-{ordinal}" if group_size > 1 else ""
        return f"{base}{self.template.infix()}{suffix}{media.path.suffix}"

    @staticmethod
    def next_ordinal(counters: Dict[GroupKey, int], key: GroupKey) -> int:
        """1-based position of the next member of the burst group."""
        counters[key] = counters.get(key, 0) + 1
        return counters[key]
