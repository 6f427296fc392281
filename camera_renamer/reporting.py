import logging
from typing import List, Optional

from .models import (
    BackupSnapshot, MediaFile, RenameResult, RunOptions, RunSummary, SidecarResult, TimestampIndex,
)
from .scanning.filesystem import inventory_stats


class SummaryReporter:
    """Aggregates the counts of one run and prints the closing summary."""

    def collect(self,
                files: List[MediaFile],
                index: TimestampIndex,
                rename: Optional[RenameResult] = None,
                sidecars: Optional[SidecarResult] = None,
                snapshot: Optional[BackupSnapshot] = None) -> RunSummary:
        raw_count, image_count, brands = inventory_stats(files)
        summary = RunSummary(
            files_scanned=len(files),
            raw_count=raw_count,
            image_count=image_count,
            brands=brands,
            undated=sum(1 for f in files if f.capture_timestamp is None),
            duplicate_groups=index.duplicate_groups(),
        )

        if rename is not None:
            summary.files_renamed = len(rename.renamed)
            summary.files_unchanged = len(rename.unchanged)
            summary.rename_failures = len(rename.failed)

        if sidecars is not None:
            summary.sidecars_created = len(sidecars.created)
            summary.sidecars_skipped = len(sidecars.skipped)
            summary.sidecar_failures = len(sidecars.failed)
            summary.unmatched_originals = len(sidecars.unmatched)
            summary.existing_sidecars_backed_up = sidecars.existing_backed_up
            summary.existing_sidecars_deleted = sidecars.existing_deleted

        if snapshot is not None:
            summary.backup_root = snapshot.backup_root
            summary.backup_failures = len(snapshot.failed)

        return summary

    def render(self, summary: RunSummary, options: RunOptions) -> List[str]:
        template = options.template
        lines = [
            "=" * 40,
            "PROCESSING SUMMARY".center(40).rstrip(),
            "=" * 40,
            f"Files found: {summary.files_scanned} ({summary.raw_count} RAW, {summary.image_count} image)",
        ]
        for brand, count in sorted(summary.brands.items()):
            lines.append(f"  {brand}: {count} RAW")
        lines += [
            f"Files without DateTimeOriginal: {summary.undated}",
            f"Duplicate timestamps found: {summary.duplicate_groups}",
            f"Files renamed: {summary.files_renamed}",
            f"Files already named: {summary.files_unchanged}",
            f"Rename failures: {summary.rename_failures}",
        ]
        if options.create_sidecars:
            lines += [
                f"XMP sidecar files created: {summary.sidecars_created}",
                f"XMP sidecar files skipped: {summary.sidecars_skipped}",
                f"XMP sidecar failures: {summary.sidecar_failures}",
                f"Unmatched originals: {summary.unmatched_originals}",
            ]
            if summary.existing_sidecars_backed_up:
                lines.append(f"Existing sidecars backed up: {summary.existing_sidecars_backed_up}")
            if summary.existing_sidecars_deleted:
                lines.append(f"Existing sidecars deleted: {summary.existing_sidecars_deleted}")
            lines.append(f"XMP handling mode: {options.sidecar_mode.value}")
        else:
            lines.append("XMP sidecar files created: 0 (skipped)")
        lines += [
            f"Category: {template.category or '(none)'}",
            f"Event: {template.event}",
            f"Recursive processing: {'ENABLED' if options.recursive else 'DISABLED'}",
        ]
        if summary.backup_root is not None:
            lines.append(f"Backup created: {summary.backup_root}")
            if summary.backup_failures:
                lines.append(f"Backup copy failures: {summary.backup_failures}")
        else:
            lines.append("Backup: Not created")
        if options.dry_run:
            lines.append("DRY RUN: no files were changed")
        lines.append("=" * 40)
        return lines

    def report(self, summary: RunSummary, options: RunOptions):
        for line in self.render(summary, options):
            logging.info(line)
