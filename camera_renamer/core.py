import logging
from typing import Optional

from .metadata.extract import ExifTool, TimestampExtractor, group_by_timestamp
from .metadata.sidecars import SidecarReconciler
from .models import RunOptions, RunSummary
from .organization.backup import BackupSnapshotter
from .organization.journal import RenameJournal
from .organization.mover import RenameExecutor
from .organization.rules import RenamePlanner
from .reporting import SummaryReporter
from .scanning.filesystem import InventoryScanner, inventory_stats


class CameraRenamerApp:
    def __init__(self, tool: Optional[ExifTool] = None, use_exifread: bool = True):
        self.tool = tool or ExifTool()
        self.use_exifread = use_exifread

    def run(self, options: RunOptions) -> RunSummary:
        """
        Executes the rename pipeline, strictly in this order:
        1. Scan (fixed inventory, backup_* excluded)
        2. Extract timestamps & build the TimestampIndex
        3. Plan target names
        4. Backup snapshot (complete before any rename)
        5. Clear pre-existing sidecars per mode
        6. Rename
        7. Reconcile sidecars
        8. Summary
        """
        root = options.root
        template = options.template.validate()

        # --- Step 1: Scanning ---
        logging.info(f"Scanning {root} (recursive={options.recursive})...")
        scanner = InventoryScanner()
        files = scanner.collect(root, options.recursive)
        self._log_inventory(files)

        # --- Step 2: Timestamps ---
        extractor = TimestampExtractor(self.tool, self.use_exifread, options.max_workers)
        index = extractor.extract(files, progress=options.progress)
        logging.info(f"Duplicate timestamps found: {index.duplicate_groups()}")

        # --- Step 3: Planning ---
        plan = RenamePlanner(template).plan(group_by_timestamp(files))

        reporter = SummaryReporter()
        executor = RenameExecutor(self.tool)
        if options.dry_run:
            result = executor.execute(plan, dry_run=True)
            summary = reporter.collect(files, index, result)
            reporter.report(summary, options)
            return summary

        # --- Step 4: Backup ---
        snapshotter = BackupSnapshotter(root)
        snapshot = None
        if options.backup:
            snapshot = snapshotter.snapshot(files, progress=options.progress)
        else:
            logging.info("Backup skipped")

        # --- Step 5: Existing sidecars ---
        reconciler = None
        if options.create_sidecars:
            reconciler = SidecarReconciler(self.tool, extractor, scanner, snapshotter,
                                           options.sidecar_mode)
            snapshot = reconciler.prepare(root, options.recursive, snapshot)
        else:
            logging.info("Skipping XMP sidecar creation per user choice")

        # --- Step 6: Rename ---
        logging.info("Renaming files with DateTimeOriginal and counter for burst shots...")
        result = executor.execute(plan, progress=options.progress)
        if snapshot is not None:
            RenameJournal(root).write(snapshot, files, result)

        # --- Step 7: Sidecars ---
        sidecars = None
        if reconciler is not None:
            renamed_files = [m.path for m in scanner.scan(root, options.recursive)]
            sidecars = reconciler.reconcile(renamed_files, index, plan, progress=options.progress)

        # --- Step 8: Summary ---
        summary = reporter.collect(files, index, result, sidecars, snapshot)
        reporter.report(summary, options)
        logging.info("Camera rename process completed.")
        return summary

    def _log_inventory(self, files):
        raw_count, image_count, brands = inventory_stats(files)
        logging.info(f"File count: {len(files)} ({raw_count} RAW, {image_count} image)")
        for brand, count in sorted(brands.items()):
            logging.info(f"- {brand} camera detected ({count} RAW files)")
