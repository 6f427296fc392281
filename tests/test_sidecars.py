import logging
from pathlib import Path

from camera_renamer import config
from camera_renamer.metadata.extract import TimestampExtractor, group_by_timestamp
from camera_renamer.metadata.sidecars import SidecarReconciler
from camera_renamer.models import NamingTemplate, SidecarMode
from camera_renamer.organization.backup import BackupSnapshotter
from camera_renamer.organization.mover import RenameExecutor
from camera_renamer.organization.rules import RenamePlanner
from camera_renamer.scanning.filesystem import InventoryScanner


def _original_of(path: Path) -> str:
    text = (path.parent / (path.name + config.SIDECAR_EXT)).read_text(encoding="utf-8")
    assert text.startswith(config.SIDECAR_TITLE_PREFIX)
    return text[len(config.SIDECAR_TITLE_PREFIX):]


def _rename_all(root, tool, mode=SidecarMode.BACKUP, snapshot=None):
    """Runs scan -> index -> plan -> prepare -> rename and returns what reconcile needs."""
    scanner = InventoryScanner()
    files = scanner.collect(root)
    extractor = TimestampExtractor(tool, use_exifread=False)
    index = extractor.extract(files)
    plan = RenamePlanner(NamingTemplate("party", "Fam")).plan(group_by_timestamp(files))
    snapper = BackupSnapshotter(root)
    reconciler = SidecarReconciler(tool, extractor, scanner, snapper, mode)
    snapshot = reconciler.prepare(root, False, snapshot)
    RenameExecutor(tool).execute(plan)
    renamed = [m.path for m in scanner.scan(root)]
    return reconciler, renamed, index, plan, snapshot


def test_sidecar_round_trip_recovers_original_names(tool, make_photo, photo_root):
    make_photo(photo_root, "DSCF0001.RAF")
    make_photo(photo_root, "DSCF0001.JPG")
    make_photo(photo_root, "IMG_7.HEIC", date="2024:09:24 15:00:00")

    reconciler, renamed, index, plan, _ = _rename_all(photo_root, tool)
    result = reconciler.reconcile(renamed, index, plan)

    originals = {p.name: _original_of(p) for p in renamed}
    assert originals == {
        "2024-09-24_142312_Fam-party.JPG": "DSCF0001.JPG",
        "2024-09-24_142312_Fam-party.RAF": "DSCF0001.RAF",
        "2024-09-24_150000_Fam-party.HEIC": "IMG_7.HEIC",
    }
    assert len(result.created) == 3
    assert not result.unmatched


def test_burst_members_map_to_their_own_originals(tool, make_photo, photo_root):
    for name in ["IMG_0003.jpg", "IMG_0001.jpg", "IMG_0002.jpg"]:
        make_photo(photo_root, name)

    reconciler, renamed, index, plan, _ = _rename_all(photo_root, tool)
    reconciler.reconcile(renamed, index, plan)

    assert _original_of(photo_root / "2024-09-24_142312_Fam-party-1.jpg") == "IMG_0001.jpg"
    assert _original_of(photo_root / "2024-09-24_142312_Fam-party-2.jpg") == "IMG_0002.jpg"
    assert _original_of(photo_root / "2024-09-24_142312_Fam-party-3.jpg") == "IMG_0003.jpg"


def test_burst_member_with_failed_rename_keeps_its_own_original(tool, make_photo, photo_root):
    make_photo(photo_root, "IMG_0001.jpg")
    make_photo(photo_root, "IMG_0002.jpg")
    tool.fail_renames.add("IMG_0002.jpg")

    reconciler, renamed, index, plan, _ = _rename_all(photo_root, tool)
    reconciler.reconcile(renamed, index, plan)

    assert _original_of(photo_root / "2024-09-24_142312_Fam-party-1.jpg") == "IMG_0001.jpg"
    assert _original_of(photo_root / "IMG_0002.jpg") == "IMG_0002.jpg"


def test_without_plan_first_candidate_wins(tool, make_photo, photo_root):
    make_photo(photo_root, "IMG_0001.jpg")
    make_photo(photo_root, "IMG_0002.jpg")

    reconciler, renamed, index, _, _ = _rename_all(photo_root, tool)

    assert reconciler.resolve_original(renamed[1], index) == "IMG_0001.jpg"


def test_extension_miss_falls_back_to_first_entry(tool, make_photo, photo_root):
    make_photo(photo_root, "DSCF0001.RAF")
    reconciler, renamed, index, plan, _ = _rename_all(photo_root, tool)

    stranger = photo_root / "converted.tif"
    stranger.write_bytes(b"tif")
    tool.set_date(stranger, "2024:09:24 14:23:12")

    assert reconciler.resolve_original(stranger, index, plan) == "DSCF0001.RAF"


def test_missing_timestamp_uses_current_name_with_warning(tool, make_photo, photo_root, caplog):
    make_photo(photo_root, "IMG_9.JPG", date=None)

    reconciler, renamed, index, plan, _ = _rename_all(photo_root, tool)
    with caplog.at_level(logging.WARNING):
        result = reconciler.reconcile(renamed, index, plan)

    target = photo_root / f"{config.UNDATED_PLACEHOLDER}_Fam-party.JPG"
    assert renamed == [target]
    assert _original_of(target) == target.name
    assert result.unmatched == [target]
    assert "Could not match DateTimeOriginal" in caplog.text


def test_skip_mode_keeps_existing_sidecar(tool, make_photo, photo_root):
    make_photo(photo_root, "2024-09-24_142312_Fam-party.jpg")
    make_photo(photo_root, "IMG_2.jpg", date="2024:09:24 14:23:13")
    existing = photo_root / "2024-09-24_142312_Fam-party.jpg.xmp"
    existing.write_text("hand edited", encoding="utf-8")

    reconciler, renamed, index, plan, _ = _rename_all(photo_root, tool, mode=SidecarMode.SKIP)
    result = reconciler.reconcile(renamed, index, plan)

    assert existing.read_text(encoding="utf-8") == "hand edited"
    assert result.skipped == [photo_root / "2024-09-24_142312_Fam-party.jpg"]
    assert _original_of(photo_root / "2024-09-24_142313_Fam-party.jpg") == "IMG_2.jpg"


def test_overwrite_mode_deletes_existing_sidecars(tool, make_photo, photo_root):
    make_photo(photo_root, "IMG_1.jpg")
    stale = photo_root / "IMG_1.jpg.xmp"
    stale.write_text("stale", encoding="utf-8")

    reconciler, renamed, index, plan, snapshot = _rename_all(photo_root, tool, mode=SidecarMode.OVERWRITE)
    reconciler.reconcile(renamed, index, plan)

    assert not stale.exists()
    assert snapshot is None
    assert reconciler.result.existing_deleted == 1
    assert sorted(p.name for p in photo_root.iterdir()) == [
        "2024-09-24_142312_Fam-party.jpg",
        "2024-09-24_142312_Fam-party.jpg.xmp",
    ]


def test_backup_mode_moves_existing_sidecars_into_new_backup(tool, make_photo, photo_root):
    make_photo(photo_root, "IMG_1.jpg")
    old = photo_root / "IMG_1.jpg.xmp"
    old.write_text("previous", encoding="utf-8")

    reconciler, renamed, index, plan, snapshot = _rename_all(photo_root, tool)
    reconciler.reconcile(renamed, index, plan)

    assert snapshot is not None
    assert snapshot.backup_root.name.startswith(config.BACKUP_PREFIX)
    assert (snapshot.backup_root / "IMG_1.jpg.xmp").read_text(encoding="utf-8") == "previous"
    assert not old.exists()
    assert reconciler.result.existing_backed_up == 1


def test_backup_mode_reuses_run_snapshot(tool, make_photo, photo_root):
    make_photo(photo_root, "IMG_1.jpg")
    (photo_root / "IMG_1.jpg.xmp").write_text("previous", encoding="utf-8")
    files = InventoryScanner().collect(photo_root)
    run_snapshot = BackupSnapshotter(photo_root).snapshot(files)

    _, _, _, _, snapshot = _rename_all(photo_root, tool, snapshot=run_snapshot)

    assert snapshot is run_snapshot
    assert (run_snapshot.backup_root / "IMG_1.jpg.xmp").exists()


def test_backup_mode_twice_keeps_latest_sidecar(tool, make_photo, photo_root):
    make_photo(photo_root, "IMG_1.jpg")

    reconciler, renamed, index, plan, _ = _rename_all(photo_root, tool)
    reconciler.reconcile(renamed, index, plan)
    first_content = (photo_root / "2024-09-24_142312_Fam-party.jpg.xmp").read_text(encoding="utf-8")

    reconciler, renamed, index, plan, snapshot = _rename_all(photo_root, tool)
    reconciler.reconcile(renamed, index, plan)

    stashed = snapshot.backup_root / "2024-09-24_142312_Fam-party.jpg.xmp"
    assert stashed.read_text(encoding="utf-8") == first_content == "Original: IMG_1.jpg"


def test_sidecar_write_failure_is_isolated(tool, make_photo, photo_root, caplog):
    make_photo(photo_root, "a.jpg", date="2024:09:24 14:23:12")
    make_photo(photo_root, "b.jpg", date="2024:09:24 14:23:13")
    tool.fail_sidecars.add("2024-09-24_142312_Fam-party.jpg")

    reconciler, renamed, index, plan, _ = _rename_all(photo_root, tool)
    result = reconciler.reconcile(renamed, index, plan)

    assert result.failed == [photo_root / "2024-09-24_142312_Fam-party.jpg"]
    assert [r.original_filename for r in result.created] == ["b.jpg"]
    assert "XMP sidecar creation failed" in caplog.text
