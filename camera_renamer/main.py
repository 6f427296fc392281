import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from . import config
from .core import CameraRenamerApp
from .exceptions import CameraRenamerError, InvalidSidecarModeError, ValidationError
from .metadata.extract import ExifTool
from .models import NamingTemplate, RunOptions, SidecarMode
from .scanning.filesystem import InventoryScanner

# Options that switch from interactive prompting to command line mode
MODE_OPTIONS = ("event", "category", "no_category", "recursive", "no_backup",
                "xmp_mode", "no_sidecar", "dry_run")

InputFn = Callable[[str], str]


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\nUse -h or --help for usage information\n")


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to the console and, optionally, a log file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)


def build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(
        prog="camera-renamer",
        description="Camera Photo Re-namer: rename RAW/JPEG files by DateTimeOriginal "
                    "and record the original filename in XMP sidecars.",
        epilog="With no options the renamer asks for each setting interactively.",
    )

    p.add_argument("root", nargs="?", type=Path, default=Path("."),
                   help="Directory to process (default: current directory)")
    p.add_argument("-e", "--event", default=None,
                   help=f"Event descriptor (no spaces, max {config.MAX_EVENT_LENGTH} chars) [required]")
    p.add_argument("-c", "--category", default=None,
                   help=f"Category prefix (Fam, Street, Art, etc.) [default: {config.DEFAULT_CATEGORY}]")
    p.add_argument("--no-category", action="store_true", help="Omit the category prefix")
    p.add_argument("-r", "--recursive", action="store_true", help="Process subdirectories recursively")
    p.add_argument("-n", "--no-backup", action="store_true", help="Skip backup creation")
    p.add_argument("-x", "--xmp-mode", default=None,
                   help="XMP handling: backup, skip, overwrite [default: backup]")
    p.add_argument("-s", "--no-sidecar", action="store_true",
                   help="Do not create XMP sidecar files (--xmp-mode is then ignored)")
    p.add_argument("--dry-run", action="store_true", help="Plan and log renames without modifying disk")
    p.add_argument("--progress", action="store_true", help="Show progress bars")
    p.add_argument("-j", "--workers", type=int, default=1, help="Parallel timestamp readers")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return p


def is_interactive(args: argparse.Namespace) -> bool:
    return not any(getattr(args, key) not in (None, False) for key in MODE_OPTIONS)


def options_from_args(args: argparse.Namespace) -> RunOptions:
    if not args.event:
        raise ValidationError("Event descriptor is required in command line mode "
                              "(use -e or --event)")
    category = None if args.no_category else (args.category or config.DEFAULT_CATEGORY)
    return RunOptions(
        root=args.root.resolve(),
        template=NamingTemplate(event=args.event, category=category).validate(),
        recursive=args.recursive,
        backup=not args.no_backup,
        sidecar_mode=SidecarMode.parse(args.xmp_mode or config.DEFAULT_SIDECAR_MODE),
        create_sidecars=not args.no_sidecar,
        dry_run=args.dry_run,
        progress=args.progress,
        max_workers=max(1, args.workers),
    )


def ask_yes_no(question: str, default: bool, input_fn: InputFn = input) -> bool:
    hint = "[Y/n]" if default else "[y/N]"
    answer = input_fn(f"{question} {hint} ").strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def prompt_options(args: argparse.Namespace, input_fn: InputFn = input) -> RunOptions:
    """Asks for each setting in turn, mirroring the command line defaults."""
    root = args.root.resolve()
    recursive = ask_yes_no("Process subdirectories recursively?", False, input_fn)
    backup = ask_yes_no("Create backup before processing?", True, input_fn)

    category = None
    if ask_yes_no("Use category?", True, input_fn):
        category = input_fn(
            f"Enter category (Fam, Street, Art, etc., default {config.DEFAULT_CATEGORY}): "
        ).strip() or config.DEFAULT_CATEGORY

    event = input_fn(
        f"Enter event descriptor (no spaces, max {config.MAX_EVENT_LENGTH} chars): "
    ).strip()
    template = NamingTemplate(event=event, category=category).validate()

    mode = SidecarMode.BACKUP
    existing = InventoryScanner().scan_sidecars(root, recursive)
    if existing:
        print(f"Found {len(existing)} existing XMP sidecar files")
        print("XMP sidecar handling options:")
        print("  backup    - Move existing XMP files to backup directory (safest)")
        print("  skip      - Skip images that already have XMP files")
        print("  overwrite - Delete existing XMP files and create new ones")
        answer = input_fn("How to handle existing XMP files? [backup/skip/overwrite, default backup]: ")
        try:
            mode = SidecarMode.parse(answer or config.DEFAULT_SIDECAR_MODE)
        except InvalidSidecarModeError as e:
            logging.error(f"{e}. Using default 'backup'")

    create_sidecars = ask_yes_no("Create XMP sidecar files?", True, input_fn)

    return RunOptions(
        root=root,
        template=template,
        recursive=recursive,
        backup=backup,
        sidecar_mode=mode,
        create_sidecars=create_sidecars,
        dry_run=False,
        progress=True,
        max_workers=max(1, args.workers),
    )


def run_cli(argv: Optional[List[str]] = None,
            input_fn: InputFn = input,
            app: Optional[CameraRenamerApp] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        # Validation happens before anything touches the disk
        if is_interactive(args):
            options = prompt_options(args, input_fn)
        else:
            options = options_from_args(args)

        if app is None:
            tool = ExifTool()
            tool.ensure_available()
            app = CameraRenamerApp(tool)

        logging.info("=== Camera Photo Re-namer Started ===")
        logging.info(f"Root:     {options.root}")
        logging.info(f"Category: {options.template.category or '(none)'}")
        logging.info(f"Event:    {options.template.event}")
        app.run(options)
    except CameraRenamerError as e:
        logging.error(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return 1
    return 0


def main():
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
