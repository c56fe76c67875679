#!/usr/bin/env python3
"""
exifdate - Batch Image Date Tool

Sets the EXIF capture date of images, converts PNGs to JPGs in place, and
shows the capture date currently stored in each image.

Usage:
    exifdate.py set-date PATH... --date "YYYY-MM-DD HH:MM:SS"
    exifdate.py png-to-jpg PATH... [--quality N]
    exifdate.py show PATH...
    exifdate.py png-to-jpg --folder DIR
    exifdate.py --list-operations
"""

import argparse
import sys
from pathlib import Path

# Add current directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from common.batch import BatchTask
from common.catalog import MediaCatalog
from common.config import Settings
from common.env_loader import load_dotenv_file
from common.errors import CatalogError
from common.exif_dates import get_capture_date_formatted
from common.handles import handles_from_paths, list_folder_images
from common.logging_config import default_log_file, get_logger, setup_logging
from common.processing import print_batch_summary, save_batch_report
from common.progress import PHASE_SCAN, BatchProgressBar, progress_bar
from operations.registry import OperationRegistry

logger = get_logger(__name__)

SHOW_COMMAND = "show"


def load_all_operations(registry: OperationRegistry) -> None:
    """Load and register all available operations and the show command

    Args:
        registry: OperationRegistry instance to register operations with
    """
    operations_failed = registry.discover(Path(__file__).parent / "operations")
    registry.register_command(SHOW_COMMAND, "Print the stored capture date of images", show_dates)

    if operations_failed:
        print(f"Warning: {len(operations_failed)} operation(s) failed to load:")
        for name, error in operations_failed:
            print(f"  - {name}: {error}")


def collect_inputs(args) -> list:
    """Explicit paths, or the first-level images of --folder"""
    if args.folder:
        folder = Path(args.folder)
        if not folder.is_dir():
            raise FileNotFoundError(f"Folder not found: {folder}")
        return list_folder_images(folder)

    paths = [Path(p) for p in args.paths]
    missing = [p for p in paths if not p.is_file()]
    if missing:
        raise FileNotFoundError(f"File not found: {missing[0]}")
    return paths


def build_handles(paths: list, catalog) -> list:
    if catalog is None:
        return handles_from_paths(paths)
    handles = []
    for path in progress_bar(paths, PHASE_SCAN, "Indexing files", total=len(paths)):
        handles.extend(handles_from_paths([path], catalog))
    return handles


def show_dates(handles: list) -> int:
    for handle in handles:
        print(f"{handle.display_name}: {get_capture_date_formatted(handle)}")
    return 0


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="Set EXIF capture dates and convert PNG images to JPG.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Set the capture date of two photos
  %(prog)s set-date a.jpg b.jpg --date "2023-07-04 09:05:03"

  # Convert every PNG in a folder to JPG at quality 90
  %(prog)s png-to-jpg --folder ~/Storage/Pictures --quality 90

  # Work through the media catalog instead of plain paths
  %(prog)s png-to-jpg ~/Storage/DCIM/Camera/shot.png --catalog

  # Show stored capture dates
  %(prog)s show a.jpg b.jpg
        """,
    )

    parser.add_argument(
        "operation",
        nargs="?",
        help="Operation to run (use --list-operations), or 'show'",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        help="Image files to process",
    )
    parser.add_argument(
        "--folder",
        metavar="DIR",
        help="Process the images directly inside DIR instead of explicit paths",
    )
    parser.add_argument(
        "--date",
        help="Capture date for set-date ('YYYY-MM-DD HH:MM:SS')",
    )
    parser.add_argument(
        "--quality",
        type=int,
        default=None,
        metavar="N",
        help="JPEG quality for png-to-jpg, 0-100 (default: EXIFDATE_JPEG_QUALITY or 95)",
    )
    parser.add_argument(
        "--catalog",
        action="store_true",
        help="Access files through the media catalog (indexed on demand)",
    )
    parser.add_argument(
        "--storage-root",
        help="Primary storage root (overrides env/.env EXIFDATE_STORAGE_ROOT)",
    )
    parser.add_argument(
        "--catalog-db",
        help="Catalog database path (overrides env/.env EXIFDATE_CATALOG_DB)",
    )
    parser.add_argument(
        "--report",
        metavar="PATH",
        help="Write a JSON report of the batch result to PATH",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress bars",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--list-operations",
        action="store_true",
        help="List all available operations and exit",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to .env file to load (default: ./.env if present)",
    )

    args = parser.parse_args()

    # Load .env early (CLI > env > .env precedence)
    load_dotenv_file(args.env_file)

    log_file = default_log_file() if args.verbose else None
    setup_logging(verbose=args.verbose, log_file=log_file)

    registry = OperationRegistry()
    load_all_operations(registry)

    if args.list_operations:
        print("Available operations:")
        print()
        for name, description in registry.describe_all():
            print(f"  {name:<12} {description}")
        return 0

    if not args.operation:
        parser.error("operation is required (use --list-operations)")

    command = registry.get_command(args.operation)
    operation_cls = registry.get_by_name(args.operation)
    if command is None and operation_cls is None:
        print(f"ERROR: Unknown operation '{args.operation}'")
        print("Available operations:")
        for name, _ in registry.describe_all():
            print(f"  - {name}")
        return 1

    if args.folder and args.paths:
        parser.error("--folder cannot be combined with explicit paths")
    if not args.folder and not args.paths:
        parser.error("provide image paths or --folder")

    try:
        settings = Settings.from_env().with_overrides(
            storage_root=Path(args.storage_root).expanduser() if args.storage_root else None,
            catalog_db=Path(args.catalog_db).expanduser() if args.catalog_db else None,
        )
        paths = collect_inputs(args)
    except (ValueError, FileNotFoundError) as e:
        print(f"ERROR: {e}")
        return 1

    catalog = None
    try:
        if args.catalog:
            catalog = MediaCatalog.open(settings)
        handles = build_handles(paths, catalog)

        if command is not None:
            return command(handles)

        try:
            operation = operation_cls.create(
                settings, catalog, date=args.date, quality=args.quality
            )
        except ValueError as e:
            print(f"ERROR: {e}")
            return 1

        with BatchProgressBar(
            operation.get_phase(),
            operation.get_description(),
            total=len(handles),
            disable=args.no_progress,
        ) as bar:
            result = BatchTask(handles, operation, on_progress=bar).result()
    except CatalogError as e:
        print(f"ERROR: {e}")
        return 1
    finally:
        if catalog is not None:
            catalog.close()

    print_batch_summary(result, operation.get_name())
    if args.report:
        save_batch_report(result, Path(args.report), operation.get_name())
    if log_file:
        print(f"\nLog saved to: {log_file}")

    return 0 if result.failure_count == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
