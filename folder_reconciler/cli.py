"""Command-line interface for folder reconciler."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .base import DEFAULT_WORKERS
from .errors import ExhaustedRetriesError, InvalidArgumentError
from .merger import MAX_RENAME_ATTEMPTS, TreeMergeEngine
from .models import ConflictPolicy, Report
from .presets import (
    CONFLICT_POLICY_PRESETS,
    SYNC_PRESETS,
    conflict_policy_from_preset,
    parse_action,
    parse_extension_overrides,
    sync_preset_from_name,
)
from .scanner import remove_empty_folders
from .similarity import (
    MERGE_SIMILARITY_THRESHOLD,
    content_similarity,
    is_merge_safe,
    name_similarity,
    scan_similar_folders,
)
from .syncer import OneWaySyncEngine

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_EXHAUSTED = 2
EXIT_REFUSED = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="folder-reconciler",
        description="Merge one folder tree into another, or mirror it one way.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s merge /path/to/update /path/to/library --preset update_pack
  %(prog)s merge incoming archive --ext txt=rename --default skip --dry-run
  %(prog)s sync staging published --preset append
  %(prog)s scan-similar /path/to/library --threshold 0.7
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every decision")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings")
    parser.add_argument("--progress", action="store_true", help="Show progress bars")

    sub = parser.add_subparsers(dest="command", required=True)

    merge = sub.add_parser("merge", help="Move everything from SOURCE into DEST")
    merge.add_argument("source", type=Path, help="Folder to absorb (deleted afterwards)")
    merge.add_argument("destination", type=Path, help="Folder receiving the content")
    merge.add_argument(
        "--preset",
        default="default",
        choices=sorted(CONFLICT_POLICY_PRESETS),
        help="Conflict policy preset (default: default)"
    )
    merge.add_argument(
        "--ext",
        action="append",
        default=[],
        metavar="EXT=ACTION",
        help="Per-extension action override: skip, replace, rename or check_replace"
    )
    merge.add_argument("--default", dest="default_action", help="Override the default action")
    merge.add_argument(
        "--check-similarity",
        action="store_true",
        help="Refuse to merge into an existing DEST whose media files look unrelated"
    )
    merge.add_argument(
        "--threshold",
        type=float,
        default=MERGE_SIMILARITY_THRESHOLD,
        help=f"Similarity needed with --check-similarity (default: {MERGE_SIMILARITY_THRESHOLD})"
    )
    merge.add_argument(
        "--max-renames",
        type=int,
        default=MAX_RENAME_ATTEMPTS,
        help=f"Numbered names to try before giving up (default: {MAX_RENAME_ATTEMPTS})"
    )
    _add_run_options(merge)

    sync = sub.add_parser("sync", help="Mirror SOURCE onto DEST")
    sync.add_argument("source", type=Path, help="Folder to read from")
    sync.add_argument("destination", type=Path, help="Folder to update")
    sync.add_argument(
        "--preset",
        default="default",
        choices=sorted(SYNC_PRESETS),
        help="Sync preset (default: default)"
    )
    _add_run_options(sync)

    similarity = sub.add_parser("similarity", help="Score how alike two folders are")
    similarity.add_argument("dir_a", type=Path)
    similarity.add_argument("dir_b", type=Path)

    scan = sub.add_parser("scan-similar", help="List neighbouring subfolders that look alike")
    scan.add_argument("root", type=Path)
    scan.add_argument("--threshold", type=float, default=0.7, help="Minimum score (default: 0.7)")
    scan.add_argument("--by", choices=["name", "content"], default="name")

    clean = sub.add_parser("clean-empty", help="Remove folders that hold no files")
    clean.add_argument("root", type=Path)
    clean.add_argument("--dry-run", action="store_true", help="Only report what would be removed")

    return parser


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--dry-run", action="store_true", help="Only report what would change")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"Parallel file operations per folder (default: {DEFAULT_WORKERS})"
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)


def configure_logging(args: argparse.Namespace) -> None:
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def validate_dir(path: Path, label: str) -> None:
    """Exit with an error unless ``path`` is an existing directory."""
    if not path.exists():
        print(f"Error: {label} does not exist: {path}")
        sys.exit(EXIT_ERROR)
    if not path.is_dir():
        print(f"Error: {label} is not a directory: {path}")
        sys.exit(EXIT_ERROR)


def build_policy(args: argparse.Namespace) -> ConflictPolicy:
    policy = conflict_policy_from_preset(args.preset)
    policy.by_extension.update(parse_extension_overrides(args.ext))
    if args.default_action:
        policy.default = parse_action(args.default_action)
    return policy


def print_report(report: Report) -> None:
    """Print a summary of a report, listing failures."""
    print("\n" + "=" * 60)
    print("DRY RUN COMPLETE" if report.dry_run else "COMPLETE")
    print("=" * 60)
    counts = report.counts()
    if not counts:
        print("Nothing to do.")
    for kind, count in sorted(counts.items()):
        print(f"  - {kind}: {count}")

    failures = report.failures
    if failures:
        print(f"\n--- Failures ({len(failures)}) ---")
        for outcome in failures[:10]:  # Show first 10
            print(f"  {outcome.source}")
            print(f"    {outcome.reason}")
        if len(failures) > 10:
            print(f"  ... and {len(failures) - 10} more failures")
        print("-" * 20)


def run_merge(args: argparse.Namespace) -> int:
    validate_dir(args.source, "Source")
    policy = build_policy(args)

    print("=" * 60)
    print("FOLDER MERGE")
    print("=" * 60)
    print(f"Source:      {args.source.absolute()}")
    print(f"Destination: {args.destination.absolute()}")

    if args.check_similarity and not is_merge_safe(args.source, args.destination, args.threshold):
        score = content_similarity(args.source, args.destination)
        print(f"Refusing to merge: similarity {score:.2f} is below {args.threshold:.2f}")
        return EXIT_REFUSED

    engine = TreeMergeEngine(
        dry_run=args.dry_run,
        max_workers=args.workers,
        show_progress=args.progress,
        max_rename_attempts=args.max_renames,
    )
    try:
        report = engine.merge(args.source.absolute(), args.destination.absolute(), policy)
    except ExhaustedRetriesError as e:
        print(f"\nError: {e}")
        print("Too many near-duplicates; inspect the destination by hand.")
        if e.report is not None:
            print_report(e.report)
        return EXIT_EXHAUSTED
    print_report(report)
    return EXIT_OK if report.ok else EXIT_ERROR


def run_sync(args: argparse.Namespace) -> int:
    validate_dir(args.source, "Source")
    preset = sync_preset_from_name(args.preset)

    print("=" * 60)
    print("FOLDER SYNC")
    print("=" * 60)
    print(f"Source:      {args.source.absolute()}")
    print(f"Destination: {args.destination.absolute()}")
    print(f"Preset:      {preset.describe()}")

    engine = OneWaySyncEngine(
        dry_run=args.dry_run,
        max_workers=args.workers,
        show_progress=args.progress,
    )
    report = engine.sync(args.source.absolute(), args.destination.absolute(), preset)
    print_report(report)
    return EXIT_OK if report.ok else EXIT_ERROR


def run_similarity(args: argparse.Namespace) -> int:
    validate_dir(args.dir_a, "Folder A")
    validate_dir(args.dir_b, "Folder B")
    print(f"Name similarity:    {name_similarity(args.dir_a.name, args.dir_b.name):.3f}")
    print(f"Content similarity: {content_similarity(args.dir_a, args.dir_b):.3f}")
    return EXIT_OK


def run_scan_similar(args: argparse.Namespace) -> int:
    validate_dir(args.root, "Root")
    pairs = scan_similar_folders(args.root, args.threshold, by=args.by)
    if not pairs:
        print("No similar folders found.")
    for pair in pairs:
        print(f"{pair.similarity:.3f}  {pair.dir1}  <->  {pair.dir2}")
    return EXIT_OK


def run_clean_empty(args: argparse.Namespace) -> int:
    validate_dir(args.root, "Root")
    report = remove_empty_folders(args.root, dry_run=args.dry_run)
    print_report(report)
    return EXIT_OK if report.ok else EXIT_ERROR


COMMANDS = {
    "merge": run_merge,
    "sync": run_sync,
    "similarity": run_similarity,
    "scan-similar": run_scan_similar,
    "clean-empty": run_clean_empty,
}


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args)

    try:
        code = COMMANDS[args.command](args)
    except InvalidArgumentError as e:
        print(f"Error: {e}")
        code = EXIT_ERROR
    except KeyboardInterrupt:
        print("\n\nInterrupted! Some files may already have been moved.")
        print("Run the same command again to finish.")
        code = EXIT_ERROR
    sys.exit(code)
