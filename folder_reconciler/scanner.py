"""Folder scanning functionality."""

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Optional

import xxhash
from tqdm import tqdm

from .comparator import _long_path, compute_file_hash, files_equal
from .models import DirDiff, FileEntry, FileInfo, Outcome, OutcomeKind, Report

logger = logging.getLogger(__name__)

FINGERPRINT_ALGORITHM = "xxh64"


class ScanError:
    """Record of a file that failed to scan."""

    def __init__(self, relative_path: str, absolute_path: str, error: str):
        self.relative_path = relative_path
        self.absolute_path = absolute_path
        self.error = error


def list_entries(directory) -> list[FileEntry]:
    """
    List the entries of a directory, read fresh from disk.

    Entries that vanish between listing and stat are left out.
    """
    entries = []
    with os.scandir(_long_path(directory)) as it:
        for entry in it:
            try:
                file_entry = FileEntry.from_dir_entry(entry)
            except FileNotFoundError:
                continue
            file_entry.path = os.path.join(str(directory), entry.name)
            entries.append(file_entry)
    entries.sort(key=lambda e: e.name)
    return entries


def get_file_info(base_path: Path, relative_path: str) -> FileInfo:
    """Get file information including fingerprint and metadata."""
    abs_path = base_path / relative_path
    stat = os.stat(_long_path(abs_path))
    file_hash = compute_file_hash(abs_path, FINGERPRINT_ALGORITHM)

    return FileInfo(
        relative_path=relative_path,
        absolute_path=str(abs_path),
        hash=file_hash,
        size=stat.st_size,
        modified_time=stat.st_mtime
    )


def scan_tree(
    folder_path: Path,
    desc: str = "Scanning",
    on_error: str = "skip",
    show_progress: bool = False
) -> tuple[dict[str, FileInfo], list[ScanError]]:
    """
    Scan a folder tree and return a dictionary of relative paths to FileInfo.

    Args:
        folder_path: Path to the folder to scan
        desc: Description for the progress bar
        on_error: How to handle errors - "skip" to continue, "fail" to raise
        show_progress: Display a tqdm progress bar

    Returns:
        Tuple of (files dict, list of scan errors)
    """
    folder_path = Path(folder_path)
    files = {}
    errors = []
    all_files = []

    for root, _, filenames in os.walk(folder_path):
        for filename in filenames:
            abs_path = Path(root) / filename
            rel_path = abs_path.relative_to(folder_path)
            # POSIX-style keys keep snapshots comparable across platforms
            all_files.append(rel_path.as_posix())

    with tqdm(sorted(all_files), desc=desc, unit="file", disable=not show_progress) as pbar:
        for rel_path in pbar:
            try:
                files[rel_path] = get_file_info(folder_path, rel_path)
            except OSError as e:
                errors.append(ScanError(rel_path, str(folder_path / rel_path), str(e)))
                if on_error == "fail":
                    raise
                logger.warning("Could not scan %s: %s", rel_path, e)

    return files, errors


def tree_fingerprint(folder_path: Path) -> str:
    """
    Fingerprint a whole tree: relative paths plus file contents.

    Two trees with the same layout and the same bytes get the same value,
    wherever they live on disk.
    """
    files, _ = scan_tree(folder_path, on_error="fail")
    hasher = xxhash.xxh64()
    for rel_path in sorted(files):
        hasher.update(rel_path.encode("utf-8"))
        hasher.update(b"\0")
        hasher.update(files[rel_path].hash.encode("ascii"))
        hasher.update(b"\n")
    return hasher.hexdigest()


def is_dir_having_file(directory) -> bool:
    """Check whether a directory directly contains at least one file."""
    return any(not entry.is_dir for entry in list_entries(directory))


def has_files(directory) -> bool:
    """Check whether any file exists anywhere below a directory."""
    for _, _, filenames in os.walk(directory):
        if filenames:
            return True
    return False


def remove_empty_folders(
    parent_dir,
    dry_run: bool = False,
    reporter: Optional[Callable[[Outcome], None]] = None
) -> Report:
    """
    Remove every directory below ``parent_dir`` that holds no files at any depth.

    ``parent_dir`` itself is kept. Removal failures are reported, not raised.
    """
    report = Report(str(parent_dir), str(parent_dir), dry_run)

    def record(outcome: Outcome) -> None:
        report.add(outcome)
        if reporter is not None:
            reporter(outcome)

    pending = [str(parent_dir)]
    while pending:
        for entry in list_entries(pending.pop()):
            if not entry.is_dir:
                continue
            if has_files(entry.path):
                pending.append(entry.path)
            else:
                _remove_empty_dir(entry, dry_run, record)
    return report


def _remove_empty_dir(entry: FileEntry, dry_run: bool, record) -> None:
    logger.info("Remove empty dir: %s", entry.path)
    if dry_run:
        record(Outcome(OutcomeKind.REMOVED, entry.path, is_dir=True, dry_run=True))
        return
    try:
        shutil.rmtree(entry.path)
    except OSError as e:
        logger.warning("Could not remove %s: %s", entry.path, e)
        record(Outcome(OutcomeKind.FAILED, entry.path, reason=str(e), is_dir=True))
    else:
        record(Outcome(OutcomeKind.REMOVED, entry.path, is_dir=True))


def compare_directories(dir_a, dir_b, check_content: bool = False) -> DirDiff:
    """
    Compare the files directly inside two directories.

    Files present on both sides are compared by size, or by content when
    ``check_content`` is set.
    """
    files_a = {e.name: e for e in list_entries(dir_a) if not e.is_dir}
    files_b = {e.name: e for e in list_entries(dir_b) if not e.is_dir}
    diff = DirDiff()

    for name in sorted(files_a):
        if name not in files_b:
            diff.only_in_a.append(name)
            continue
        if check_content:
            same = files_equal(files_a[name].path, files_b[name].path)
        else:
            same = files_a[name].size == files_b[name].size
        (diff.same if same else diff.different).append(name)

    diff.only_in_b.extend(sorted(set(files_b) - set(files_a)))
    return diff
