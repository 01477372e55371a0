"""Core merge logic."""

import logging
import os
import shutil
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .base import DEFAULT_WORKERS, BaseEngine, Reporter, is_within, same_path
from .comparator import files_equal
from .errors import DestinationNotDirectoryError, ExhaustedRetriesError, InvalidArgumentError
from .models import ConflictPolicy, MergeTask, Outcome, OutcomeKind, ReplaceAction, Report
from .scanner import has_files, list_entries

logger = logging.getLogger(__name__)

MAX_RENAME_ATTEMPTS = 1000


def candidate_name(stem: str, suffix: str, attempt: int) -> str:
    """Name tried on the given attempt: stem.ext, stem.2.ext, stem.3.ext, ..."""
    if attempt == 1:
        return f"{stem}{suffix}"
    return f"{stem}.{attempt}{suffix}"


def move_with_unique_name(
    source,
    destination,
    max_attempts: int = MAX_RENAME_ATTEMPTS,
    dry_run: bool = False,
    placed: Optional[dict[str, str]] = None
) -> Outcome:
    """
    Move ``source`` next to ``destination`` without overwriting anything.

    Candidate names are derived from ``destination``'s name. The first free
    candidate receives the file. When a candidate is already taken by a file
    with identical content, the source is a true duplicate and is deleted
    instead.

    ``placed`` maps destination paths already filled earlier in the same run
    to the source file whose content they hold. Those names count as taken
    even in a dry run, and the chosen name is added to the map. Callers
    sharing one map across threads must serialize calls.

    Raises:
        ExhaustedRetriesError: every one of ``max_attempts`` candidates is
            taken by a different file
        OSError: the rename or delete itself failed
    """
    source = Path(source)
    destination = Path(destination)
    parent = destination.parent
    stem, suffix = Path(destination.name).stem, Path(destination.name).suffix
    placed = {} if placed is None else placed

    for attempt in range(1, max_attempts + 1):
        candidate = parent / candidate_name(stem, suffix, attempt)
        occupant = placed.get(str(candidate))
        if occupant is None and not os.path.lexists(candidate):
            if not dry_run:
                os.replace(source, candidate)
            placed[str(candidate)] = str(source)
            kind = OutcomeKind.MOVED if attempt == 1 else OutcomeKind.RENAMED
            return Outcome(kind, str(source), str(candidate), dry_run=dry_run)
        # In a dry run the occupant is still sitting in the source tree
        existing = occupant if dry_run and occupant is not None else candidate
        if files_equal(source, existing):
            if not dry_run:
                os.remove(source)
            return Outcome(
                OutcomeKind.DISCARDED, str(source), str(candidate),
                reason="identical", dry_run=dry_run,
            )

    raise ExhaustedRetriesError(str(source), str(parent), max_attempts)


class _MergeRun:
    """State of a single merge call."""

    def __init__(self, engine: "TreeMergeEngine", policy: ConflictPolicy, report: Report):
        self.engine = engine
        self.policy = policy
        self.report = report
        self.dry_run = engine.dry_run
        # Destination paths filled during this run -> source whose content they hold.
        # Claiming a name and moving onto it happen under one lock.
        self.placed: dict[str, str] = {}
        self._names_lock = threading.Lock()
        # Filled once the worklist has drained
        self.dirs_retaining: set[str] = set()
        self.dirs_failed: set[str] = set()
        self.skipped_by_dir: dict[str, list[str]] = {}

    def record(self, outcome: Outcome) -> None:
        self.engine._record(self.report, outcome)

    def fail(self, source, destination, error, is_dir: bool = False) -> None:
        self.engine._fail(self.report, source, destination, error, is_dir)

    def execute(self, root: MergeTask) -> None:
        pending = deque([root])
        processed: list[Path] = []

        with ThreadPoolExecutor(max_workers=self.engine.max_workers) as executor, \
                tqdm(desc="Merging", unit="dir", disable=not self.engine.show_progress) as pbar:
            while pending:
                task = pending.popleft()
                start = len(self.report.outcomes)
                pending.extend(self.process_directory(task, executor))
                processed.append(task.source)
                BaseEngine._log_level_summary(task.source, task.destination, self.report, start)
                pbar.update(1)

        self.index_outcomes(root.source)
        # Children were appended after their parents, so walking the list
        # backwards removes every directory after everything below it.
        for directory in reversed(processed):
            self.remove_source_dir(directory)

    def process_directory(self, task: MergeTask, executor) -> list[MergeTask]:
        """Move one level of ``task.source`` and return the subdirectories to merge next."""
        try:
            entries = list_entries(task.source)
        except OSError as e:
            self.fail(task.source, task.destination, e, is_dir=True)
            return []

        subdir_both_exist: list[MergeTask] = []
        dir_direct_moves = []
        file_skip_ops = []
        file_rename_ops = []
        file_replace_ops = []

        for entry in entries:
            src = Path(entry.path)
            dst = task.destination / entry.name
            if entry.is_dir:
                if dst.is_dir():
                    subdir_both_exist.append(MergeTask(src, dst))
                else:
                    dir_direct_moves.append((src, dst))
                continue
            action = self.policy.action_for(entry.name)
            if action is ReplaceAction.SKIP:
                file_skip_ops.append((src, dst))
            elif action is ReplaceAction.RENAME:
                file_rename_ops.append((src, dst))
            else:
                file_replace_ops.append((src, dst))

        # Cheapest first: renames that need no content inspection
        self.engine._run_stage(executor, self.move_dir, dir_direct_moves)
        self.engine._run_stage(executor, self.skip_file, file_skip_ops)
        self.engine._run_stage(executor, self.rename_file, file_rename_ops)
        self.engine._run_stage(executor, self.replace_file, file_replace_ops)

        return subdir_both_exist

    def _taken(self, dst: Path) -> bool:
        return str(dst) in self.placed or os.path.lexists(dst)

    def _move(self, src: Path, dst: Path, kind: OutcomeKind, reason: Optional[str] = None,
              is_dir: bool = False) -> None:
        """Move ``src`` onto ``dst``. Callers hold the names lock."""
        if not self.dry_run:
            try:
                os.replace(src, dst)
            except OSError as e:
                self.fail(src, dst, e, is_dir)
                return
        self.placed[str(dst)] = str(src)
        self.record(Outcome(kind, str(src), str(dst), reason=reason, is_dir=is_dir,
                            dry_run=self.dry_run))

    def move_dir(self, src: Path, dst: Path) -> None:
        with self._names_lock:
            if self._taken(dst):
                # os.replace would silently swap an empty directory in for a file
                self.fail(src, dst, "destination exists and is not a directory", is_dir=True)
                return
            self._move(src, dst, OutcomeKind.MOVED, is_dir=True)

    def skip_file(self, src: Path, dst: Path) -> None:
        with self._names_lock:
            if self._taken(dst):
                self.record(Outcome(OutcomeKind.SKIPPED, str(src), str(dst),
                                    reason="destination exists", dry_run=self.dry_run))
                return
            self._move(src, dst, OutcomeKind.MOVED)

    def rename_file(self, src: Path, dst: Path) -> None:
        try:
            with self._names_lock:
                outcome = move_with_unique_name(
                    src, dst, self.engine.max_rename_attempts, self.dry_run, self.placed
                )
        except OSError as e:
            self.fail(src, dst, e)
            return
        except ExhaustedRetriesError:
            self.fail(src, dst, "exhausted retries")
            raise
        self.record(outcome)

    def replace_file(self, src: Path, dst: Path) -> None:
        action = self.policy.action_for(src.name)
        same = None
        if action is ReplaceAction.CHECK_REPLACE and os.path.lexists(dst):
            # Outside the lock; anything this run moves onto dst lands in self.placed
            try:
                same = files_equal(src, dst)
            except OSError as e:
                self.fail(src, dst, e)
                return

        with self._names_lock:
            if str(dst) not in self.placed:
                if not os.path.lexists(dst):
                    self._move(src, dst, OutcomeKind.MOVED)
                    return
                if action is ReplaceAction.REPLACE:
                    self._move(src, dst, OutcomeKind.REPLACED)
                    return
                if same:
                    self._move(src, dst, OutcomeKind.REPLACED, reason="identical")
                    return
        # Different content, or a file this run already put there
        self.rename_file(src, dst)

    def index_outcomes(self, root: Path) -> None:
        """Mark every source directory with a skipped or failed entry at or below it."""
        for outcome in self.report:
            if outcome.kind is OutcomeKind.SKIPPED:
                parent = str(Path(outcome.source).parent)
                self.skipped_by_dir.setdefault(parent, []).append(outcome.source)
                self._mark(outcome.source, root, failed=False)
            elif outcome.kind is OutcomeKind.FAILED:
                self._mark(outcome.source, root, failed=True)

    def _mark(self, path, root: Path, failed: bool) -> None:
        path = Path(path)
        for directory in (path, *path.parents):
            self.dirs_retaining.add(str(directory))
            if failed:
                self.dirs_failed.add(str(directory))
            if directory == root:
                break

    def _leftover_files(self, directory: Path) -> list[str]:
        if self.dry_run:
            return self.skipped_by_dir.get(str(directory), [])
        return [
            os.path.join(dirpath, name)
            for dirpath, _, names in os.walk(directory)
            for name in names
        ]

    def remove_source_dir(self, directory: Path) -> None:
        if not self.dry_run and not os.path.lexists(directory):
            return
        key = str(directory)
        retains = key in self.dirs_retaining if self.dry_run else has_files(directory)
        if retains and (self.policy.default is ReplaceAction.SKIP or key in self.dirs_failed):
            logger.info("Keeping %s: it still holds files that were not moved", directory)
            return

        leftovers = self._leftover_files(directory) if retains else []
        if not self.dry_run:
            try:
                shutil.rmtree(directory)
            except OSError as e:
                logger.warning(" x PermissionError! (%s) - %s", directory, e)
                self.fail(directory, None, e, is_dir=True)
                self._mark(directory, Path(self.report.source), failed=True)
                return
        for path in leftovers:
            self.record(Outcome(OutcomeKind.REMOVED, path, reason="removed with its source folder",
                                dry_run=self.dry_run))
        self.record(Outcome(OutcomeKind.REMOVED, key, is_dir=True, dry_run=self.dry_run))


class TreeMergeEngine(BaseEngine):
    """
    Merge a source tree into a destination tree, then delete the source.

    Directories are visited from a FIFO worklist rather than by recursion,
    so deep trees never grow the call stack. Within one directory level the
    work runs in stages (direct directory moves, Skip files, Rename files,
    Replace/CheckReplace files), each stage fanned out over a bounded pool.

    Example:
        >>> engine = TreeMergeEngine(dry_run=True)
        >>> policy = ConflictPolicy({"txt": ReplaceAction.RENAME}, default=ReplaceAction.SKIP)
        >>> report = engine.merge("incoming/pack", "library/pack", policy)
        >>> report.counts()
    """

    def __init__(
        self,
        dry_run: bool = False,
        max_workers: int = DEFAULT_WORKERS,
        reporter: Optional[Reporter] = None,
        show_progress: bool = False,
        max_rename_attempts: int = MAX_RENAME_ATTEMPTS
    ):
        super().__init__(dry_run, max_workers, reporter, show_progress)
        self.max_rename_attempts = max_rename_attempts

    def merge(self, source, destination, policy: Optional[ConflictPolicy] = None) -> Report:
        """
        Absorb everything under ``source`` into ``destination``.

        Returns:
            Report with one outcome per file or directory handled

        Raises:
            DestinationNotDirectoryError: destination exists but is not a directory
            InvalidArgumentError: destination lies inside source
            ExhaustedRetriesError: a file found no free name; ``report`` is attached
        """
        source = Path(source)
        destination = Path(destination)
        policy = policy if policy is not None else ConflictPolicy()
        report = Report(str(source), str(destination), self.dry_run)

        if not source.exists():
            logger.debug("Source %s does not exist, nothing to merge", source)
            return report
        if same_path(source, destination):
            return report
        if not source.is_dir():
            logger.debug("Source %s is not a directory, nothing to merge", source)
            return report
        if is_within(destination, source):
            raise InvalidArgumentError(f"Destination {destination} lies inside source {source}")

        if not destination.exists():
            self._move_whole_tree(source, destination, report)
            return report
        if not destination.is_dir():
            raise DestinationNotDirectoryError(str(destination))

        try:
            _MergeRun(self, policy, report).execute(MergeTask(source, destination))
        except ExhaustedRetriesError as e:
            e.report = report
            raise
        return report

    def _move_whole_tree(self, source: Path, destination: Path, report: Report) -> None:
        if not self.dry_run:
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                os.rename(source, destination)
            except OSError as e:
                self._fail(report, source, destination, e, is_dir=True)
                return
        self._record(report, Outcome(OutcomeKind.MOVED, str(source), str(destination),
                                     is_dir=True, dry_run=self.dry_run))


def merge_trees(source, destination, policy: Optional[ConflictPolicy] = None, **engine_kwargs) -> Report:
    """Merge ``source`` into ``destination`` with a one-off TreeMergeEngine."""
    return TreeMergeEngine(**engine_kwargs).merge(source, destination, policy)
