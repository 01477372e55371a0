"""Plumbing shared by the merge and sync engines."""

import logging
import os
from concurrent.futures import Executor
from pathlib import Path
from typing import Callable, Iterable, Optional

from .errors import ExhaustedRetriesError
from .models import Outcome, OutcomeKind, Report

logger = logging.getLogger(__name__)

# Per-level fan-out. Every multi-file job on the machine shares the same
# file-descriptor budget, so this stays small.
DEFAULT_WORKERS = 16

Reporter = Callable[[Outcome], None]


def same_path(a, b) -> bool:
    """Check whether two paths name the same filesystem location."""
    try:
        return os.path.samefile(a, b)
    except OSError:
        return os.path.normcase(os.path.abspath(a)) == os.path.normcase(os.path.abspath(b))


def is_within(path, directory) -> bool:
    """Check whether ``path`` is ``directory`` or lies below it."""
    path = os.path.normcase(os.path.abspath(path))
    directory = os.path.normcase(os.path.abspath(directory))
    try:
        return os.path.commonpath([path, directory]) == directory
    except ValueError:
        return False


class BaseEngine:
    """
    Options and bookkeeping common to both engines.

    Args:
        dry_run: Record intended mutations instead of performing them
        max_workers: Size of the per-level worker pool
        reporter: Called with every Outcome as it is recorded; may be
            called from worker threads
        show_progress: Display a tqdm progress bar per processed directory
    """

    def __init__(
        self,
        dry_run: bool = False,
        max_workers: int = DEFAULT_WORKERS,
        reporter: Optional[Reporter] = None,
        show_progress: bool = False
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.dry_run = dry_run
        self.max_workers = max_workers
        self.reporter = reporter
        self.show_progress = show_progress

    def _record(self, report: Report, outcome: Outcome) -> Outcome:
        report.add(outcome)
        if outcome.kind is OutcomeKind.FAILED:
            logger.warning(" x %s", outcome)
        else:
            logger.debug("%s", outcome)
        if self.reporter is not None:
            self.reporter(outcome)
        return outcome

    def _fail(self, report: Report, source, destination, error, is_dir: bool = False) -> Outcome:
        return self._record(report, Outcome(
            OutcomeKind.FAILED,
            str(source),
            str(destination) if destination is not None else None,
            reason=str(error),
            is_dir=is_dir,
        ))

    def _run_stage(self, executor: Executor, func, ops: Iterable[tuple[Path, Path]]) -> None:
        """
        Run ``func(src, dst)`` for every pair on the pool and wait for all of them.

        An ExhaustedRetriesError from any pair is raised once the whole
        stage has finished.
        """
        futures = [executor.submit(func, src, dst) for src, dst in ops]
        exhausted = None
        for future in futures:
            try:
                future.result()
            except ExhaustedRetriesError as e:
                if exhausted is None:
                    exhausted = e
        if exhausted is not None:
            raise exhausted

    @staticmethod
    def _log_level_summary(source, destination, report: Report, start: int) -> None:
        level = report.outcomes[start:]
        if not level:
            return
        grouped: dict[str, list[str]] = {}
        for outcome in level:
            grouped.setdefault(outcome.kind.value, []).append(os.path.basename(outcome.source))
        logger.info("%s -> %s:", source, destination)
        for kind, names in grouped.items():
            logger.info("  %s: %s", kind, names)
