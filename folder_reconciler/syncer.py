"""One-way folder sync."""

import logging
import os
import shutil
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .base import BaseEngine, is_within, same_path
from .comparator import files_equal
from .errors import DestinationNotDirectoryError, InvalidArgumentError
from .models import MergeTask, Outcome, OutcomeKind, Report, SyncExec, SyncPreset, extension_of
from .presets import preset_default
from .scanner import list_entries

logger = logging.getLogger(__name__)


def _mtime_ms(stat: os.stat_result) -> int:
    return stat.st_mtime_ns // 1_000_000


class _SyncRun:
    """State of a single sync call."""

    def __init__(self, engine: "OneWaySyncEngine", preset: SyncPreset, report: Report):
        self.engine = engine
        self.preset = preset
        self.report = report
        self.dry_run = engine.dry_run

    def record(self, kind: OutcomeKind, source, destination=None, reason: Optional[str] = None,
               is_dir: bool = False) -> None:
        self.engine._record(self.report, Outcome(
            kind,
            str(source),
            str(destination) if destination is not None else None,
            reason=reason,
            is_dir=is_dir,
            dry_run=self.dry_run,
        ))

    def fail(self, source, destination, error, is_dir: bool = False) -> None:
        self.engine._fail(self.report, source, destination, error, is_dir)

    def execute(self, root: MergeTask) -> None:
        pending = deque([root])
        with ThreadPoolExecutor(max_workers=self.engine.max_workers) as executor, \
                tqdm(desc="Syncing", unit="dir", disable=not self.engine.show_progress) as pbar:
            while pending:
                task = pending.popleft()
                start = len(self.report.outcomes)
                pending.extend(self.process_directory(task, executor))
                BaseEngine._log_level_summary(task.source, task.destination, self.report, start)
                pbar.update(1)

    def ensure_dir(self, source: Path, destination: Path) -> bool:
        if not self.dry_run:
            try:
                os.makedirs(destination, exist_ok=True)
            except OSError as e:
                self.fail(source, destination, e, is_dir=True)
                return False
        self.record(OutcomeKind.CREATED, source, destination, is_dir=True)
        return True

    def process_directory(self, task: MergeTask, executor) -> list[MergeTask]:
        try:
            src_entries = list_entries(task.source)
            # In a dry run a destination directory may only exist on paper
            dst_entries = list_entries(task.destination) if task.destination.is_dir() else []
        except OSError as e:
            self.fail(task.source, task.destination, e, is_dir=True)
            return []
        dst_by_name = {entry.name: entry for entry in dst_entries}

        subdirs = []
        file_ops = []
        for entry in src_entries:
            src = Path(entry.path)
            dst = task.destination / entry.name
            if not entry.is_dir:
                file_ops.append((src, dst))
                continue
            dst_entry = dst_by_name.get(entry.name)
            if dst_entry is None:
                if not self.ensure_dir(src, dst):
                    continue
            elif not dst_entry.is_dir:
                self.fail(src, dst, "destination exists and is not a directory", is_dir=True)
                continue
            subdirs.append(MergeTask(src, dst))

        self.engine._run_stage(executor, self.sync_file, file_ops)

        if self.preset.cleanup.remove_dst_extra:
            src_names = {entry.name for entry in src_entries}
            extras = [
                (Path(entry.path), entry.is_dir)
                for entry in dst_entries
                if entry.name not in src_names
            ]
            self.engine._run_stage(executor, self.remove_extra, extras)

        return subdirs

    def is_same(self, src: Path, dst: Path) -> bool:
        """Compare an existing destination file with its source per the preset."""
        compare = self.preset.compare
        if dst.is_dir():
            return False
        src_stat = os.stat(src)
        dst_stat = os.stat(dst)
        if compare.check_size and src_stat.st_size != dst_stat.st_size:
            return False
        if compare.check_mtime and _mtime_ms(src_stat) != _mtime_ms(dst_stat):
            return False
        if compare.check_hash and not files_equal(src, dst):
            return False
        return True

    def sync_file(self, src: Path, dst: Path) -> None:
        ext = extension_of(src.name)
        if not self.preset.allows(ext):
            logger.debug("Filtered out %s", src)
            return

        for bound_ext in self.preset.bound_targets(ext):
            bound = dst.parent / f"{dst.stem}.{bound_ext}"
            if os.path.lexists(bound):
                self.record(OutcomeKind.SKIPPED, src, bound, reason=f"bound to {bound.name}")
                return

        exists = os.path.lexists(dst)
        if exists:
            try:
                same = self.is_same(src, dst)
            except OSError as e:
                self.fail(src, dst, e)
                return
            if same:
                if self.preset.cleanup.remove_src_same:
                    self.remove_source(src, dst)
                return

        self.transfer(src, dst, "changed" if exists else "missing")

    def transfer(self, src: Path, dst: Path, reason: str) -> None:
        exec_ = self.preset.exec
        if exec_ is SyncExec.NONE:
            self.record(OutcomeKind.SKIPPED, src, dst, reason=f"{reason}, no exec")
            return
        if dst.is_dir():
            self.fail(src, dst, "destination is a directory")
            return
        kind = OutcomeKind.COPIED if exec_ is SyncExec.COPY else OutcomeKind.MOVED
        if not self.dry_run:
            try:
                if exec_ is SyncExec.COPY:
                    shutil.copy2(src, dst)
                else:
                    shutil.move(src, dst)
            except OSError as e:
                self.fail(src, dst, e)
                return
        self.record(kind, src, dst, reason=reason)

    def remove_source(self, src: Path, dst: Path) -> None:
        if not self.dry_run:
            try:
                os.remove(src)
            except OSError as e:
                self.fail(src, dst, e)
                return
        self.record(OutcomeKind.REMOVED, src, dst, reason="already at destination")

    def remove_extra(self, path: Path, is_dir: bool) -> None:
        if not self.dry_run:
            try:
                if is_dir:
                    shutil.rmtree(path)
                else:
                    os.remove(path)
            except OSError as e:
                self.fail(path, None, e, is_dir)
                return
        self.record(OutcomeKind.REMOVED, path, reason="not in source", is_dir=is_dir)


class OneWaySyncEngine(BaseEngine):
    """
    Make a destination tree reflect a source tree according to a SyncPreset.

    The source is only modified by presets that move files or drain
    already-synced files (``cleanup.remove_src_same``).
    """

    def sync(self, source, destination, preset: Optional[SyncPreset] = None) -> Report:
        """
        Sync ``source`` onto ``destination``.

        Returns:
            Report with one outcome per transfer, removal or skipped file

        Raises:
            DestinationNotDirectoryError: destination exists but is not a directory
            InvalidArgumentError: one tree lies inside the other
        """
        source = Path(source)
        destination = Path(destination)
        preset = preset if preset is not None else preset_default()
        report = Report(str(source), str(destination), self.dry_run)

        if not source.is_dir():
            logger.debug("Source %s is missing or not a directory, nothing to sync", source)
            return report
        if same_path(source, destination):
            return report
        if is_within(destination, source) or is_within(source, destination):
            raise InvalidArgumentError(f"{source} and {destination} overlap")
        if os.path.lexists(destination) and not destination.is_dir():
            raise DestinationNotDirectoryError(str(destination))

        logger.info("Sync %s -> %s with %s", source, destination, preset.describe())
        run = _SyncRun(self, preset, report)
        if not destination.exists() and not run.ensure_dir(source, destination):
            return report
        run.execute(MergeTask(source, destination))
        return report


def sync_trees(source, destination, preset: Optional[SyncPreset] = None, **engine_kwargs) -> Report:
    """Sync ``source`` onto ``destination`` with a one-off OneWaySyncEngine."""
    return OneWaySyncEngine(**engine_kwargs).sync(source, destination, preset)
