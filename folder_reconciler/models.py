"""Data models for folder reconciler."""

import os
import threading
from collections import Counter
from dataclasses import dataclass, asdict, field
from enum import Enum
from pathlib import Path
from typing import Optional


def normalize_extension(ext: str) -> str:
    """Lower-case an extension and strip its leading dot."""
    return ext.lower().lstrip(".")


def extension_of(path) -> str:
    """Return the normalized last extension of a path ("" if none)."""
    return normalize_extension(Path(path).suffix)


class ReplaceAction(Enum):
    """What to do when a file already exists at the merge destination."""
    SKIP = "skip"
    REPLACE = "replace"
    RENAME = "rename"
    CHECK_REPLACE = "check_replace"


@dataclass
class ConflictPolicy:
    """Per-extension action table with a default action."""
    by_extension: dict[str, ReplaceAction] = field(default_factory=dict)
    default: ReplaceAction = ReplaceAction.REPLACE

    def __post_init__(self):
        self.by_extension = {
            normalize_extension(ext): action
            for ext, action in self.by_extension.items()
        }

    def action_for(self, path) -> ReplaceAction:
        return self.by_extension.get(extension_of(path), self.default)

    def to_dict(self) -> dict:
        return {
            "by_extension": {ext: a.value for ext, a in self.by_extension.items()},
            "default": self.default.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConflictPolicy":
        return cls(
            by_extension={
                ext: ReplaceAction(value)
                for ext, value in data.get("by_extension", {}).items()
            },
            default=ReplaceAction(data.get("default", ReplaceAction.REPLACE.value)),
        )


class SyncExec(Enum):
    """Transfer used by a one-way sync for missing or outdated files."""
    NONE = "none"
    COPY = "copy"
    MOVE = "move"


@dataclass
class CleanupStrategy:
    remove_dst_extra: bool = True
    remove_src_same: bool = False


@dataclass
class CompareStrategy:
    check_size: bool = True
    check_mtime: bool = True
    check_hash: bool = False


@dataclass
class SyncPreset:
    """Named bundle of filter, compare and cleanup rules for a one-way sync."""
    name: str = "Local file sync preset"
    allow_extensions: list[str] = field(default_factory=list)
    disallow_extensions: list[str] = field(default_factory=list)
    allow_others: bool = True
    # (from_exts, to_exts): a source file with a from-ext is not synced when
    # the destination already holds the same stem with any to-ext.
    bound_pairs: list[tuple[list[str], list[str]]] = field(default_factory=list)
    cleanup: CleanupStrategy = field(default_factory=CleanupStrategy)
    compare: CompareStrategy = field(default_factory=CompareStrategy)
    exec: SyncExec = SyncExec.COPY

    def __post_init__(self):
        self.allow_extensions = [normalize_extension(e) for e in self.allow_extensions]
        self.disallow_extensions = [normalize_extension(e) for e in self.disallow_extensions]
        self.bound_pairs = [
            ([normalize_extension(e) for e in src], [normalize_extension(e) for e in dst])
            for src, dst in self.bound_pairs
        ]

    def allows(self, ext: str) -> bool:
        """Check whether files with this extension take part in the sync."""
        ext = normalize_extension(ext)
        allowed = self.allow_others
        if ext in self.allow_extensions:
            allowed = True
        if ext in self.disallow_extensions:
            allowed = False
        return allowed

    def bound_targets(self, ext: str) -> list[str]:
        """Target extensions that suppress syncing a file with this extension."""
        ext = normalize_extension(ext)
        targets = []
        for from_exts, to_exts in self.bound_pairs:
            if ext in from_exts:
                targets.extend(to_exts)
        return targets

    def describe(self) -> str:
        parts = [f"{self.name}: exec={self.exec.value}"]
        if self.allow_others:
            parts.append("allow other extensions")
        if self.allow_extensions:
            parts.append(f"allow {self.allow_extensions}")
        if self.disallow_extensions:
            parts.append(f"reject {self.disallow_extensions}")
        if self.cleanup.remove_src_same:
            parts.append("remove already-synced source files")
        if self.cleanup.remove_dst_extra:
            parts.append("remove extra destination entries")
        checks = [
            name for name, enabled in (
                ("size", self.compare.check_size),
                ("mtime", self.compare.check_mtime),
                ("hash", self.compare.check_hash),
            ) if enabled
        ]
        if checks:
            parts.append("compare " + "+".join(checks))
        return ", ".join(parts)


@dataclass(frozen=True)
class MergeTask:
    """A (source, destination) directory pair waiting on the merge worklist."""
    source: Path
    destination: Path


@dataclass
class FileEntry:
    """A directory entry as it is on disk right now."""
    name: str
    path: str
    is_dir: bool
    size: int
    mtime: float

    @classmethod
    def from_dir_entry(cls, entry: os.DirEntry) -> "FileEntry":
        stat = entry.stat(follow_symlinks=False)
        return cls(
            name=entry.name,
            path=entry.path,
            is_dir=entry.is_dir(follow_symlinks=False),
            size=stat.st_size,
            mtime=stat.st_mtime,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FileInfo:
    """Snapshot of a file inside a scanned tree, including its fingerprint."""
    relative_path: str
    absolute_path: str
    hash: str
    size: int
    modified_time: float

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "FileInfo":
        return cls(**data)


@dataclass
class DirDiff:
    """File-level difference between the top levels of two directories."""
    only_in_a: list[str] = field(default_factory=list)
    only_in_b: list[str] = field(default_factory=list)
    different: list[str] = field(default_factory=list)
    same: list[str] = field(default_factory=list)


class OutcomeKind(Enum):
    """What happened to a single file or directory."""
    MOVED = "moved"
    RENAMED = "renamed"
    REPLACED = "replaced"
    SKIPPED = "skipped"
    DISCARDED = "discarded"
    COPIED = "copied"
    CREATED = "created"
    REMOVED = "removed"
    FAILED = "failed"


@dataclass
class Outcome:
    """Record of one decision taken (or, in dry-run, intended) by an engine."""
    kind: OutcomeKind
    source: str
    destination: Optional[str] = None
    reason: Optional[str] = None
    is_dir: bool = False
    dry_run: bool = False

    @property
    def new_name(self) -> Optional[str]:
        if self.destination is None:
            return None
        return os.path.basename(self.destination)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Outcome":
        data = dict(data)
        data["kind"] = OutcomeKind(data["kind"])
        return cls(**data)

    def __str__(self) -> str:
        text = f"{self.kind.value}: {self.source}"
        if self.destination:
            text += f" -> {self.destination}"
        if self.reason:
            text += f" ({self.reason})"
        if self.dry_run:
            text = "[dry-run] " + text
        return text


class Report:
    """Ordered, thread-safe collection of outcomes for one engine call."""

    def __init__(self, source: str = "", destination: str = "", dry_run: bool = False):
        self.source = source
        self.destination = destination
        self.dry_run = dry_run
        self.outcomes: list[Outcome] = []
        self._lock = threading.Lock()

    def add(self, outcome: Outcome) -> None:
        with self._lock:
            self.outcomes.append(outcome)

    def by_kind(self, kind: OutcomeKind) -> list[Outcome]:
        return [o for o in self.outcomes if o.kind is kind]

    @property
    def failures(self) -> list[Outcome]:
        return self.by_kind(OutcomeKind.FAILED)

    @property
    def ok(self) -> bool:
        return not self.failures

    def counts(self) -> dict[str, int]:
        counter = Counter(o.kind.value for o in self.outcomes)
        return dict(counter)

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "destination": self.destination,
            "dry_run": self.dry_run,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }

    def __len__(self) -> int:
        return len(self.outcomes)

    def __iter__(self):
        return iter(list(self.outcomes))
