"""Shared test fixtures."""

import tempfile
from pathlib import Path

import pytest

from folder_reconciler.models import FileInfo, Outcome, OutcomeKind


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create ``files`` (relative path -> text) under ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


def list_files(root: Path) -> dict[str, str]:
    """Map every file below ``root`` (POSIX relative path) to its text."""
    return {
        path.relative_to(root).as_posix(): path.read_text()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_trees(temp_dir):
    """Create a source and a destination tree with every kind of overlap."""
    source = write_tree(temp_dir / "source", {
        "only_in_source.txt": "only in source",
        "identical.bms": "same chart",
        "conflict.bms": "chart from source",
        "cover.png": "new cover",
        "shared/nested_source.txt": "nested in source",
        "fresh/inside.txt": "whole new folder",
    })
    destination = write_tree(temp_dir / "destination", {
        "only_in_destination.txt": "only in destination",
        "identical.bms": "same chart",
        "conflict.bms": "chart from destination",
        "cover.png": "old cover",
        "shared/nested_destination.txt": "nested in destination",
    })
    return source, destination


@pytest.fixture
def sample_file_info():
    """Create a sample FileInfo for testing."""
    return FileInfo(
        relative_path="test/file.txt",
        absolute_path="/absolute/test/file.txt",
        hash="abc123def456",
        size=1024,
        modified_time=1700000000.0
    )


@pytest.fixture
def sample_outcome():
    """Create a sample Outcome for testing."""
    return Outcome(
        kind=OutcomeKind.RENAMED,
        source="/src/conflict.bms",
        destination="/dst/conflict.2.bms",
        reason=None,
    )
