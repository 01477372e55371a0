"""Tests for folder_reconciler.scanner module."""

import pytest

from folder_reconciler.models import OutcomeKind
from folder_reconciler.scanner import (
    compare_directories,
    get_file_info,
    has_files,
    is_dir_having_file,
    list_entries,
    remove_empty_folders,
    scan_tree,
    tree_fingerprint,
)
from tests.conftest import write_tree


class TestListEntries:
    """Tests for list_entries function."""

    def test_lists_files_and_dirs_sorted(self, temp_dir):
        write_tree(temp_dir, {"b.txt": "bb", "a.txt": "a", "sub/c.txt": "c"})

        entries = list_entries(temp_dir)

        assert [e.name for e in entries] == ["a.txt", "b.txt", "sub"]
        assert [e.is_dir for e in entries] == [False, False, True]
        assert entries[1].size == 2
        assert entries[0].path == str(temp_dir / "a.txt")

    def test_reads_fresh_state(self, temp_dir):
        (temp_dir / "a.txt").write_text("a")
        assert len(list_entries(temp_dir)) == 1

        (temp_dir / "b.txt").write_text("b")
        assert len(list_entries(temp_dir)) == 2

    def test_missing_directory_raises(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            list_entries(temp_dir / "missing")


class TestScanTree:
    """Tests for scan_tree and get_file_info."""

    def test_get_file_info(self, temp_dir):
        (temp_dir / "test.txt").write_text("test content")

        info = get_file_info(temp_dir, "test.txt")

        assert info.relative_path == "test.txt"
        assert info.size == 12
        assert len(info.hash) == 16

    def test_scan_nested_tree(self, temp_dir):
        write_tree(temp_dir, {"root.txt": "r", "a/b/deep.txt": "d"})

        files, errors = scan_tree(temp_dir)

        assert set(files) == {"root.txt", "a/b/deep.txt"}
        assert errors == []

    def test_scan_empty_tree(self, temp_dir):
        files, errors = scan_tree(temp_dir)
        assert files == {}
        assert errors == []


class TestTreeFingerprint:
    """Tests for tree_fingerprint function."""

    def test_same_layout_same_fingerprint(self, temp_dir):
        layout = {"a.txt": "a", "sub/b.txt": "b"}
        write_tree(temp_dir / "one", layout)
        write_tree(temp_dir / "two", layout)

        assert tree_fingerprint(temp_dir / "one") == tree_fingerprint(temp_dir / "two")

    def test_content_change_changes_fingerprint(self, temp_dir):
        write_tree(temp_dir / "one", {"a.txt": "a"})
        write_tree(temp_dir / "two", {"a.txt": "A"})

        assert tree_fingerprint(temp_dir / "one") != tree_fingerprint(temp_dir / "two")

    def test_rename_changes_fingerprint(self, temp_dir):
        write_tree(temp_dir / "one", {"a.txt": "a"})
        write_tree(temp_dir / "two", {"b.txt": "a"})

        assert tree_fingerprint(temp_dir / "one") != tree_fingerprint(temp_dir / "two")


class TestHasFiles:
    """Tests for is_dir_having_file and has_files."""

    def test_direct_file(self, temp_dir):
        (temp_dir / "a.txt").write_text("a")
        assert is_dir_having_file(temp_dir)
        assert has_files(temp_dir)

    def test_only_nested_file(self, temp_dir):
        write_tree(temp_dir, {"sub/a.txt": "a"})
        assert not is_dir_having_file(temp_dir)
        assert has_files(temp_dir)

    def test_only_empty_dirs(self, temp_dir):
        (temp_dir / "x" / "y").mkdir(parents=True)
        assert not is_dir_having_file(temp_dir)
        assert not has_files(temp_dir)


class TestRemoveEmptyFolders:
    """Tests for remove_empty_folders function."""

    def test_removes_only_fileless_dirs(self, temp_dir):
        write_tree(temp_dir, {"keep/a.txt": "a"})
        (temp_dir / "empty" / "deeper").mkdir(parents=True)
        (temp_dir / "keep" / "hollow").mkdir()

        report = remove_empty_folders(temp_dir)

        assert (temp_dir / "keep" / "a.txt").exists()
        assert not (temp_dir / "empty").exists()
        assert not (temp_dir / "keep" / "hollow").exists()
        assert temp_dir.exists()
        assert len(report.by_kind(OutcomeKind.REMOVED)) == 2

    def test_dry_run_changes_nothing(self, temp_dir):
        (temp_dir / "empty").mkdir()
        seen = []

        report = remove_empty_folders(temp_dir, dry_run=True, reporter=seen.append)

        assert (temp_dir / "empty").exists()
        assert report.outcomes[0].dry_run
        assert seen == report.outcomes


class TestCompareDirectories:
    """Tests for compare_directories function."""

    def test_compare_by_size(self, temp_dir):
        write_tree(temp_dir / "a", {"only_a.txt": "x", "same.txt": "1234", "diff.txt": "1"})
        write_tree(temp_dir / "b", {"only_b.txt": "x", "same.txt": "abcd", "diff.txt": "12"})

        diff = compare_directories(temp_dir / "a", temp_dir / "b")

        assert diff.only_in_a == ["only_a.txt"]
        assert diff.only_in_b == ["only_b.txt"]
        assert diff.same == ["same.txt"]
        assert diff.different == ["diff.txt"]

    def test_compare_by_content(self, temp_dir):
        write_tree(temp_dir / "a", {"same.txt": "1234"})
        write_tree(temp_dir / "b", {"same.txt": "abcd"})

        diff = compare_directories(temp_dir / "a", temp_dir / "b", check_content=True)

        assert diff.same == []
        assert diff.different == ["same.txt"]
