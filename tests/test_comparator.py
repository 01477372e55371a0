"""Tests for folder_reconciler.comparator module."""

from unittest.mock import patch

import pytest

from folder_reconciler.comparator import compute_file_hash, files_equal


class TestComputeFileHash:
    """Tests for compute_file_hash function."""

    def test_default_is_sha3_512(self, temp_dir):
        file_path = temp_dir / "small.txt"
        file_path.write_text("hello world")

        result = compute_file_hash(file_path)
        assert isinstance(result, str)
        assert len(result) == 128

    def test_xxh64(self, temp_dir):
        file_path = temp_dir / "small.txt"
        file_path.write_text("hello world")

        assert len(compute_file_hash(file_path, "xxh64")) == 16

    def test_hash_empty_file(self, temp_dir):
        file_path = temp_dir / "empty.txt"
        file_path.write_text("")

        assert len(compute_file_hash(file_path, "xxh3_128")) == 32

    def test_same_result_regardless_of_chunk_size(self, temp_dir):
        file_path = temp_dir / "large.bin"
        file_path.write_bytes(bytes(range(256)) * 1000)

        hash1 = compute_file_hash(file_path, chunk_size=1024)
        hash2 = compute_file_hash(file_path, chunk_size=65536)
        assert hash1 == hash2

    def test_different_content_different_hash(self, temp_dir):
        file1 = temp_dir / "file1.txt"
        file2 = temp_dir / "file2.txt"
        file1.write_text("content 1")
        file2.write_text("content 2")

        assert compute_file_hash(file1) != compute_file_hash(file2)

    def test_nonexistent_file_raises(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            compute_file_hash(temp_dir / "missing.txt")


class TestFilesEqual:
    """Tests for files_equal function."""

    def test_identical_files(self, temp_dir):
        (temp_dir / "a.bms").write_text("same chart")
        (temp_dir / "b.bms").write_text("same chart")

        assert files_equal(temp_dir / "a.bms", temp_dir / "b.bms")

    def test_same_size_different_content(self, temp_dir):
        (temp_dir / "a.bms").write_text("chart AAAA")
        (temp_dir / "b.bms").write_text("chart BBBB")

        assert not files_equal(temp_dir / "a.bms", temp_dir / "b.bms")

    def test_different_size_skips_hashing(self, temp_dir):
        (temp_dir / "a.bin").write_bytes(b"short")
        (temp_dir / "b.bin").write_bytes(b"much longer content")

        with patch("folder_reconciler.comparator.compute_file_hash") as mock_hash:
            assert not files_equal(temp_dir / "a.bin", temp_dir / "b.bin")
        mock_hash.assert_not_called()

    def test_directory_is_never_equal(self, temp_dir):
        (temp_dir / "dir").mkdir()
        (temp_dir / "file.txt").write_text("x")

        assert not files_equal(temp_dir / "dir", temp_dir / "file.txt")
        assert not files_equal(temp_dir / "file.txt", temp_dir / "dir")

    def test_missing_file_raises(self, temp_dir):
        (temp_dir / "file.txt").write_text("x")

        with pytest.raises(FileNotFoundError):
            files_equal(temp_dir / "file.txt", temp_dir / "missing.txt")

    def test_custom_algorithm(self, temp_dir):
        (temp_dir / "a.txt").write_text("same")
        (temp_dir / "b.txt").write_text("same")

        assert files_equal(temp_dir / "a.txt", temp_dir / "b.txt", algorithm="xxh64")
