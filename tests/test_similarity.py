"""Tests for folder_reconciler.similarity module."""

import pytest

from folder_reconciler.similarity import (
    MERGE_SIMILARITY_THRESHOLD,
    content_similarity,
    is_merge_safe,
    levenshtein,
    media_stems,
    name_similarity,
    scan_similar_folders,
)
from tests.conftest import write_tree


class TestNameSimilarity:
    """Tests for levenshtein and name_similarity."""

    def test_levenshtein(self):
        assert levenshtein("kitten", "sitting") == 3
        assert levenshtein("", "abc") == 3
        assert levenshtein("same", "same") == 0

    def test_identical_names(self):
        assert name_similarity("Artist - Song", "Artist - Song") == 1.0

    def test_one_edit(self):
        assert name_similarity("abc", "abd") == pytest.approx(2 / 3)

    def test_completely_different(self):
        assert name_similarity("abc", "xyz") == 0.0

    def test_empty_names(self):
        assert name_similarity("", "") == 1.0
        assert name_similarity("", "abc") == 0.0


class TestContentSimilarity:
    """Tests for media_stems and content_similarity."""

    def test_media_stems_ignore_other_files(self, temp_dir):
        write_tree(temp_dir, {"bgm.ogg": "", "bga.MP4": "", "chart.bms": "", "sub/x.wav": ""})
        assert media_stems(temp_dir) == {"bgm", "bga"}

    def test_same_directory_scores_one(self, temp_dir):
        write_tree(temp_dir, {"kick.wav": "", "snare.wav": ""})
        assert content_similarity(temp_dir, temp_dir) == 1.0

    def test_stem_matches_across_extensions(self, temp_dir):
        write_tree(temp_dir / "a", {"kick.wav": "", "snare.wav": "", "hat.wav": ""})
        write_tree(temp_dir / "b", {"kick.ogg": "", "snare.flac": ""})
        assert content_similarity(temp_dir / "a", temp_dir / "b") == 1.0

    def test_partial_overlap(self, temp_dir):
        write_tree(temp_dir / "a", {"kick.wav": "", "snare.wav": ""})
        write_tree(temp_dir / "b", {"kick.ogg": "", "other.ogg": "", "more.ogg": ""})
        assert content_similarity(temp_dir / "a", temp_dir / "b") == 0.5

    def test_no_media_scores_zero(self, temp_dir):
        write_tree(temp_dir / "a", {"chart.bms": ""})
        write_tree(temp_dir / "b", {"chart.bms": "", "kick.wav": ""})
        assert content_similarity(temp_dir / "a", temp_dir / "b") == 0.0
        assert content_similarity(temp_dir / "a", temp_dir / "a") == 0.0


class TestIsMergeSafe:
    """Tests for is_merge_safe function."""

    def test_missing_destination_is_safe(self, temp_dir):
        write_tree(temp_dir / "a", {"kick.wav": ""})
        assert is_merge_safe(temp_dir / "a", temp_dir / "missing")

    def test_threshold(self, temp_dir):
        write_tree(temp_dir / "a", {"1.wav": "", "2.wav": "", "3.wav": "", "4.wav": "", "5.wav": ""})
        write_tree(temp_dir / "b", {"1.ogg": "", "2.ogg": "", "3.ogg": "", "4.ogg": "", "x.ogg": ""})

        assert MERGE_SIMILARITY_THRESHOLD == 0.8
        assert is_merge_safe(temp_dir / "a", temp_dir / "b")
        assert not is_merge_safe(temp_dir / "a", temp_dir / "b", threshold=0.9)

    def test_unrelated_folder_is_unsafe(self, temp_dir):
        write_tree(temp_dir / "a", {"kick.wav": ""})
        write_tree(temp_dir / "b", {"intro.ogg": ""})
        assert not is_merge_safe(temp_dir / "a", temp_dir / "b")


class TestScanSimilarFolders:
    """Tests for scan_similar_folders function."""

    def test_by_name_adjacent_pairs(self, temp_dir):
        for name in ("Song A", "Song B", "Totally different"):
            (temp_dir / name).mkdir()
        (temp_dir / "Song C.txt").write_text("files are ignored")

        pairs = scan_similar_folders(temp_dir, 0.8)

        assert len(pairs) == 1
        assert (pairs[0].dir1, pairs[0].dir2) == ("Song A", "Song B")
        assert pairs[0].similarity == pytest.approx(5 / 6)

    def test_by_content(self, temp_dir):
        write_tree(temp_dir / "a", {"kick.wav": ""})
        write_tree(temp_dir / "b", {"kick.ogg": ""})
        write_tree(temp_dir / "c", {"snare.ogg": ""})

        pairs = scan_similar_folders(temp_dir, 0.5, by="content")

        assert [(p.dir1, p.dir2, p.similarity) for p in pairs] == [("a", "b", 1.0)]

    def test_sorted_best_first(self, temp_dir):
        for name in ("abcd", "abcx", "abxx"):
            (temp_dir / name).mkdir()

        pairs = scan_similar_folders(temp_dir, 0.0)

        assert [p.similarity for p in pairs] == sorted((p.similarity for p in pairs), reverse=True)

    def test_unknown_measure(self, temp_dir):
        with pytest.raises(ValueError):
            scan_similar_folders(temp_dir, 0.5, by="size")
