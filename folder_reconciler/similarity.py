"""Directory similarity scores used to decide whether a merge is safe."""

import logging
from dataclasses import dataclass
from pathlib import Path

from .models import extension_of
from .scanner import list_entries

logger = logging.getLogger(__name__)

MEDIA_EXTENSIONS = (
    "ogg", "wav", "flac", "mp4", "wmv", "avi", "mpg", "mpeg", "bmp", "jpg", "png",
)

# Content similarity a pre-existing destination must reach before an
# automatic merge into it is allowed.
MERGE_SIMILARITY_THRESHOLD = 0.8


@dataclass
class SimilarFolderPair:
    dir1: str
    dir2: str
    similarity: float


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings (insert, delete, substitute)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current
    return previous[-1]


def name_similarity(a: str, b: str) -> float:
    """Normalized edit-distance similarity of two folder names, in [0, 1]."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longest


def media_stems(directory) -> set[str]:
    """Stems of the media files directly inside a directory."""
    return {
        Path(entry.name).stem
        for entry in list_entries(directory)
        if not entry.is_dir and extension_of(entry.name) in MEDIA_EXTENSIONS
    }


def content_similarity(dir_a, dir_b) -> float:
    """
    Share of media stems two directories have in common.

    |stems(A) & stems(B)| / min(|stems(A)|, |stems(B)|), or 0.0 when either
    side has no media files.
    """
    stems_a = media_stems(dir_a)
    stems_b = media_stems(dir_b)
    if not stems_a or not stems_b:
        return 0.0
    return len(stems_a & stems_b) / min(len(stems_a), len(stems_b))


def is_merge_safe(source, destination, threshold: float = MERGE_SIMILARITY_THRESHOLD) -> bool:
    """
    Check whether merging ``source`` into an existing ``destination`` is safe.

    A destination that does not exist yet is always safe.
    """
    if not Path(destination).exists():
        return True
    score = content_similarity(source, destination)
    logger.info("Similarity %s <-> %s: %.3f", source, destination, score)
    return score >= threshold


def scan_similar_folders(root_dir, threshold: float, by: str = "name") -> list[SimilarFolderPair]:
    """
    Find neighbouring subdirectories of ``root_dir`` that look alike.

    Subdirectory names are sorted, each adjacent pair is scored by name or
    by media content, and pairs scoring at least ``threshold`` are returned
    best first.
    """
    if by not in ("name", "content"):
        raise ValueError(f"Unknown similarity measure: {by}")
    names = sorted(entry.name for entry in list_entries(root_dir) if entry.is_dir)
    root = Path(root_dir)

    pairs = []
    for former, current in zip(names, names[1:]):
        if by == "name":
            score = name_similarity(former, current)
        else:
            score = content_similarity(root / former, root / current)
        if score >= threshold:
            pairs.append(SimilarFolderPair(former, current, score))

    pairs.sort(key=lambda p: p.similarity, reverse=True)
    return pairs
