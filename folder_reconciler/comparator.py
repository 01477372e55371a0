"""File content comparison."""

import hashlib
import logging
import os
from pathlib import Path

import xxhash

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "sha3_512"

_XXHASH_ALGORITHMS = {
    "xxh64": xxhash.xxh64,
    "xxh3_128": xxhash.xxh3_128,
}


def _long_path(path) -> str:
    """Convert path to long path format on Windows to handle paths > 260 chars."""
    path_str = str(Path(path).resolve())
    if os.name == 'nt' and not path_str.startswith('\\\\?\\'):
        return '\\\\?\\' + path_str
    return path_str


def _new_hasher(algorithm: str):
    if algorithm in _XXHASH_ALGORITHMS:
        return _XXHASH_ALGORITHMS[algorithm]()
    return hashlib.new(algorithm)


def compute_file_hash(file_path, algorithm: str = DEFAULT_ALGORITHM, chunk_size: int = 65536) -> str:
    """
    Compute the whole-file digest of a file.

    Args:
        file_path: File to hash
        algorithm: Any hashlib algorithm name, or "xxh64" / "xxh3_128"
        chunk_size: Read size in bytes

    Returns:
        Hex digest string
    """
    hasher = _new_hasher(algorithm)
    with open(_long_path(file_path), 'rb') as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)
    return hasher.hexdigest()


def files_equal(a, b, algorithm: str = DEFAULT_ALGORITHM) -> bool:
    """
    Check whether two files have identical content.

    Sizes are compared first; files are only hashed when sizes match.
    A directory on either side is never equal to anything.
    """
    stat_a = os.stat(_long_path(a))
    stat_b = os.stat(_long_path(b))
    if Path(a).is_dir() or Path(b).is_dir():
        return False
    if stat_a.st_size != stat_b.st_size:
        return False
    same = compute_file_hash(a, algorithm) == compute_file_hash(b, algorithm)
    logger.debug("Compared %s and %s by %s: %s", a, b, algorithm, "same" if same else "different")
    return same
