"""Content fingerprints for tracked files.

A fingerprint is the lowercase hex SHA-256 of a file's raw bytes, with no
normalisation: two files have the same fingerprint exactly when their
bytes are identical.  A missing file fingerprints to ``ABSENT``.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from pathlib import Path

from template_sync.errors import FileAccessError

ABSENT = None

_CHUNK_SIZE = 64 * 1024


def compute_fingerprint(path: Path) -> str | None:
    """Fingerprint the file at *path*, streaming it in chunks.

    Returns:
        64-character hex digest, or ``ABSENT`` if no file exists at *path*.

    Raises:
        FileAccessError: If the file exists but cannot be read.
    """
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as fh:
            for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except FileNotFoundError:
        return ABSENT
    except OSError as exc:
        raise FileAccessError(str(path), exc.strerror or str(exc)) from exc
    return digest.hexdigest()


def fingerprint_files(
    artifact_dir: Path, tracked_files: Iterable[str]
) -> dict[str, str]:
    """Fingerprint every tracked file that exists under *artifact_dir*.

    Absent files are omitted from the result.

    Raises:
        FileAccessError: If a present file cannot be read.
    """
    fingerprints: dict[str, str] = {}
    for name in tracked_files:
        value = compute_fingerprint(artifact_dir / name)
        if value is not ABSENT:
            fingerprints[name] = value
    return fingerprints
