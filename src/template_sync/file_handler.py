"""File handler module: encoding-aware reads, size guard, staged writes.

Provides the file I/O used by the reconciliation engine.  Errors are
translated into ``FileAccessError`` so callers can tell "missing" (checked
with ``Path.exists``) apart from "could not read/write".
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path

from charset_normalizer import from_bytes

from template_sync.errors import FileAccessError, FileTooLargeError

logger = logging.getLogger(__name__)

_MB = 1024 * 1024

# =============================================================================
# File Read
# =============================================================================


def decode_bytes(raw: bytes) -> tuple[str, str]:
    """Decode raw bytes with automatic encoding detection.

    Uses charset-normalizer to detect the encoding.  Defaults to UTF-8 for
    empty input or when detection fails.

    Args:
        raw: Bytes to decode.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # ascii is a strict subset of utf-8
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a text file with automatic encoding detection.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).

    Raises:
        FileAccessError: If the file cannot be read.
    """
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise FileAccessError(str(path), exc.strerror or str(exc)) from exc
    return decode_bytes(raw)


def validate_file_size(path: Path, max_size_mb: float = 10) -> None:
    """Raise if *path* is larger than *max_size_mb* megabytes.

    Call this before loading a file that may be arbitrarily large.

    Raises:
        FileAccessError: If the file does not exist or cannot be stat'ed.
        FileTooLargeError: If the file exceeds the limit.
    """
    try:
        size = path.stat().st_size
    except FileNotFoundError as exc:
        raise FileAccessError(str(path), "file not found") from exc
    except OSError as exc:
        raise FileAccessError(str(path), exc.strerror or str(exc)) from exc

    if size > max_size_mb * _MB:
        raise FileTooLargeError(
            str(path),
            f"file is {size / _MB:.2f} MB, which exceeds the "
            f"{max_size_mb} MB limit",
        )


# =============================================================================
# File Write
# =============================================================================


def write_files_atomically(
    directory: Path, files: dict[str, str], encoding: str = "utf-8"
) -> int:
    """Write several files under *directory* as one staged operation.

    Every file is first written to a temp file beside its target, and
    every existing target is copied aside.  Only then are the temp files
    renamed into place.  If a rename fails, targets already replaced are
    restored from their copies (or removed when they did not exist
    before), so either all files change or none do.

    Args:
        directory: Base directory; keys of *files* are relative to it.
        files: Mapping of relative path to text content.
        encoding: Encoding to use (default: utf-8).

    Returns:
        Total number of bytes written.

    Raises:
        FileAccessError: If staging or renaming fails.
    """
    staged: list[tuple[str, Path]] = []
    originals: dict[Path, str] = {}
    total = 0
    try:
        for rel_path, content in files.items():
            target = directory / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            encoded = content.encode(encoding)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp"
            )
            staged.append((tmp_path, target))
            with os.fdopen(fd, "wb") as fh:
                fh.write(encoded)
            total += len(encoded)
            if target.exists():
                fd, orig_path = tempfile.mkstemp(
                    dir=str(target.parent), prefix=f".{target.name}.", suffix=".orig"
                )
                os.close(fd)
                originals[target] = orig_path
                shutil.copy2(target, orig_path)
    except OSError as exc:
        _discard([tmp for tmp, _ in staged] + list(originals.values()))
        raise FileAccessError(
            str(directory), exc.strerror or str(exc)
        ) from exc

    for index, (tmp_path, target) in enumerate(staged):
        try:
            os.replace(tmp_path, target)
        except OSError as exc:
            _rollback([t for _, t in staged[:index]], originals)
            _discard([tmp for tmp, _ in staged[index:]] + list(originals.values()))
            raise FileAccessError(
                str(target), exc.strerror or str(exc)
            ) from exc

    _discard(list(originals.values()))
    return total


def _rollback(replaced: list[Path], originals: dict[Path, str]) -> None:
    for target in replaced:
        try:
            if target in originals:
                os.replace(originals.pop(target), target)
            else:
                os.unlink(target)
        except OSError as exc:
            logger.error("Could not restore %s: %s", target, exc)


def _discard(paths: list[str]) -> None:
    for path in paths:
        try:
            os.unlink(path)
        except OSError:
            logger.debug("Could not remove temp file %s", path)
