"""Fingerprint baseline persistence.

Each artifact directory holds one JSON file (``.pull-hashes.json`` by
default) mapping tracked relative paths to the fingerprints recorded at
the last successful pull or push.

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Full replacement** -- every save replaces the whole map; no entries
  are merged in from the previous file.
* **Tolerant reads** -- ``read()`` treats an unparseable file as an empty
  baseline and reports a warning; ``read_strict()`` raises instead.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from template_sync.errors import FileAccessError, StoreCorruptError

logger = logging.getLogger(__name__)

_HEX_DIGEST = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class Baseline:
    """Result of loading a baseline.

    Attributes:
        fingerprints: Recorded fingerprints (empty when none are usable).
        warning: Set when the store existed but could not be parsed.
    """

    fingerprints: dict[str, str] = field(default_factory=dict)
    warning: str | None = None


class HashStore:
    """Load and save the per-artifact fingerprint map.

    Args:
        filename: Name of the map file inside each artifact directory.
    """

    def __init__(self, filename: str = ".pull-hashes.json") -> None:
        self.filename = filename

    def path_for(self, artifact_dir: Path) -> Path:
        return artifact_dir / self.filename

    def exists(self, artifact_dir: Path) -> bool:
        return self.path_for(artifact_dir).is_file()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_strict(self, artifact_dir: Path) -> dict[str, str]:
        """Load the fingerprint map, raising on a corrupt file.

        Returns:
            The recorded map, or ``{}`` if no store file exists.

        Raises:
            StoreCorruptError: If the file exists but is not a JSON object
                of path-to-digest strings.
        """
        path = self.path_for(artifact_dir)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            raise StoreCorruptError(str(path), str(exc)) from exc

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StoreCorruptError(str(path), f"invalid JSON: {exc.msg}") from exc

        if not isinstance(data, dict):
            raise StoreCorruptError(str(path), "expected a JSON object")
        for key, value in data.items():
            if not isinstance(value, str) or not _HEX_DIGEST.match(value):
                raise StoreCorruptError(
                    str(path), f"entry '{key}' is not a SHA-256 hex digest"
                )
        return data

    def read(self, artifact_dir: Path) -> Baseline:
        """Load the fingerprint map, treating a corrupt file as empty."""
        try:
            return Baseline(fingerprints=self.read_strict(artifact_dir))
        except StoreCorruptError as exc:
            logger.warning("%s; treating baseline as empty", exc)
            return Baseline(warning=str(exc))

    def load(self, artifact_dir: Path) -> dict[str, str]:
        """Return just the fingerprint map (empty on absence or corruption)."""
        return self.read(artifact_dir).fingerprints

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def save(self, artifact_dir: Path, fingerprints: dict[str, str]) -> None:
        """Persist *fingerprints* atomically, replacing any previous map.

        Creates *artifact_dir* if it does not exist.

        Raises:
            FileAccessError: If the map cannot be written.
        """
        target = self.path_for(artifact_dir)
        try:
            artifact_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(artifact_dir), prefix=f".{self.filename}.", suffix=".tmp"
            )
        except OSError as exc:
            raise FileAccessError(str(target), exc.strerror or str(exc)) from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(fingerprints, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, target)
        except OSError as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.debug("Could not remove temp file %s", tmp_path)
            raise FileAccessError(str(target), exc.strerror or str(exc)) from exc

        logger.debug("Saved %d fingerprint(s) to %s", len(fingerprints), target)
