"""
Storage for the most recently generated invoice.

A single well-known file holds the latest document. Every successful
generation overwrites it; it is fetched back by its fixed name.

Concurrency: this is process-wide, last-write-wins state with no locking.
Two concurrent requests may race, and the stored file may belong to a
different request than the response a caller just received (compare the
document hash). Writes go through a temporary file and os.replace, so a
reader sees either the previous or the next document, never a partial one.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._ -]")


class LatestArtifactStore:
    """Fixed-name, last-write-wins document storage."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def save(self, content: bytes) -> Path:
        """
        Atomically replace the stored document.

        Raises:
            OSError: if the directory cannot be created or written.
        """
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(content)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(
            "latest_artifact_replaced",
            extra={"path": str(self._path), "size_bytes": len(content)},
        )
        return self._path

    def load(self) -> Optional[bytes]:
        """Return the stored document, or None if nothing was generated yet."""
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None


def safe_download_filename(requested: Optional[str], *, fallback: str) -> str:
    """
    Sanitize a caller-supplied download filename.

    Path components, quotes and control characters are stripped and the
    .docx extension is enforced. The result is only ever used in a
    Content-Disposition header, never as a storage path.
    """
    name = (requested or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_FILENAME_CHARS.sub("", name).strip(" .")

    if not name:
        name = fallback
    if not name.lower().endswith(".docx"):
        name = f"{name}.docx"
    return name
