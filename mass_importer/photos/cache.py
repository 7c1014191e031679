"""Content-addressed on-disk photo cache with a URL index."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..utils.file_io import atomic_write_bytes, atomic_write_text
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"stage": "photos"})

INDEX_FILENAME = "url-index.json"


class CachedPhoto(BaseModel):
    """Index entry for one cached download."""

    url: str
    filename: str
    sha256: str
    mime_type: str
    size_bytes: int


class PhotoCache:
    """Photos stored as ``<sha256>.<ext>`` plus a URL -> entry index.

    The index lets repeat runs skip downloads entirely; the content hash lets
    different URLs serving the same bytes share one file.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._index_path = self.directory / INDEX_FILENAME
        self._index: dict[str, CachedPhoto] = self._load_index()
        self._dirty = False

    def _load_index(self) -> dict[str, CachedPhoto]:
        if not self._index_path.exists():
            return {}
        try:
            raw = json.loads(self._index_path.read_text(encoding="utf-8"))
            return {url: CachedPhoto.model_validate(entry) for url, entry in raw.items()}
        except (OSError, ValueError, AttributeError, PydanticValidationError) as exc:
            # The cache is rebuildable; start empty rather than blocking the run.
            logger.warning("Ignoring unreadable photo cache index %s: %s", self._index_path, exc)
            return {}

    def path_for(self, entry: CachedPhoto) -> Path:
        return self.directory / entry.filename

    def lookup_url(self, url: str) -> CachedPhoto | None:
        """Return the cached entry for ``url`` if its file is still present."""

        entry = self._index.get(url)
        if entry is None:
            return None
        if not self.path_for(entry).exists():
            del self._index[url]
            self._dirty = True
            return None
        return entry

    def store(self, url: str, data: bytes, *, sha256: str, mime_type: str, extension: str) -> tuple[CachedPhoto, bool]:
        """Persist ``data`` under its content hash and index it by URL.

        Returns:
            The index entry and whether the content was already on disk.
        """
        filename = f"{sha256}.{extension}"
        target = self.directory / filename
        already_present = target.exists()
        if not already_present:
            atomic_write_bytes(target, data)

        entry = CachedPhoto(
            url=url,
            filename=filename,
            sha256=sha256,
            mime_type=mime_type,
            size_bytes=len(data),
        )
        self._index[url] = entry
        self._dirty = True
        return entry, already_present

    def flush(self) -> None:
        """Persist the URL index if it changed."""

        if not self._dirty:
            return
        payload = {url: entry.model_dump() for url, entry in sorted(self._index.items())}
        atomic_write_text(self._index_path, json.dumps(payload, indent=2))
        self._dirty = False

    def __len__(self) -> int:
        return len(self._index)
