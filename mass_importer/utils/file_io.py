"""Bounded file reading, hashing and crash-safe writes."""

from __future__ import annotations

import codecs
import hashlib
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

from ..exceptions import InputLoadError
from .logging import setup_logger

DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1MB

logger = setup_logger(__name__)


def stream_binary_file(
    file_path: str | Path,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_bytes: int | None = None,
) -> Iterator[bytes]:
    """Yield binary chunks from disk, respecting max_bytes guardrails."""

    bytes_read = 0
    try:
        with open(file_path, "rb") as file_handle:
            while True:
                chunk = file_handle.read(chunk_size)
                if not chunk:
                    break
                bytes_read += len(chunk)
                if max_bytes is not None and bytes_read > max_bytes:
                    raise InputLoadError(
                        f"File {file_path} exceeds configured max_bytes limit ({max_bytes})"
                    )
                yield bytes(chunk)
    except OSError as exc:
        raise InputLoadError(f"Failed to read file {file_path}: {exc}") from exc


def read_text_file(
    file_path: str | Path,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_bytes: int | None = None,
    encoding: str = "utf-8",
) -> str:
    """Read text data from disk using bounded chunked reads.

    A leading UTF-8 byte order mark is dropped.
    """

    if encoding.lower().replace("-", "") == "utf8":
        encoding = "utf-8-sig"
    try:
        decoder = codecs.getincrementaldecoder(encoding)(errors="strict")
    except LookupError as exc:
        raise InputLoadError(f"Unknown encoding '{encoding}'") from exc

    parts: list[str] = []
    try:
        for chunk in stream_binary_file(file_path, chunk_size=chunk_size, max_bytes=max_bytes):
            parts.append(decoder.decode(chunk))
        parts.append(decoder.decode(b"", final=True))
    except UnicodeDecodeError as exc:
        raise InputLoadError(f"File {file_path} is not valid {encoding}: {exc}") from exc
    return "".join(parts)


def file_sha256(file_path: str | Path, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Return the hex SHA-256 digest of a file, read in chunks."""

    digest = hashlib.sha256()
    for chunk in stream_binary_file(file_path, chunk_size=chunk_size):
        digest.update(chunk)
    return digest.hexdigest()


def atomic_write_bytes(path: str | Path, data: bytes) -> None:
    """Write ``data`` so readers see either the old or the new file, never a torn one.

    The temporary file lives in the destination directory so ``os.replace`` stays
    a same-filesystem rename.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def atomic_write_text(path: str | Path, text: str, *, encoding: str = "utf-8") -> None:
    atomic_write_bytes(path, text.encode(encoding))
