"""Download, validate and cache photos referenced by import records."""

from __future__ import annotations

import asyncio
import hashlib
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from ..exceptions import PhotoFetchError, RetriesExhaustedError
from ..monitoring.metrics import record_photo_fetch
from ..schemas.records import PhotoReference
from ..schemas.run_config import PhotoFetchPolicy
from ..utils.logging import setup_logger
from ..utils.retry import execute_with_retry
from .cache import PhotoCache
from .validation import detect_image_format

logger = setup_logger(__name__, context={"stage": "photos"})


@dataclass(slots=True)
class FetchedPhoto:
    url: str
    path: Path
    sha256: str
    mime_type: str
    size_bytes: int
    caption: str | None = None
    credit: str | None = None
    from_cache: bool = False

    def as_submission(self) -> dict[str, object]:
        return {
            "url": self.url,
            "sha256": self.sha256,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "caption": self.caption,
            "credit": self.credit,
            "cached_path": str(self.path),
        }


@dataclass(slots=True)
class PhotoFailure:
    url: str
    reason: str


@dataclass(slots=True)
class PhotoFetchResult:
    fetched: list[FetchedPhoto] = field(default_factory=list)
    failed: list[PhotoFailure] = field(default_factory=list)

    @property
    def cached_count(self) -> int:
        return sum(1 for photo in self.fetched if photo.from_cache)


class PhotoFetcher:
    """Fetch photos sequentially with per-photo retry and validation."""

    def __init__(
        self,
        cache: PhotoCache,
        *,
        policy: PhotoFetchPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        user_agent: str = "public-art-mass-import/1.0",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.cache = cache
        self.policy = policy or PhotoFetchPolicy()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=True,
            headers={"User-Agent": user_agent},
        )
        self._sleep = sleep

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_all(self, photos: Sequence[PhotoReference]) -> PhotoFetchResult:
        """Fetch every photo; one failure never prevents the others."""

        result = PhotoFetchResult()
        for photo in photos:
            try:
                fetched = await self.fetch(photo)
            except PhotoFetchError as exc:
                record_photo_fetch("failed")
                logger.warning(
                    "Photo skipped: %s",
                    exc,
                    extra={"status": "degraded"},
                )
                result.failed.append(PhotoFailure(url=photo.url, reason=exc.reason))
                continue
            record_photo_fetch("cached" if fetched.from_cache else "downloaded")
            result.fetched.append(fetched)
        self.cache.flush()
        return result

    async def fetch(self, photo: PhotoReference) -> FetchedPhoto:
        """Return a cached photo, downloading and validating it when needed.

        Raises:
            PhotoFetchError: On HTTP errors, exhausted retries, oversize bodies or
                unsupported formats.
        """
        cached = self.cache.lookup_url(photo.url)
        if cached is not None:
            return FetchedPhoto(
                url=photo.url,
                path=self.cache.path_for(cached),
                sha256=cached.sha256,
                mime_type=cached.mime_type,
                size_bytes=cached.size_bytes,
                caption=photo.caption,
                credit=photo.credit,
                from_cache=True,
            )

        data = await self._download(photo.url)

        image_format = detect_image_format(data)
        if image_format is None:
            raise PhotoFetchError(photo.url, "unsupported image format (magic bytes)")

        sha256 = hashlib.sha256(data).hexdigest()
        entry, already_present = self.cache.store(
            photo.url,
            data,
            sha256=sha256,
            mime_type=image_format.mime_type,
            extension=image_format.extension,
        )
        return FetchedPhoto(
            url=photo.url,
            path=self.cache.path_for(entry),
            sha256=sha256,
            mime_type=image_format.mime_type,
            size_bytes=len(data),
            caption=photo.caption,
            credit=photo.credit,
            from_cache=already_present,
        )

    async def _download(self, url: str) -> bytes:
        max_bytes = self.policy.max_bytes
        body: dict[str, bytes] = {}

        async def _send() -> httpx.Response:
            async with self._client.stream(
                "GET", url, timeout=self.policy.timeout_seconds
            ) as response:
                if response.status_code >= 400:
                    return response

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > max_bytes:
                    raise PhotoFetchError(url, f"file exceeds {max_bytes} bytes")

                chunks: list[bytes] = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > max_bytes:
                        raise PhotoFetchError(url, f"file exceeds {max_bytes} bytes")
                    chunks.append(chunk)
                body["data"] = b"".join(chunks)
                return response

        try:
            response = await execute_with_retry(
                _send,
                retry_config=self.policy.retry_config(),
                operation="photo_download",
                log=logger,
                sleep=self._sleep,
            )
        except RetriesExhaustedError as exc:
            raise PhotoFetchError(url, str(exc), retryable=True) from exc
        except httpx.HTTPError as exc:
            raise PhotoFetchError(url, f"request failed: {exc}") from exc

        if response.status_code >= 400:
            raise PhotoFetchError(url, f"HTTP {response.status_code}")
        data = body.get("data", b"")
        if not data:
            raise PhotoFetchError(url, "empty response body")
        return data
