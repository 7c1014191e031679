"""Photo download, validation and caching."""
from .cache import CachedPhoto, PhotoCache
from .fetcher import FetchedPhoto, PhotoFailure, PhotoFetcher, PhotoFetchResult
from .validation import ACCEPTED_FORMATS, detect_image_format

__all__ = [
    "ACCEPTED_FORMATS",
    "CachedPhoto",
    "FetchedPhoto",
    "PhotoCache",
    "PhotoFailure",
    "PhotoFetchResult",
    "PhotoFetcher",
    "detect_image_format",
]
