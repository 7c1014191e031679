"""Artist resolution package."""
from .resolver import AUTO_CREATED_REASON, AUTO_CREATED_SOURCE, ArtistResolution, ArtistResolver

__all__ = [
    "AUTO_CREATED_REASON",
    "AUTO_CREATED_SOURCE",
    "ArtistResolution",
    "ArtistResolver",
]
