"""HTTP collaborators: corpus queries, ingestion submissions and geocoding."""
from .corpus import CorpusClient, HttpCorpusClient, candidate_from_payload
from .geocoding import Geocoder, NominatimGeocoder
from .ingestion import (
    DryRunIngestionClient,
    HttpIngestionClient,
    IngestionClient,
    SubmissionResult,
)

__all__ = [
    "CorpusClient",
    "DryRunIngestionClient",
    "Geocoder",
    "HttpCorpusClient",
    "HttpIngestionClient",
    "IngestionClient",
    "NominatimGeocoder",
    "SubmissionResult",
    "candidate_from_payload",
]
