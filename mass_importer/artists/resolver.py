"""Resolve free-text artist names to canonical artist entities."""

from __future__ import annotations

from dataclasses import dataclass

from ..clients.corpus import CorpusClient
from ..exceptions import ArtistNotFoundError, CorpusQueryError, MassImportError
from ..matching.similarity import SimilarityScorer, normalize_text
from ..monitoring.metrics import record_artist_resolution
from ..schemas.outcomes import ArtistMatch
from ..schemas.records import CandidateEntity
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"stage": "artists"})

AUTO_CREATED_SOURCE = "mass-import-auto-created"
AUTO_CREATED_REASON = "referenced_in_artwork"
PRIMARY_ROLE = "primary"
CONTRIBUTOR_ROLE = "contributor"


@dataclass(slots=True)
class ArtistResolution:
    """Per-name result: a match, the error that prevented one, or a pending creation.

    A resolution with neither ``match`` nor ``error`` names an artist that does
    not exist yet; it is created by ``ArtistResolver.create_pending`` once the
    artwork referencing it has been accepted.
    """

    raw_name: str
    role: str = PRIMARY_ROLE
    match: ArtistMatch | None = None
    error: MassImportError | None = None

    @property
    def ok(self) -> bool:
        return self.match is not None

    @property
    def pending(self) -> bool:
        return self.match is None and self.error is None


class ArtistResolver:
    """Find-or-create artists with a deliberately strict fuzzy threshold.

    Identity mistakes on artists are costly to undo, so the default threshold
    (0.95) is well above the artwork duplicate threshold. Missing artists are
    only created after their artwork is accepted, so rejected submissions never
    leave orphaned artists behind.
    """

    def __init__(
        self,
        corpus: CorpusClient,
        scorer: SimilarityScorer | None = None,
        *,
        threshold: float = 0.95,
        create_missing: bool = True,
        search_limit: int = 10,
        dry_run: bool = False,
    ) -> None:
        if not 0 <= threshold <= 1:
            raise ValueError("threshold must be within [0, 1]")
        self.corpus = corpus
        self.scorer = scorer or SimilarityScorer()
        self.threshold = threshold
        self.create_missing = create_missing
        self.search_limit = search_limit
        self.dry_run = dry_run
        # Normalised name -> match, so a run never auto-creates the same artist twice.
        self._resolved: dict[str, ArtistMatch] = {}

    async def resolve(self, names: list[str], *, artwork_ref: str) -> list[ArtistResolution]:
        """Resolve each name independently; failures are reported per name.

        Nothing is written to the corpus here. Names without an acceptable match
        come back pending when ``create_missing`` is enabled.

        Args:
            names: Raw artist names attached to one artwork
            artwork_ref: Identifier of the originating artwork (provenance)

        Returns:
            One ArtistResolution per distinct name, in input order
        """
        results: list[ArtistResolution] = []
        seen: set[str] = set()
        for raw_name in names:
            key = normalize_text(raw_name)
            if not key or key in seen:
                continue
            seen.add(key)
            resolution = ArtistResolution(
                raw_name=raw_name,
                role=PRIMARY_ROLE if not results else CONTRIBUTOR_ROLE,
            )
            results.append(resolution)

            try:
                resolution.match = await self._resolve_one(raw_name, key, role=resolution.role)
            except (ArtistNotFoundError, CorpusQueryError) as exc:
                self._fail(resolution, exc, artwork_ref)
                continue

            if resolution.match is not None:
                record_artist_resolution("matched")
        return results

    async def _resolve_one(self, raw_name: str, key: str, *, role: str) -> ArtistMatch | None:
        cached = self._resolved.get(key)
        if cached is not None:
            return cached.model_copy(update={"raw_name": raw_name, "role": role})

        candidates = await self.corpus.search_artists(raw_name, limit=self.search_limit)
        best, best_score = self._best_candidate(raw_name, candidates)

        if best is not None and best_score >= self.threshold:
            match = ArtistMatch(
                raw_name=raw_name,
                matched_id=best.id,
                confidence=best_score,
                role=role,
            )
            self._resolved[key] = match
            return match
        if self.create_missing:
            logger.debug(
                "Artist '%s' will be created (best existing match %.2f)", raw_name, best_score
            )
            return None
        raise ArtistNotFoundError(raw_name, best_score if best is not None else None)

    async def create_pending(
        self, resolutions: list[ArtistResolution], *, artwork_ref: str
    ) -> list[ArtistMatch]:
        """Create the artists still pending in ``resolutions``.

        Each resolution is updated in place with its new match or the corpus
        error. Returns the matches for artists created by this call.
        """
        created: list[ArtistMatch] = []
        for resolution in resolutions:
            if not resolution.pending:
                continue
            key = normalize_text(resolution.raw_name)
            cached = self._resolved.get(key)
            if cached is not None:
                resolution.match = cached.model_copy(
                    update={"raw_name": resolution.raw_name, "role": resolution.role}
                )
                continue

            try:
                created_id = await self._create(resolution.raw_name, artwork_ref)
            except CorpusQueryError as exc:
                self._fail(resolution, exc, artwork_ref)
                continue

            match = ArtistMatch(
                raw_name=resolution.raw_name,
                created_id=created_id,
                confidence=1.0,
                role=resolution.role,
            )
            self._resolved[key] = match
            resolution.match = match
            created.append(match)
            record_artist_resolution("created")
            logger.info(
                "Auto-created artist '%s' as %s",
                resolution.raw_name,
                created_id,
                extra={"source_id": artwork_ref, "status": "created"},
            )
        return created

    def _fail(self, resolution: ArtistResolution, exc: MassImportError, artwork_ref: str) -> None:
        record_artist_resolution("failed")
        logger.warning(
            "Artist '%s' unresolved: %s",
            resolution.raw_name,
            exc,
            extra={"source_id": artwork_ref, "status": "failed"},
        )
        resolution.error = exc

    def _best_candidate(
        self, raw_name: str, candidates: list[CandidateEntity]
    ) -> tuple[CandidateEntity | None, float]:
        ranked = sorted(
            ((self.scorer.score_names(raw_name, c.title), c) for c in candidates),
            key=lambda pair: (-pair[0], pair[1].created_at, pair[1].id),
        )
        if not ranked:
            return None, 0.0
        score, candidate = ranked[0]
        return candidate, score

    async def _create(self, raw_name: str, artwork_ref: str) -> str:
        provenance = {
            "source": AUTO_CREATED_SOURCE,
            "artwork_id": artwork_ref,
            "reason": AUTO_CREATED_REASON,
        }
        if self.dry_run:
            return f"dry-run-artist:{normalize_text(raw_name).replace(' ', '-')}"
        return await self.corpus.create_artist(raw_name.strip(), provenance)

    async def link(self, artwork_id: str, matches: list[ArtistMatch]) -> list[str]:
        """Record artwork-artist associations; returns the linked artist ids."""

        linked: list[str] = []
        for match in matches:
            if self.dry_run:
                linked.append(match.artist_id)
                continue
            await self.corpus.link_artist(artwork_id, match.artist_id, match.role)
            linked.append(match.artist_id)
        return linked
