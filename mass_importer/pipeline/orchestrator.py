"""Sequential, resumable orchestration of one mass import run."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from ..artists.resolver import ArtistResolution, ArtistResolver
from ..checkpoint.store import CheckpointStore, make_session_id
from ..clients.corpus import CorpusClient, HttpCorpusClient
from ..clients.geocoding import Geocoder, NominatimGeocoder
from ..clients.ingestion import DryRunIngestionClient, HttpIngestionClient, IngestionClient
from ..exceptions import (
    CheckpointMismatchError,
    CheckpointNotFoundError,
    CorpusQueryError,
    InputLoadError,
    MassImportError,
    RetriesExhaustedError,
    RunAbortedError,
    RunInterruptedError,
    SubmissionValidationError,
)
from ..importers import BaseImporter, ImportBatch, LoadedEntry, get_importer
from ..location.cache import LocationCache
from ..location.enhancer import LocationEnhancer
from ..matching.decision import DuplicatePolicy, new_tag_keys
from ..matching.similarity import SimilarityScorer
from ..matching.spatial import SpatialPrefilter
from ..monitoring.metrics import (
    observe_item_duration,
    record_duplicate_decision,
    record_item_processed,
)
from ..photos.cache import PhotoCache
from ..photos.fetcher import FetchedPhoto, PhotoFetcher
from ..reporting.generator import ReportGenerator, RunStatistics
from ..schemas.checkpoint import CheckpointItem, ImportSessionState, ItemOutcome, ItemStatus
from ..schemas.outcomes import ArtistMatch, DuplicateVerdict, SimilarityScore
from ..schemas.records import CandidateEntity, RawImportRecord
from ..schemas.report import ImportRunReport, RunState
from ..schemas.run_config import ImportRunConfig
from ..utils.config import GlobalSettings, get_settings
from ..utils.file_io import file_sha256
from ..utils.logging import log_item_outcome, setup_logger
from .error_handling import build_error_report
from .payload import build_submission_payload, prepare_tags
from .sanitize import sanitize_record
from .signals import StopController
from .stages import Completed, Continue, Duplicate, Failed, ItemResult, Skipped

logger = setup_logger(__name__, context={"stage": "orchestrator"})

# Items processed between location-cache flushes.
CACHE_FLUSH_INTERVAL = 25

# Invalid records listed in a strict-validation load error.
MAX_REPORTED_INVALID = 5


class RunPhase(str, Enum):
    INITIALIZING = "initializing"
    LOADING = "loading"
    ENHANCING = "enhancing"
    DEDUPLICATING = "deduplicating"
    SUBMITTING = "submitting"
    RECORDING = "recording"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    ABORTED = "aborted"


class ResumeConfirmer(Protocol):
    """Asks the operator whether an existing session should be resumed."""

    def __call__(self, session_id: str, summary: dict[str, int]) -> bool: ...


@dataclass(slots=True)
class RunRequest:
    """How to start a run: the input file and the resume switches."""

    input_path: Path
    resume: bool = False
    session_id: str | None = None
    fresh_start: bool = False
    assume_yes: bool = False


@dataclass(slots=True)
class RunResult:
    report: ImportRunReport
    report_files: list[Path] = field(default_factory=list)
    error: RunAbortedError | None = None
    checkpoint_path: Path | None = None

    @property
    def exit_code(self) -> int:
        if self.error is not None or self.report.state is RunState.ABORTED:
            return 2
        if self.report.counts.failed:
            return 1
        return 0


@dataclass(slots=True)
class _ItemContext:
    index: int
    source_id: str
    warnings: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)
    score: SimilarityScore | None = None
    artist_ids: list[str] = field(default_factory=list)
    created_artist_ids: list[str] = field(default_factory=list)


class ImportOrchestrator:
    """
    Drives one import run through its phases, one record at a time.

    Per record: sanitise and geocode, deduplicate against the corpus, resolve
    artists, fetch photos, submit, then checkpoint before the next record
    starts. Only ``RunAbortedError`` subclasses stop the run; everything else
    is recorded against the item.
    """

    def __init__(
        self,
        config: ImportRunConfig,
        *,
        corpus: CorpusClient,
        ingestion: IngestionClient,
        checkpoint_store: CheckpointStore,
        report_generator: ReportGenerator,
        geocoder: Geocoder | None = None,
        location_cache: LocationCache | None = None,
        photo_fetcher: PhotoFetcher | None = None,
        importer: BaseImporter | None = None,
        confirm: ResumeConfirmer | None = None,
        stop_controller: StopController | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self.dry_run = config.run.dry_run
        self.corpus = corpus
        self.checkpoints = checkpoint_store
        self.reports = report_generator
        self.importer = importer or get_importer(config.importer)(
            config.importer_options, source=config.source
        )
        self.confirm = confirm
        self._stop = stop_controller or StopController()
        self._sleep = sleep
        self._closeables: list[Any] = []

        matching = config.matching
        self.scorer = SimilarityScorer(matching.weights, max_radius_m=matching.radius_m)
        self.prefilter = SpatialPrefilter(
            corpus,
            radius_m=matching.radius_m,
            max_candidates=matching.max_candidates,
            timeout_seconds=matching.query_timeout_seconds,
        )
        self.policy = DuplicatePolicy(
            high_threshold=matching.high_threshold,
            warn_threshold=matching.warn_threshold,
        )
        self.resolver = ArtistResolver(
            corpus,
            self.scorer,
            threshold=config.artists.match_threshold,
            create_missing=config.artists.create_missing,
            search_limit=config.artists.search_limit,
            dry_run=self.dry_run,
        )
        self.ingestion: IngestionClient = DryRunIngestionClient() if self.dry_run else ingestion

        self.location_cache = location_cache
        self.enhancer: LocationEnhancer | None = None
        if geocoder is not None and config.geocoding.enabled:
            self.location_cache = location_cache or LocationCache(
                None,
                max_size=config.geocoding.cache_size,
                precision=config.geocoding.precision,
            )
            self.enhancer = LocationEnhancer(
                geocoder,
                self.location_cache,
                min_interval_seconds=config.geocoding.min_interval_seconds,
                sleep=sleep,
            )
        self.photo_fetcher = photo_fetcher if config.photos.enabled else None

        self.phase = RunPhase.INITIALIZING
        self.current_index: int | None = None
        self._log = logger

    @classmethod
    def from_settings(
        cls,
        config: ImportRunConfig,
        settings: GlobalSettings | None = None,
        *,
        checkpoint_dir: Path | None = None,
        report_dir: Path | None = None,
        confirm: ResumeConfirmer | None = None,
        stop_controller: StopController | None = None,
    ) -> ImportOrchestrator:
        """Build an orchestrator with HTTP collaborators from global settings."""

        settings = settings or get_settings()
        corpus = HttpCorpusClient(
            settings.api_base_url,
            token=settings.api_token,
            timeout=settings.http_timeout_seconds,
        )
        ingestion = HttpIngestionClient(
            settings.api_base_url,
            token=settings.api_token,
            endpoint_path=config.ingestion.endpoint_path,
            timeout=config.ingestion.timeout_seconds,
            retry_config=config.ingestion.retry,
        )
        geocoder = None
        location_cache = None
        if config.geocoding.enabled:
            geocoder = NominatimGeocoder(
                settings.geocoder_url,
                user_agent=settings.geocoder_user_agent,
                timeout=config.geocoding.timeout_seconds,
                retry_config=config.geocoding.retry,
            )
            location_cache = LocationCache(
                settings.location_cache_path,
                max_size=config.geocoding.cache_size,
                precision=config.geocoding.precision,
            )
        photo_fetcher = None
        if config.photos.enabled and not config.run.dry_run:
            photo_fetcher = PhotoFetcher(
                PhotoCache(settings.photo_cache_dir),
                policy=config.photos,
                user_agent=settings.geocoder_user_agent,
            )

        orchestrator = cls(
            config,
            corpus=corpus,
            ingestion=ingestion,
            checkpoint_store=CheckpointStore(checkpoint_dir or settings.checkpoint_dir),
            report_generator=ReportGenerator(
                report_dir or settings.report_dir, formats=config.report_formats
            ),
            geocoder=geocoder,
            location_cache=location_cache,
            photo_fetcher=photo_fetcher,
            confirm=confirm,
            stop_controller=stop_controller,
        )
        orchestrator._closeables = [corpus, ingestion, geocoder, photo_fetcher]
        return orchestrator

    async def aclose(self) -> None:
        for closeable in self._closeables:
            if closeable is not None:
                await closeable.aclose()

    def request_stop(self, reason: str = "stop requested") -> None:
        """Stop after the in-flight item has been checkpointed."""

        self._stop.request_stop(reason)

    def _set_phase(self, phase: RunPhase) -> None:
        self.phase = phase
        self._log.debug("Entering phase %s", phase.value, extra={"stage": phase.value})

    async def run(self, request: RunRequest) -> RunResult:
        """Execute the run and always produce a report, even when it aborts."""

        started_at = datetime.now(timezone.utc)
        input_path = Path(request.input_path)
        input_file = str(input_path.resolve())
        stats = RunStatistics()
        state = ImportSessionState(
            session_id=request.session_id or make_session_id(input_path, started_at),
            input_file=input_file,
            source=self.importer.source,
            total_items=0,
        )
        error: RunAbortedError | None = None

        try:
            self._set_phase(RunPhase.INITIALIZING)
            existing = self._find_existing(request, input_file)
            resume = self._should_resume(request, existing)

            self._set_phase(RunPhase.LOADING)
            batch, input_sha256 = await self._load(input_path)
            if resume and existing is not None:
                state, window = self._resume_session(existing, batch, input_sha256)
            else:
                state, window = self._new_session(
                    state, batch, input_sha256, overwrite=request.session_id is not None
                )
            self._log = logger.bind(session_id=state.session_id)

            await self._process_pending(state, window, stats)
        except RunAbortedError as exc:
            error = exc
            self._log.error("Run aborted: %s", exc.describe(), extra={"status": "aborted"})

        return self._finalize(state, stats, started_at, error)

    def _find_existing(self, request: RunRequest, input_file: str) -> ImportSessionState | None:
        if self.dry_run or request.fresh_start:
            return None
        if request.session_id:
            existing = self.checkpoints.load(request.session_id)
            if existing is None and request.resume:
                raise CheckpointNotFoundError(
                    f"No checkpoint found for session '{request.session_id}' "
                    f"in {self.checkpoints.directory}"
                )
            return existing
        return self.checkpoints.find_latest(input_file)

    def _should_resume(self, request: RunRequest, existing: ImportSessionState | None) -> bool:
        if existing is None:
            return False
        summary = self.checkpoints.summarize(existing)
        if request.resume or request.assume_yes:
            decision = True
        elif self.confirm is None:
            decision = False
        else:
            decision = bool(self.confirm(existing.session_id, summary))

        self._log.info(
            "%s session %s (%d of %d items already processed)",
            "Resuming" if decision else "Not resuming",
            existing.session_id,
            summary["processed"],
            summary["total"],
        )
        return decision

    async def _load(self, input_path: Path) -> tuple[ImportBatch, str]:
        input_sha256 = await asyncio.to_thread(file_sha256, input_path)
        batch = await self.importer.load(input_path)

        invalid = batch.invalid
        if invalid and self.config.run.strict_validation:
            listed = "; ".join(
                f"#{entry.index} {entry.source_id}: {entry.error}"
                for entry in invalid[:MAX_REPORTED_INVALID]
            )
            raise InputLoadError(
                f"{len(invalid)} invalid records in {input_path} with strict validation: {listed}"
            )
        return batch, input_sha256

    def _new_session(
        self,
        placeholder: ImportSessionState,
        batch: ImportBatch,
        input_sha256: str,
        *,
        overwrite: bool = False,
    ) -> tuple[ImportSessionState, ImportBatch]:
        options = self.config.run
        window = batch.sliced(options.offset, options.limit)
        state = ImportSessionState(
            session_id=placeholder.session_id,
            input_file=placeholder.input_file,
            input_sha256=input_sha256,
            source=batch.source,
            offset=options.offset,
            limit=options.limit,
            total_items=len(window.entries),
            items=[
                CheckpointItem(index=entry.index, source_id=entry.source_id)
                for entry in window.entries
            ],
        )
        if not self.dry_run:
            self.checkpoints.create(state, overwrite=overwrite)
        return state, window

    def _resume_session(
        self,
        existing: ImportSessionState,
        batch: ImportBatch,
        input_sha256: str,
    ) -> tuple[ImportSessionState, ImportBatch]:
        if existing.input_sha256 and existing.input_sha256 != input_sha256:
            raise CheckpointMismatchError(
                f"Input file {existing.input_file} changed since session "
                f"'{existing.session_id}' was checkpointed"
            )
        window = batch.sliced(existing.offset, existing.limit)
        source_ids = [entry.source_id for entry in window.entries]
        if source_ids != [item.source_id for item in existing.items]:
            raise CheckpointMismatchError(
                f"Session '{existing.session_id}' lists {existing.total_items} items that do "
                f"not match the {len(source_ids)} items loaded from the input"
            )
        return existing, window

    async def _process_pending(
        self,
        state: ImportSessionState,
        window: ImportBatch,
        stats: RunStatistics,
    ) -> None:
        pending = state.pending_indexes()
        self._log.info(
            "Processing %d pending of %d items%s",
            len(pending),
            state.total_items,
            " (dry run)" if self.dry_run else "",
        )
        delay = self.config.run.inter_item_delay_seconds

        for position, index in enumerate(pending):
            if self._stop.stop_requested:
                raise RunInterruptedError(
                    f"Run stopped: {self._stop.reason}", item_index=index
                )
            self.current_index = index
            await self._process_item(state, window.entries[index], stats)

            if (position + 1) % CACHE_FLUSH_INTERVAL == 0:
                self._flush_caches()
            if delay and position < len(pending) - 1:
                await self._sleep(delay)
        self.current_index = None

    async def _process_item(
        self,
        state: ImportSessionState,
        entry: LoadedEntry,
        stats: RunStatistics,
    ) -> None:
        started = time.perf_counter()
        ctx = _ItemContext(index=entry.index, source_id=entry.source_id)
        try:
            result = await self._run_stages(entry, ctx, stats)
        except RunAbortedError as exc:
            if exc.item_index is None:
                exc.item_index = entry.index
            raise
        except Exception as exc:  # item boundary
            report = build_error_report(exc, index=entry.index, source_id=entry.source_id)
            self._log.error(
                "Unexpected error processing item: %s",
                report.message,
                exc_info=True,
                extra={"item_index": entry.index, "source_id": entry.source_id},
            )
            result = Failed(category=report.category, error=report.message, details=report.details)

        self._set_phase(RunPhase.RECORDING)
        item = self._record(state, ctx, result, stats)

        duration = time.perf_counter() - started
        outcome = item.outcome.value if item.outcome is not None else "unknown"
        observe_item_duration(duration)
        record_item_processed(item.status.value, outcome)
        log_item_outcome(
            self._log,
            item_index=entry.index,
            source_id=entry.source_id,
            status=item.status.value,
            outcome=outcome,
            duration_ms=int(duration * 1000),
        )

    async def _run_stages(
        self,
        entry: LoadedEntry,
        ctx: _ItemContext,
        stats: RunStatistics,
    ) -> ItemResult:
        self._set_phase(RunPhase.ENHANCING)
        if entry.record is None:
            return Skipped(ItemOutcome.INVALID, entry.error or "invalid record")

        record = entry.record
        bounds = self.config.run.bounds
        if bounds is not None and not bounds.contains(record.lat, record.lon):
            return Skipped(
                ItemOutcome.OUT_OF_BOUNDS,
                f"({record.lat}, {record.lon}) is outside the configured bounds",
            )
        stats.bounds.include(record.lat, record.lon)

        record = await self._enhance(record, ctx)

        self._set_phase(RunPhase.DEDUPLICATING)
        dedupe = await self._deduplicate(record, ctx, stats)
        if not isinstance(dedupe, Continue):
            return dedupe

        artists = await self._resolve_artists(record, ctx)
        if isinstance(artists, Failed):
            return artists

        self._set_phase(RunPhase.SUBMITTING)
        photos = await self._fetch_photos(record, ctx, stats)
        if isinstance(photos, Failed):
            return photos

        return await self._submit(record, ctx, stats, artists=artists, photos=photos)

    async def _enhance(self, record: RawImportRecord, ctx: _ItemContext) -> RawImportRecord:
        record = sanitize_record(record)
        if self.enhancer is None:
            return record
        result = await self.enhancer.enhance(record)
        ctx.warnings.extend(result.warnings)
        return result.record

    async def _deduplicate(
        self,
        record: RawImportRecord,
        ctx: _ItemContext,
        stats: RunStatistics,
    ) -> Continue | Duplicate | Skipped:
        prefiltered = await self.prefilter.find_candidates(record.lat, record.lon)
        if prefiltered.degraded:
            # Fail-open: an unavailable corpus query is treated as "no duplicate".
            ctx.warnings.append(f"Duplicate check skipped: {prefiltered.error}")
            record_duplicate_decision("unchecked")
            return Continue(record)

        candidates = prefiltered.candidates
        scores = [self.scorer.score(record, candidate) for candidate in candidates]
        decision = self.policy.decide(scores, candidates)
        record_duplicate_decision(decision.verdict.value)
        best = decision.best

        if decision.verdict is DuplicateVerdict.DUPLICATE and best is not None:
            ctx.score = best
            candidate = next(c for c in candidates if c.id == best.candidate_id)
            return await self._handle_duplicate(record, candidate, best, ctx, stats)

        if decision.verdict is DuplicateVerdict.POSSIBLE_DUPLICATE and best is not None:
            ctx.score = best
            message = f"Possible duplicate of {best.candidate_id} (score {best.total:.2f})"
            if self.config.matching.possible_duplicate_action == "reject":
                return Skipped(
                    ItemOutcome.POSSIBLE_DUPLICATE,
                    message,
                    score=best,
                    matched_id=best.candidate_id,
                )
            ctx.warnings.append(message)
            ctx.details["possible_duplicate_of"] = best.candidate_id
        return Continue(record)

    async def _handle_duplicate(
        self,
        record: RawImportRecord,
        candidate: CandidateEntity,
        score: SimilarityScore,
        ctx: _ItemContext,
        stats: RunStatistics,
    ) -> Duplicate:
        new_tags: dict[str, str] = {}
        if self.config.matching.merge_tags_on_duplicate:
            new_tags = new_tag_keys(candidate.tags, record.tags)
        if not new_tags:
            return Duplicate(matched_id=candidate.id, score=score)

        if self.dry_run:
            ctx.details["would_merge_tags"] = sorted(new_tags)
            return Duplicate(matched_id=candidate.id, score=score)

        try:
            await self.corpus.merge_artwork_tags(candidate.id, new_tags)
        except CorpusQueryError as exc:
            ctx.warnings.append(f"Tag merge into {candidate.id} failed: {exc}")
            return Duplicate(matched_id=candidate.id, score=score)

        stats.tags.merged += len(new_tags)
        return Duplicate(
            matched_id=candidate.id,
            score=score,
            outcome=ItemOutcome.MERGED,
            merged_keys=sorted(new_tags),
        )

    async def _resolve_artists(
        self,
        record: RawImportRecord,
        ctx: _ItemContext,
    ) -> list[ArtistResolution] | Failed:
        if not record.artists:
            return []

        resolutions = await self.resolver.resolve(record.artists, artwork_ref=record.external_id)
        errors = [resolution.error for resolution in resolutions if resolution.error is not None]
        self._warn_unresolved(resolutions, ctx)
        if errors and self.config.artists.fail_on_error:
            return self._failed(errors[0], ctx)

        ctx.artist_ids = [r.match.artist_id for r in resolutions if r.match is not None]
        return resolutions

    @staticmethod
    def _warn_unresolved(resolutions: list[ArtistResolution], ctx: _ItemContext) -> None:
        for resolution in resolutions:
            if resolution.error is not None:
                ctx.warnings.append(
                    f"Artist '{resolution.raw_name}' unresolved: {resolution.error}"
                )

    async def _create_artists(
        self,
        artists: list[ArtistResolution],
        artwork_ref: str,
        ctx: _ItemContext,
        stats: RunStatistics,
    ) -> list[ArtistMatch]:
        """Create pending artists for an accepted artwork; returns every usable match."""

        pending = [resolution for resolution in artists if resolution.pending]
        if pending:
            created = await self.resolver.create_pending(pending, artwork_ref=artwork_ref)
            self._warn_unresolved(pending, ctx)
            ctx.created_artist_ids = [match.created_id for match in created if match.created_id]
            stats.add_unique(stats.auto_created_artist_ids, ctx.created_artist_ids)
        matches = [resolution.match for resolution in artists if resolution.match is not None]
        ctx.artist_ids = [match.artist_id for match in matches]
        return matches

    async def _fetch_photos(
        self,
        record: RawImportRecord,
        ctx: _ItemContext,
        stats: RunStatistics,
    ) -> list[FetchedPhoto] | Failed:
        if not record.photos:
            return []
        stats.photos.total += len(record.photos)
        if self.dry_run or self.photo_fetcher is None:
            return []

        result = await self.photo_fetcher.fetch_all(record.photos)
        stats.photos.cached += result.cached_count
        stats.photos.downloaded += len(result.fetched) - result.cached_count
        stats.photos.failed += len(result.failed)
        for failure in result.failed:
            ctx.warnings.append(f"Photo {failure.url} skipped: {failure.reason}")

        if result.failed and self.config.photos.fail_record_on_photo_error:
            return Failed(
                category="photo",
                error=(
                    f"{len(result.failed)} of {len(record.photos)} photos failed: "
                    f"{result.failed[0].reason}"
                ),
            )
        return result.fetched

    async def _submit(
        self,
        record: RawImportRecord,
        ctx: _ItemContext,
        stats: RunStatistics,
        *,
        artists: list[ArtistResolution],
        photos: list[FetchedPhoto],
    ) -> Completed | Duplicate | Failed:
        tags, tag_warnings = prepare_tags(record)
        ctx.warnings.extend(tag_warnings)
        payload = build_submission_payload(
            record,
            tags=tags,
            photos=photos,
            artists=[resolution.match for resolution in artists if resolution.match is not None],
            pending_artists=[resolution for resolution in artists if resolution.pending],
            possible_duplicate_of=ctx.details.get("possible_duplicate_of"),
        )

        try:
            result = await self.ingestion.submit(payload)
        except (SubmissionValidationError, RetriesExhaustedError) as exc:
            return self._failed(exc, ctx)

        stats.tags.total += len(tags)
        if result.duplicate:
            ctx.details["server_duplicate"] = True
            return Duplicate(matched_id=result.artwork_id, score=ctx.score)
        if result.dry_run:
            await self._create_artists(artists, record.external_id, ctx, stats)
            return Completed(artwork_id=None, outcome=ItemOutcome.VALIDATED)

        artwork_id = result.artwork_id
        if artists and not artwork_id:
            ctx.warnings.append("Ingestion response had no artwork id; artists were not linked")
        elif artists:
            matches = await self._create_artists(artists, artwork_id, ctx, stats)
            try:
                linked = await self.resolver.link(artwork_id, matches)
            except CorpusQueryError as exc:
                ctx.warnings.append(f"Linking artists to {artwork_id} failed: {exc}")
            else:
                stats.add_unique(stats.linked_artist_ids, linked)
        return Completed(artwork_id=artwork_id)

    @staticmethod
    def _failed(exc: MassImportError, ctx: _ItemContext) -> Failed:
        report = build_error_report(exc, index=ctx.index, source_id=ctx.source_id)
        return Failed(category=report.category, error=report.message, details=report.details)

    def _record(
        self,
        state: ImportSessionState,
        ctx: _ItemContext,
        result: ItemResult,
        stats: RunStatistics,
    ) -> CheckpointItem:
        fields: dict[str, Any] = {
            "warnings": list(ctx.warnings),
            "artist_ids": list(ctx.artist_ids),
            "created_artist_ids": list(ctx.created_artist_ids),
            "details": dict(ctx.details),
            "score": ctx.score,
        }

        if isinstance(result, Completed):
            status = ItemStatus.SUCCEEDED
            outcome = result.outcome
            fields["artwork_id"] = result.artwork_id
            fields["details"].update(result.details)
        elif isinstance(result, Duplicate):
            status = ItemStatus.SUCCEEDED
            outcome = result.outcome
            fields["matched_id"] = result.matched_id
            fields["score"] = result.score or ctx.score
            if result.merged_keys:
                fields["details"]["merged_tags"] = result.merged_keys
        elif isinstance(result, Failed):
            status = ItemStatus.FAILED
            outcome = ItemOutcome.FAILED
            fields["error"] = result.error
            fields["error_category"] = result.category
            fields["details"].update(result.details)
        else:
            status = ItemStatus.SKIPPED
            outcome = result.outcome
            fields["error"] = result.reason
            fields["matched_id"] = result.matched_id
            fields["score"] = result.score or ctx.score

        if self.dry_run:
            fields["details"]["dry_run"] = True

        for message in ctx.warnings:
            stats.warn(ctx.index, ctx.source_id, message)

        return self.checkpoints.update_item(
            state,
            ctx.index,
            status,
            persist=not self.dry_run,
            outcome=outcome,
            **fields,
        )

    def _flush_caches(self) -> None:
        if self.location_cache is not None:
            self.location_cache.flush()

    def _finalize(
        self,
        state: ImportSessionState,
        stats: RunStatistics,
        started_at: datetime,
        error: RunAbortedError | None,
    ) -> RunResult:
        self._set_phase(RunPhase.FINALIZING)
        self._flush_caches()

        report = self.reports.build(
            state,
            stats,
            importer=self.importer.name,
            started_at=started_at,
            dry_run=self.dry_run,
            error=error,
            aborted_at_index=error.item_index if error is not None else None,
        )
        files = self.reports.write(report)

        checkpoint_path: Path | None = None
        if not self.dry_run and self.checkpoints.exists(state.session_id):
            if error is None and report.counts.pending == 0:
                self.checkpoints.delete(state.session_id)
            else:
                checkpoint_path = self.checkpoints.path_for(state.session_id)
                self._log.info("Checkpoint retained at %s", checkpoint_path)

        self._set_phase(RunPhase.COMPLETED if report.state is RunState.COMPLETED else RunPhase.ABORTED)
        return RunResult(
            report=report,
            report_files=files,
            error=error,
            checkpoint_path=checkpoint_path,
        )
