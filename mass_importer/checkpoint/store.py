"""Durable per-item checkpoints for resumable import sessions."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import CheckpointCorruptedError, CheckpointExistsError, InvalidTransitionError
from ..schemas.checkpoint import CheckpointItem, ImportSessionState, ItemOutcome, ItemStatus
from ..utils.file_io import atomic_write_text
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"stage": "recording"})

CHECKPOINT_SUFFIX = ".checkpoint.json"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def session_prefix(input_path: str | Path) -> str:
    """Filesystem-safe stem shared by every session id derived from ``input_path``."""

    return _UNSAFE_CHARS.sub("-", Path(input_path).stem).strip("-") or "import"


def make_session_id(input_path: str | Path, now: datetime | None = None) -> str:
    """Derive a session id from the input filename stem and a microsecond UTC timestamp."""

    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return f"{session_prefix(input_path)}-{moment.strftime('%Y%m%dT%H%M%S%fZ')}"


class CheckpointStore:
    """Reads and atomically rewrites ``<directory>/<session_id>.checkpoint.json``."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, session_id: str) -> Path:
        return self.directory / f"{session_id}{CHECKPOINT_SUFFIX}"

    def exists(self, session_id: str) -> bool:
        return self.path_for(session_id).exists()

    def load(self, session_id: str) -> ImportSessionState | None:
        """Return the stored state, ``None`` when absent.

        Raises:
            CheckpointCorruptedError: If the file exists but cannot be decoded.
        """
        path = self.path_for(session_id)
        if not path.exists():
            return None
        return self._read(path)

    def _read(self, path: Path) -> ImportSessionState:
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CheckpointCorruptedError(f"Cannot read checkpoint {path}: {exc}") from exc
        try:
            state = ImportSessionState.model_validate_json(raw)
        except (PydanticValidationError, ValueError) as exc:
            raise CheckpointCorruptedError(f"Checkpoint {path} is malformed: {exc}") from exc

        indexes = [item.index for item in state.items]
        if indexes != list(range(state.total_items)):
            raise CheckpointCorruptedError(
                f"Checkpoint {path} item indexes do not match total_items={state.total_items}"
            )
        return state

    def create(self, state: ImportSessionState, *, overwrite: bool = False) -> ImportSessionState:
        """Persist a new session.

        Raises:
            CheckpointExistsError: If ``state.session_id`` already has a checkpoint
                and ``overwrite`` is false.
        """
        if not overwrite and self.exists(state.session_id):
            raise CheckpointExistsError(
                f"Checkpoint {self.path_for(state.session_id)} already exists; "
                "resume it or pick another session id"
            )
        self.save(state)
        logger.info(
            "Created checkpoint %s for %s items",
            self.path_for(state.session_id),
            state.total_items,
            extra={"session_id": state.session_id},
        )
        return state

    def save(self, state: ImportSessionState) -> None:
        """Write the whole state atomically; readers never observe a torn file."""

        state.updated_at = datetime.now(timezone.utc)
        atomic_write_text(self.path_for(state.session_id), state.model_dump_json(indent=2))

    def update_item(
        self,
        state: ImportSessionState,
        index: int,
        status: ItemStatus,
        *,
        persist: bool = True,
        outcome: ItemOutcome | None = None,
        **fields: Any,
    ) -> CheckpointItem:
        """Move item ``index`` to a terminal ``status`` and persist the state.

        Raises:
            InvalidTransitionError: If the item is already terminal or the target
                status is ``pending``.
            IndexError: If ``index`` is outside the session.
        """
        if not 0 <= index < len(state.items):
            raise IndexError(f"Item index {index} outside session of {len(state.items)} items")

        current = state.items[index]
        if current.status.is_terminal:
            raise InvalidTransitionError(
                f"Item #{index} is already {current.status.value}; cannot move to {status.value}"
            )
        if not status.is_terminal:
            raise InvalidTransitionError(f"Item #{index} can only move to a terminal status")

        updated = current.model_copy(
            update={
                "status": status,
                "outcome": outcome,
                "updated_at": datetime.now(timezone.utc),
                **fields,
            }
        )
        state.items[index] = updated
        if persist:
            self.save(state)
        return updated

    def delete(self, session_id: str) -> bool:
        path = self.path_for(session_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Removed completed checkpoint %s", path, extra={"session_id": session_id})
        return True

    def find_latest(self, input_file: str | Path) -> ImportSessionState | None:
        """Return the most recently updated checkpoint recorded for ``input_file``.

        Unreadable checkpoints named after ``input_file`` abort the lookup so a
        damaged session is never replaced silently. Unreadable files belonging to
        other inputs are skipped.

        Raises:
            CheckpointCorruptedError: If a checkpoint for ``input_file`` cannot be decoded.
        """

        if not self.directory.exists():
            return None
        target = str(Path(input_file).resolve())
        own_prefix = f"{session_prefix(input_file)}-"
        latest: ImportSessionState | None = None
        for path in self.directory.glob(f"*{CHECKPOINT_SUFFIX}"):
            try:
                state = self._read(path)
            except CheckpointCorruptedError as exc:
                if path.name.startswith(own_prefix):
                    raise
                logger.warning("Skipping unreadable checkpoint: %s", exc)
                continue
            if state.input_file != target:
                continue
            if latest is None or state.updated_at > latest.updated_at:
                latest = state
        return latest

    @staticmethod
    def summarize(state: ImportSessionState) -> dict[str, int]:
        return {
            "total": state.total_items,
            "processed": state.processed_count,
            "pending": state.count(ItemStatus.PENDING),
            "succeeded": state.count(ItemStatus.SUCCEEDED),
            "failed": state.count(ItemStatus.FAILED),
            "skipped": state.count(ItemStatus.SKIPPED),
        }
