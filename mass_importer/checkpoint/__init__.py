"""Resumable session checkpoints."""
from .store import CHECKPOINT_SUFFIX, CheckpointStore, make_session_id, session_prefix

__all__ = ["CHECKPOINT_SUFFIX", "CheckpointStore", "make_session_id", "session_prefix"]
