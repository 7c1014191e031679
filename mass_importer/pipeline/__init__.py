"""Import pipeline orchestration."""
from .orchestrator import ImportOrchestrator, ResumeConfirmer, RunPhase, RunRequest, RunResult
from .signals import StopController, install_signal_handlers

__all__ = [
    "ImportOrchestrator",
    "ResumeConfirmer",
    "RunPhase",
    "RunRequest",
    "RunResult",
    "StopController",
    "install_signal_handlers",
]
