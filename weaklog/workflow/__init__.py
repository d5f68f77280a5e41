"""
Weaklog Workflow

Entry store, cooldown scheduler and the orchestrator that moves entries
between stages.
"""

from .entry_store import EntryStore, STAGE_FOLDERS
from .cooldown import CooldownScheduler
from .notifier import Notifier, LoggingNotifier, RecordingNotifier, Level
from .orchestrator import WeaklogOrchestrator

__all__ = [
    "EntryStore",
    "STAGE_FOLDERS",
    "CooldownScheduler",
    "Notifier",
    "LoggingNotifier",
    "RecordingNotifier",
    "Level",
    "WeaklogOrchestrator",
]
