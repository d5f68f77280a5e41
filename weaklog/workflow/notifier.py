"""
Notifiers

The orchestrator reports the outcome of every command through exactly one
notification. Hosts supply their own notifier (a toast, a status bar, a
CLI line); the defaults below log or record.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List


class Level(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notification:
    message: str
    level: Level = Level.INFO


class Notifier(ABC):
    """Non-blocking user notification primitive."""

    @abstractmethod
    def notify(self, message: str, level: Level = Level.INFO) -> None:
        pass


class LoggingNotifier(Notifier):
    """Writes notifications to the ``weaklog.notify`` logger."""

    _LEVELS = {
        Level.INFO: logging.INFO,
        Level.SUCCESS: logging.INFO,
        Level.WARNING: logging.WARNING,
        Level.ERROR: logging.ERROR,
    }

    def __init__(self, logger_name: str = "weaklog.notify"):
        self._logger = logging.getLogger(logger_name)

    def notify(self, message: str, level: Level = Level.INFO) -> None:
        self._logger.log(self._LEVELS[level], message)


@dataclass
class RecordingNotifier(Notifier):
    """Keeps every notification in memory."""

    notifications: List[Notification] = field(default_factory=list)

    def notify(self, message: str, level: Level = Level.INFO) -> None:
        self.notifications.append(Notification(message, level))

    @property
    def messages(self) -> List[str]:
        return [n.message for n in self.notifications]

    @property
    def last(self) -> Notification:
        return self.notifications[-1]
