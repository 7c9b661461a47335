"""Log entries and the observer wire messages that carry them."""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import Field

from deployhub.models.base import CamelModel


class LogLevel(str, Enum):
    """Severity shown in the deployment console."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


def _clock() -> str:
    return datetime.now(timezone.utc).strftime("%H:%M:%S")


class LogEntry(CamelModel):
    """A single line of a deployment's console output."""

    timestamp: str = Field(default_factory=_clock)
    level: LogLevel
    message: str

    @classmethod
    def info(cls, message: str) -> "LogEntry":
        return cls(level=LogLevel.INFO, message=message)

    @classmethod
    def success(cls, message: str) -> "LogEntry":
        return cls(level=LogLevel.SUCCESS, message=message)

    @classmethod
    def warning(cls, message: str) -> "LogEntry":
        return cls(level=LogLevel.WARNING, message=message)

    @classmethod
    def error(cls, message: str) -> "LogEntry":
        return cls(level=LogLevel.ERROR, message=message)


class SubscribeMessage(CamelModel):
    """Observer request to join a deployment's log stream."""

    type: Literal["subscribe"]
    deployment_id: str = Field(..., min_length=1)


class LogMessage(CamelModel):
    """One log entry pushed to an observer (live or backfill)."""

    type: Literal["log"] = "log"
    log: LogEntry
