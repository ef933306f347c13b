"""Error hierarchy for log grading, log sources and the result store."""

from __future__ import annotations

from typing import Optional


class SensorLogError(Exception):
    """Base error for all sensor log grading failures."""


# ---- Parse errors: terminal for the file, their text is persisted ----
class LogParseError(SensorLogError):
    """Raised when a log file cannot be graded."""

    message = "failed parsing log file"

    def __init__(self, detail: Optional[str] = None, line_number: Optional[int] = None) -> None:
        self.detail = detail
        self.line_number = line_number
        text = self.message if not detail else f"{self.message}: {detail}"
        super().__init__(text)


class OpenFileError(LogParseError):
    message = "error opening file"


class LogReadError(LogParseError):
    message = "error reading the file"


class WrongNumberRefFields(LogParseError):
    message = "reference line has incorrect number of fields"


class TempNotFloat(LogParseError):
    message = "failed converting reference temperature to float"


class HumidityNotFloat(LogParseError):
    message = "failed converting reference humidity to float"


class WrongNumberReadingFields(LogParseError):
    message = "line with readings has incorrect number of fields"


class ReadingNotFloat(LogParseError):
    message = "failed converting current reading to float"


class MissingSensorName(LogParseError):
    message = "sensor line is missing the sensor name"


# ---- Collaborator errors: not persisted, retried on the next poll ----
class LogSourceError(SensorLogError):
    """Raised when the log listing or a log file cannot be retrieved."""


class LogFileNotFound(LogSourceError, KeyError):
    """Raised when a listed log file is no longer available."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ResultStoreError(SensorLogError):
    """Raised when the dedup/result store cannot be queried or written."""
