"""Line-oriented parser for sensor log files.

A log file looks like::

    reference 70.0 45.0
    thermometer temp-1
    2007-04-05T22:00 72.4
    2007-04-05T22:01 76.0
    humidity hum-1
    2007-04-05T22:04 45.2

The first token of every line decides what it is: the reference line, a
sensor header opening a new block, or a reading belonging to the open block.
Blocks are graded as soon as they close, so a second ``reference`` line only
affects the blocks that close after it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, TextIO, Union

from models.records import ParsedLog, Reading, ReferenceValues, SensorKind, SensorRecord
from services.classifier import classify
from services.exceptions import (
    HumidityNotFloat,
    LogReadError,
    MissingSensorName,
    OpenFileError,
    ReadingNotFloat,
    TempNotFloat,
    WrongNumberReadingFields,
    WrongNumberRefFields,
)

REFERENCE_KEYWORD = "reference"
_REFERENCE_FIELDS = 3
_READING_FIELDS = 2
_SENSOR_KEYWORDS = frozenset(kind.value for kind in SensorKind)

logger = logging.getLogger(__name__)


class LogParser:
    """Turns log lines into a reference record and graded sensor blocks."""

    def parse(self, lines: Iterable[str]) -> ParsedLog:
        reference = ReferenceValues()
        sensors: List[SensorRecord] = []
        current: Optional[SensorRecord] = None

        for line_number, line in enumerate(lines, start=1):
            fields = line.split()
            keyword = fields[0] if fields else ""

            if keyword == REFERENCE_KEYWORD:
                reference = self._parse_reference(fields, line_number)
                logger.debug(
                    "Reference values temperature=%.2f humidity=%.2f",
                    reference.temperature,
                    reference.humidity,
                    extra={"line_number": line_number},
                )
            elif keyword in _SENSOR_KEYWORDS:
                if len(fields) < 2:
                    raise MissingSensorName(line.strip(), line_number=line_number)
                if current is not None:
                    sensors.append(self._seal(current, reference))
                current = SensorRecord(kind=SensorKind(keyword), name=fields[1])
            else:
                reading = self._parse_reading(fields, line_number)
                if current is None:
                    logger.warning(
                        "Dropping reading outside of a sensor block",
                        extra={"line_number": line_number},
                    )
                    continue
                current.readings.append(reading)

        if current is not None:
            sensors.append(self._seal(current, reference))

        return ParsedLog(reference=reference, sensors=sensors)

    @staticmethod
    def _parse_reference(fields: Sequence[str], line_number: int) -> ReferenceValues:
        if len(fields) != _REFERENCE_FIELDS:
            raise WrongNumberRefFields(line_number=line_number)
        try:
            temperature = float(fields[1])
        except ValueError as exc:
            raise TempNotFloat(str(exc), line_number=line_number) from exc
        try:
            humidity = float(fields[2])
        except ValueError as exc:
            raise HumidityNotFloat(str(exc), line_number=line_number) from exc
        return ReferenceValues(temperature=temperature, humidity=humidity)

    @staticmethod
    def _parse_reading(fields: Sequence[str], line_number: int) -> Reading:
        if len(fields) != _READING_FIELDS:
            raise WrongNumberReadingFields(line_number=line_number)
        try:
            value = float(fields[1])
        except ValueError as exc:
            raise ReadingNotFloat(str(exc), line_number=line_number) from exc
        return Reading(timestamp=fields[0], value=value)

    @staticmethod
    def _seal(sensor: SensorRecord, reference: ReferenceValues) -> SensorRecord:
        sensor.branding = classify(sensor.kind, reference, sensor.values)
        logger.debug(
            "Graded %s %s over %d readings",
            sensor.kind.value,
            sensor.name,
            len(sensor.readings),
            extra={"sensor_name": sensor.name, "branding": sensor.branding.value},
        )
        return sensor


def parse_stream(stream: Union[TextIO, Iterable[str]], parser: Optional[LogParser] = None) -> ParsedLog:
    """Parse an open text stream, reporting read failures as ``LogReadError``."""
    active = parser or LogParser()
    try:
        return active.parse(stream)
    except (OSError, UnicodeDecodeError) as exc:
        raise LogReadError(str(exc)) from exc


def parse_log_file(path: Union[str, Path], parser: Optional[LogParser] = None) -> ParsedLog:
    try:
        handle = Path(path).open("r", encoding="utf-8")
    except OSError as exc:
        raise OpenFileError(str(exc)) from exc
    with handle:
        return parse_stream(handle, parser)
