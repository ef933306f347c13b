"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class SensorKind(str, Enum):
    """Sensor kinds recognised on a header line."""

    thermometer = "thermometer"
    humidity = "humidity"


class Branding(str, Enum):
    """Quality labels a sensor can be sold under."""

    ultra_precise = "ultra precise"
    very_precise = "very precise"
    precise = "precise"
    keep = "keep"
    discard = "discard"


@dataclass(frozen=True, slots=True)
class ReferenceValues:
    """Known-good room conditions taken from the ``reference`` line."""

    temperature: float = 0.0
    humidity: float = 0.0


@dataclass(frozen=True, slots=True)
class Reading:
    """A single reading line; the timestamp is kept as an opaque token."""

    timestamp: str
    value: float


@dataclass(slots=True)
class SensorRecord:
    """One sensor block, sealed once ``branding`` is assigned."""

    kind: SensorKind
    name: str
    readings: List[Reading] = field(default_factory=list)
    branding: Optional[Branding] = None

    @property
    def values(self) -> List[float]:
        return [reading.value for reading in self.readings]

    @property
    def sealed(self) -> bool:
        return self.branding is not None


@dataclass(slots=True)
class ParsedLog:
    """Everything extracted from one log file."""

    reference: ReferenceValues
    sensors: List[SensorRecord] = field(default_factory=list)

    @property
    def brandings(self) -> Dict[str, str]:
        """Name to branding; a later block with the same name wins."""
        result: Dict[str, str] = {}
        for sensor in self.sensors:
            if sensor.branding is not None:
                result[sensor.name] = sensor.branding.value
        return result
