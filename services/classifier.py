"""Branding rules for each supported sensor kind."""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Mapping, Protocol, Sequence, Tuple

from models.records import Branding, ReferenceValues, SensorKind

TEMPERATURE_TOLERANCE = 0.5
ULTRA_PRECISE_MAX_STDDEV = 3.0
VERY_PRECISE_MAX_STDDEV = 5.0
HUMIDITY_RELATIVE_TOLERANCE = 100.0


class SensorClassifier(Protocol):
    kind: SensorKind
    default_branding: Branding

    def classify(self, reference: ReferenceValues, readings: Sequence[float]) -> Branding:
        ...


class Thermometer:
    """Graded on how close the mean sits to the room and how much readings spread.

    The mean must lie strictly within 0.5 degrees of the reference
    temperature; the sample standard deviation then decides between
    "ultra precise" (under 3) and "very precise" (under 5). Anything else,
    including fewer than two readings, stays "precise".
    """

    kind = SensorKind.thermometer
    default_branding = Branding.precise

    def classify(self, reference: ReferenceValues, readings: Sequence[float]) -> Branding:
        if len(readings) < 2:
            return self.default_branding

        mean, stddev = _mean_stddev(readings)
        low = reference.temperature - TEMPERATURE_TOLERANCE
        high = reference.temperature + TEMPERATURE_TOLERANCE

        if low < mean < high:
            if stddev < ULTRA_PRECISE_MAX_STDDEV:
                return Branding.ultra_precise
            if stddev < VERY_PRECISE_MAX_STDDEV:
                return Branding.very_precise
        return self.default_branding


class HumiditySensor:
    """Discarded as soon as one reading leaves the 1% band around the reference.

    The band is relative to the reference value (45% gives 44.55..45.45),
    not one percentage point.
    """

    kind = SensorKind.humidity
    default_branding = Branding.keep

    def classify(self, reference: ReferenceValues, readings: Sequence[float]) -> Branding:
        margin = reference.humidity / HUMIDITY_RELATIVE_TOLERANCE
        low = reference.humidity - margin
        high = reference.humidity + margin

        for value in readings:
            if value < low or value > high:
                return Branding.discard
        return self.default_branding


CLASSIFIERS: Mapping[SensorKind, SensorClassifier] = MappingProxyType(
    {
        SensorKind.thermometer: Thermometer(),
        SensorKind.humidity: HumiditySensor(),
    }
)


def classify(kind: SensorKind, reference: ReferenceValues, readings: Sequence[float]) -> Branding:
    return CLASSIFIERS[kind].classify(reference, readings)


def _mean_stddev(readings: Sequence[float]) -> Tuple[float, float]:
    # Non-finite sums propagate as inf or nan and fail every comparison.
    count = len(readings)
    mean = sum(readings) / count
    squares = sum((value - mean) * (value - mean) for value in readings)
    return mean, math.sqrt(squares / (count - 1))
