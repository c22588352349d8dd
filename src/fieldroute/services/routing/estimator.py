"""Travel distance/time estimation between job locations.

Estimators sit behind a narrow interface (two points in, distance and
minutes out) so the straight-line model can be swapped for a real routing
provider without touching sequencing or assignment.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx

from ...config import settings
from ...models.domain import Location
from ..geospatial import location_distance
from .osrm_client import OSRMClient

logger = logging.getLogger(__name__)

METERS_PER_UNIT = {"mi": 1609.344, "km": 1000.0}


@dataclass(frozen=True, slots=True)
class TravelEstimate:
    distance: float
    travel_min: float
    known: bool = True


UNKNOWN = TravelEstimate(distance=0.0, travel_min=0.0, known=False)

TravelMatrix = list[list[TravelEstimate]]


class TravelEstimator(ABC):
    """Contract for travel estimators."""

    name = "estimator"

    @abstractmethod
    def estimate(self, origin: Optional[Location], destination: Optional[Location]) -> TravelEstimate:
        raise NotImplementedError

    def matrix(self, points: Sequence[Optional[Location]]) -> TravelMatrix:
        """Pairwise estimates; implementations backed by a remote API batch this."""
        return [[self.estimate(origin, destination) for destination in points] for origin in points]


class StraightLineEstimator(TravelEstimator):
    """Haversine distance scaled by a road-network factor."""

    name = "straight_line"

    def __init__(
        self,
        *,
        unit: str | None = None,
        road_factor: float | None = None,
        minutes_per_unit: float | None = None,
    ) -> None:
        self.unit = unit or settings.distance_unit
        self.road_factor = road_factor if road_factor is not None else settings.road_factor
        if minutes_per_unit is None:
            minutes_per_unit = settings.minutes_per_mile * METERS_PER_UNIT[self.unit] / METERS_PER_UNIT["mi"]
        self.minutes_per_unit = minutes_per_unit

    def estimate(self, origin: Optional[Location], destination: Optional[Location]) -> TravelEstimate:
        if origin is None or destination is None:
            return UNKNOWN
        distance = location_distance(origin, destination, unit=self.unit) * self.road_factor
        return TravelEstimate(distance=distance, travel_min=distance * self.minutes_per_unit)


class OSRMEstimator(TravelEstimator):
    """Road network estimates from an OSRM table, falling back to straight line."""

    name = "osrm"

    def __init__(self, client: OSRMClient | None = None, *, fallback: TravelEstimator | None = None) -> None:
        self.client = client or OSRMClient()
        self.fallback = fallback or StraightLineEstimator()
        self.unit = getattr(self.fallback, "unit", settings.distance_unit)

    def estimate(self, origin: Optional[Location], destination: Optional[Location]) -> TravelEstimate:
        return self.matrix([origin, destination])[0][1]

    def matrix(self, points: Sequence[Optional[Location]]) -> TravelMatrix:
        known = [index for index, point in enumerate(points) if point is not None]
        if len(known) < 2:
            return self.fallback.matrix(points)

        coordinates = [(points[i].latitude, points[i].longitude) for i in known]
        try:
            table = self.client.table(coordinates)
        except (ConnectionError, ValueError, httpx.HTTPError) as e:
            logger.warning(f"OSRM table request failed: {e}. Using straight-line fallback.")
            return self.fallback.matrix(points)

        durations = table["durations"]
        distances = table["distances"]
        result = self.fallback.matrix(points)
        meters_per_unit = METERS_PER_UNIT[self.unit]
        for row, i in enumerate(known):
            for col, j in enumerate(known):
                duration = durations[row][col]
                distance = distances[row][col]
                # unreachable pairs keep the straight-line estimate
                if duration is None or distance is None:
                    continue
                result[i][j] = TravelEstimate(distance=distance / meters_per_unit, travel_min=duration / 60.0)
        return result


def build_estimator() -> TravelEstimator:
    """Use OSRM when a routing service is configured, else straight line."""

    if settings.osrm_base_url:
        return OSRMEstimator()
    return StraightLineEstimator()
