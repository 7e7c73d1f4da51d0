"""Shared dataclasses and enums for detections, priorities and modes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def weight(self) -> int:
        """Queue weight, larger plays first."""
        return _PRIORITY_WEIGHTS[self]

    @property
    def rank(self) -> int:
        """Selection rank, smaller is more important."""
        return 4 - _PRIORITY_WEIGHTS[self]


_PRIORITY_WEIGHTS = {
    Priority.CRITICAL: 4,
    Priority.HIGH: 3,
    Priority.NORMAL: 2,
    Priority.LOW: 1,
}


class Direction(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"

    @property
    def spoken(self) -> str:
        return _SPOKEN_DIRECTIONS[self]


_SPOKEN_DIRECTIONS = {
    Direction.LEFT: "on your left",
    Direction.CENTER: "ahead",
    Direction.RIGHT: "on your right",
}


class DistanceBucket(str, Enum):
    CLOSE = "close"
    MEDIUM = "medium"
    FAR = "far"

    @property
    def order(self) -> int:
        return _DISTANCE_ORDER[self]


_DISTANCE_ORDER = {
    DistanceBucket.CLOSE: 0,
    DistanceBucket.MEDIUM: 1,
    DistanceBucket.FAR: 2,
}


class Mode(str, Enum):
    IDLE = "idle"
    DETECTING = "detecting"
    READING = "reading"
    SAFE_WALK = "safe-walk"
    FIND_OBJECT = "find-object"
    MEDICINE = "medicine"
    SHOPPING = "shopping"
    NAVIGATION = "navigation"
    EMERGENCY = "emergency"


class TurnDirection(str, Enum):
    STRAIGHT = "straight"
    LEFT = "left"
    RIGHT = "right"
    SLIGHT_LEFT = "slight-left"
    SLIGHT_RIGHT = "slight-right"
    U_TURN = "u-turn"
    ARRIVAL = "arrival"


@dataclass(frozen=True)
class DetectionRecord:
    """Raw detector output; bbox is (x, y, width, height) in frame pixels."""

    label: str
    score: float
    bbox: Tuple[float, float, float, float]


@dataclass(frozen=True)
class ClassifiedDetection:
    object: str
    confidence: float
    direction: Direction
    distance: DistanceBucket
    distance_meters: float
    priority: Priority
    announcement: str
    bbox: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)


@dataclass(frozen=True)
class NavigationStep:
    instruction: str
    distance_m: float
    direction: TurnDirection
    street_name: str | None = None
