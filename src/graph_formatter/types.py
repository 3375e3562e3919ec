"""Shared type definitions for graph-formatter.

Enums and small geometry types used across the graph model, layout phases,
parsers and emitters.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Direction(Enum):
    LR = "lr"  # ranks run left to right, nodes stack top to bottom
    TD = "td"  # ranks run top to bottom, nodes stack left to right

    @classmethod
    def default(cls) -> Direction:
        return cls.LR


class PinDirection(Enum):
    IN = "in"
    OUT = "out"

    def opposite(self) -> PinDirection:
        return PinDirection.OUT if self is PinDirection.IN else PinDirection.IN


class RankSlot(Enum):
    NONE = "none"
    MIN = "min"
    MAX = "max"


class RankingStrategy(Enum):
    LONGEST_PATH = "longest_path"
    NETWORK_SIMPLEX = "network_simplex"


class PositioningStrategy(Enum):
    EVENLY_SPACED = "evenly_spaced"
    PRIORITY = "priority"
    FOUR_DIRECTION_MEDIAN = "four_direction_median"


class CombineMethod(Enum):
    TOP = "top"  # mean of the two middle values
    MEDIAN = "median"  # mean of the two extreme values


@dataclass(frozen=True)
class Vector2:
    """A 2D point or extent in host coordinates."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vector2) -> Vector2:
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector2) -> Vector2:
        return Vector2(self.x - other.x, self.y - other.y)

    def transposed(self) -> Vector2:
        return Vector2(self.y, self.x)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle stored as left/top/right/bottom edges."""

    left: float = 0.0
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0

    @classmethod
    def from_point_and_extent(cls, point: Vector2, extent: Vector2) -> Rect:
        return cls(point.x, point.y, point.x + extent.x, point.y + extent.y)

    @property
    def top_left(self) -> Vector2:
        return Vector2(self.left, self.top)

    @property
    def size(self) -> Vector2:
        return Vector2(self.right - self.left, self.bottom - self.top)

    def expand(self, other: Rect) -> Rect:
        return Rect(
            min(self.left, other.left),
            min(self.top, other.top),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )

    def offset_by(self, offset: Vector2) -> Rect:
        return Rect(self.left + offset.x, self.top + offset.y, self.right + offset.x, self.bottom + offset.y)

    def transposed(self) -> Rect:
        return Rect(self.top, self.left, self.bottom, self.right)
