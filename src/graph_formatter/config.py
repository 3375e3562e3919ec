"""Centralized configuration for graph-formatter."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from graph_formatter.types import CombineMethod, Direction, PositioningStrategy, RankingStrategy


@dataclass
class LayoutConfig:
    """Configuration for the layout pipeline.

    Passed explicitly into every phase; nothing reads a global default.
    """

    edge_spacing: float = 80.0
    node_spacing: float = 40.0
    component_spacing: float | None = None
    group_border: float = 40.0
    ranking_strategy: RankingStrategy = RankingStrategy.NETWORK_SIMPLEX
    positioning_strategy: PositioningStrategy = PositioningStrategy.FOUR_DIRECTION_MEDIAN
    combine_method: CombineMethod = CombineMethod.TOP
    max_ordering_iterations: int = 10
    max_simplex_iterations: int = 10_000
    max_nesting_depth: int = 32
    direction: Direction = Direction.LR
    preserve_position: bool = False

    def __post_init__(self) -> None:
        for name in ("edge_spacing", "node_spacing", "group_border"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.component_spacing is not None and self.component_spacing < 0:
            raise ValueError("component_spacing must be non-negative")
        for name in ("max_ordering_iterations", "max_simplex_iterations", "max_nesting_depth"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

    @property
    def effective_component_spacing(self) -> float:
        if self.component_spacing is None:
            return self.node_spacing
        return self.component_spacing

    @classmethod
    def from_mapping(cls, values: dict[str, Any], base: LayoutConfig | None = None) -> LayoutConfig:
        """Build a config from JSON/CLI spelling, e.g. ``{"ranking_strategy": "longest_path"}``.

        Keys missing from ``values`` keep the value from ``base`` (or the defaults).
        """
        known = {f.name: f for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        if base is not None:
            kwargs = {name: getattr(base, name) for name in known}
        for key, raw in values.items():
            if key not in known:
                raise ValueError(f"Unknown config key '{key}'")
            kwargs[key] = _coerce(key, raw, _ENUM_FIELDS.get(key))
        return cls(**kwargs)


_ENUM_FIELDS: dict[str, type[Enum]] = {
    "ranking_strategy": RankingStrategy,
    "positioning_strategy": PositioningStrategy,
    "combine_method": CombineMethod,
    "direction": Direction,
}


def _coerce(key: str, raw: Any, enum_type: type[Enum] | None) -> Any:
    if enum_type is not None:
        if isinstance(raw, enum_type):
            return raw
        try:
            return enum_type(str(raw).lower())
        except ValueError:
            choices = ", ".join(member.value for member in enum_type)
            raise ValueError(f"Unknown {key} '{raw}'; use one of: {choices}") from None
    if key == "preserve_position":
        return bool(raw)
    if key in ("max_ordering_iterations", "max_simplex_iterations", "max_nesting_depth"):
        return int(raw)
    if raw is None:
        return None
    return float(raw)
