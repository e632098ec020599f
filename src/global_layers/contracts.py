"""Contracts for global layer scheduling: settings, part protocol, GlobalLayer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Hashable, List, Mapping, Optional, Protocol, runtime_checkable

import numpy as np

from global_layers.plane import stacking_direction

PartId = Hashable


class LayerOrdering(Enum):
    """How the steps of several parts are interleaved into global layers."""
    BY_HEIGHT = "by_height"
    BY_LAYER_NUMBER = "by_layer_number"
    BY_PART = "by_part"

    @classmethod
    def parse(cls, value: Any) -> "LayerOrdering":
        """Accept an enum member, its value ("by_height") or its name ("BY_HEIGHT")."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text.lower() == member.value or text.upper() == member.name:
                return member
        choices = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown layer ordering {value!r} (expected one of: {choices})")


@dataclass(frozen=True)
class SchedulerSettings:
    """Global settings read by the layer order optimizer."""

    layer_ordering: LayerOrdering = LayerOrdering.BY_HEIGHT
    stacking_pitch_deg: float = 0.0
    stacking_yaw_deg: float = 0.0
    stacking_roll_deg: float = 0.0
    grouping_tolerance_mm: float = 0.001  # only used by BY_HEIGHT

    def __post_init__(self):
        if self.grouping_tolerance_mm < 0:
            raise ValueError(
                f"grouping_tolerance_mm must be >= 0, got {self.grouping_tolerance_mm}"
            )

    def stacking_direction(self) -> np.ndarray:
        return stacking_direction(
            self.stacking_pitch_deg, self.stacking_yaw_deg, self.stacking_roll_deg,
        )

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "SchedulerSettings":
        """Build settings from a JSON-style mapping; missing keys use defaults."""
        if not payload:
            return cls()
        kwargs: Dict[str, Any] = {}
        if "layer_ordering" in payload:
            kwargs["layer_ordering"] = LayerOrdering.parse(payload["layer_ordering"])
        direction = payload.get("stacking_direction") or {}
        for key, field_name in (
            ("pitch_deg", "stacking_pitch_deg"),
            ("yaw_deg", "stacking_yaw_deg"),
            ("roll_deg", "stacking_roll_deg"),
        ):
            if key in direction:
                kwargs[field_name] = float(direction[key])
        if "grouping_tolerance_mm" in payload:
            kwargs["grouping_tolerance_mm"] = float(payload["grouping_tolerance_mm"])
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layer_ordering": self.layer_ordering.value,
            "stacking_direction": {
                "pitch_deg": self.stacking_pitch_deg,
                "yaw_deg": self.stacking_yaw_deg,
                "roll_deg": self.stacking_roll_deg,
            },
            "grouping_tolerance_mm": self.grouping_tolerance_mm,
        }


@runtime_checkable
class PartStepSource(Protocol):
    """What the optimizer needs from a part.

    Callers must not append steps to a part while a scheduling call is
    running on it.
    """

    @property
    def id(self) -> PartId: ...

    def count_step_pairs(self) -> int: ...

    def get_step_pair(self, index: int) -> Any: ...

    def peek_dirty_step_pairs(self) -> List[Any]: ...

    def get_dirty_step_pairs(self) -> List[Any]: ...


class GlobalLayer:
    """One synchronized build iteration: at most one step pair per part."""

    def __init__(self, index: int):
        self.index = index
        self._step_pairs: Dict[PartId, Any] = {}

    def add_step_pair(self, part_id: PartId, step_pair: Any) -> None:
        if part_id in self._step_pairs:
            raise ValueError(
                f"Global layer {self.index} already holds a step pair for part {part_id}"
            )
        self._step_pairs[part_id] = step_pair

    def get_step_pairs(self) -> Mapping[PartId, Any]:
        return MappingProxyType(self._step_pairs)

    @property
    def part_ids(self) -> List[PartId]:
        return list(self._step_pairs)

    def __len__(self) -> int:
        return len(self._step_pairs)

    def __contains__(self, part_id: object) -> bool:
        return part_id in self._step_pairs

    def __repr__(self) -> str:
        return f"GlobalLayer(index={self.index}, parts={len(self._step_pairs)})"
