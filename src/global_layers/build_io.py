"""Load build descriptions (settings + sliced parts) from JSON."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping

from global_layers.contracts import SchedulerSettings
from global_layers.parts import Part, make_step

logger = logging.getLogger(__name__)

DEFAULT_NORMAL = (0.0, 0.0, 1.0)


@dataclass
class BuildDescription:
    """Parts of one build plus the settings to schedule them with."""

    settings: SchedulerSettings
    parts: List[Part]


def _require(payload: Mapping[str, Any], key: str, where: str) -> Any:
    try:
        return payload[key]
    except KeyError:
        raise ValueError(f"{where}: missing required key {key!r}") from None


def part_from_dict(payload: Mapping[str, Any], position: int = 0) -> Part:
    """Build a Part from either explicit ``layers`` or a ``uniform`` slicing."""
    where = f"parts[{position}]"
    name = str(payload.get("name") or f"part_{position}")
    normal = payload.get("normal", DEFAULT_NORMAL)
    part = Part(part_id=payload.get("id"), name=name)

    if "layers" in payload:
        for i, layer in enumerate(payload["layers"]):
            layer_where = f"{where}.layers[{i}]"
            height = float(_require(layer, "layer_height_mm", layer_where))
            if height <= 0:
                raise ValueError(f"{layer_where}: layer_height_mm must be > 0, got {height}")
            part.add_step(make_step(
                float(_require(layer, "offset_mm", layer_where)),
                height,
                layer.get("normal", normal),
            ))
    elif "uniform" in payload:
        uniform = payload["uniform"]
        count = int(_require(uniform, "count", f"{where}.uniform"))
        height = float(_require(uniform, "layer_height_mm", f"{where}.uniform"))
        start = float(uniform.get("start_mm", 0.0))
        if count < 0 or height <= 0:
            raise ValueError(
                f"{where}.uniform: need count >= 0 and layer_height_mm > 0, "
                f"got count={count}, layer_height_mm={height}"
            )
        part.extend(make_step(start + i * height, height, normal) for i in range(count))
    else:
        raise ValueError(f"{where}: expected 'layers' or 'uniform'")

    return part


def build_from_dict(payload: Mapping[str, Any]) -> BuildDescription:
    settings = SchedulerSettings.from_dict(payload.get("settings"))
    parts = [part_from_dict(p, i) for i, p in enumerate(payload.get("parts", []))]

    ids = [part.id for part in parts]
    if len(set(ids)) != len(ids):
        raise ValueError("Build contains duplicate part ids")
    return BuildDescription(settings=settings, parts=parts)


def load_build(path: str | Path) -> BuildDescription:
    """Read a build description JSON file.

    Args:
        path: File with ``settings`` and ``parts`` sections.

    Returns:
        Settings and freshly built parts (every step pair starts dirty).
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        try:
            payload: Dict[str, Any] = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path}: invalid JSON ({exc})") from exc

    build = build_from_dict(payload)
    logger.info(
        "Loaded build %s: %d part(s), %d step(s)",
        path.name, len(build.parts), sum(p.count_step_pairs() for p in build.parts),
    )
    return build
