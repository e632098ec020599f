"""
Diagnostics for global layer schedules.

Text reports of layer membership, a JSON-ready schedule payload, and a
verifier that checks a schedule against the parts it was built from.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from global_layers.contracts import GlobalLayer, PartStepSource

logger = logging.getLogger(__name__)

SCHEMA_SCHEDULE_V1 = "global_layers.schedule.v1"


@dataclass
class ScheduleViolation:
    """A single problem found in a schedule."""
    rule_name: str
    message: str
    layer_index: Optional[int] = None
    part_id: Optional[str] = None


def _step_index_lookup(parts: Sequence[PartStepSource]) -> Dict[int, Tuple[PartStepSource, int]]:
    """Map id(step_pair) -> (owning part, step index)."""
    lookup: Dict[int, Tuple[PartStepSource, int]] = {}
    for part in parts:
        for i in range(part.count_step_pairs()):
            lookup[id(part.get_step_pair(i))] = (part, i)
    return lookup


def format_global_layers(
    global_layers: Sequence[GlobalLayer],
    parts: Optional[Sequence[PartStepSource]] = None,
) -> str:
    """Human-readable report of which part steps make up each global layer."""
    lookup = _step_index_lookup(parts) if parts else {}
    lines = ["Logging global_layers content:"]
    for i, layer in enumerate(global_layers):
        lines.append(f"Global Layer {i}:")
        for part_id, pair in layer.get_step_pairs().items():
            if pair is None:
                lines.append(f"  StepPair is null for Part ID: {part_id}")
                continue
            entry = f"  Part ID: {part_id}"
            found = lookup.get(id(pair))
            if found is not None:
                part, step_index = found
                name = getattr(part, "name", "")
                if name and name != str(part_id):
                    entry += f" ({name})"
                entry += f" step {step_index}"
            lines.append(entry)
    lines.append("End of global_layers log")
    return "\n".join(lines) + "\n\n"


def append_global_layer_log(
    global_layers: Sequence[GlobalLayer],
    path: Path,
    parts: Optional[Sequence[PartStepSource]] = None,
) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(format_global_layers(global_layers, parts))
    logger.debug("Appended %d global layers to %s", len(global_layers), path)


class GlobalLayerLogObserver:
    """Optimizer observer that appends every schedule to a text log."""

    def __init__(self, path: Path, parts: Optional[Sequence[PartStepSource]] = None):
        self.path = Path(path)
        self.parts = parts

    def __call__(self, global_layers: List[GlobalLayer]) -> None:
        append_global_layer_log(global_layers, self.path, self.parts)


def schedule_to_payload(
    global_layers: Sequence[GlobalLayer],
    parts: Sequence[PartStepSource],
) -> Dict[str, object]:
    """JSON-ready description of a schedule, steps identified by index."""
    lookup = _step_index_lookup(parts)
    layers_payload = []
    for layer in global_layers:
        entries = []
        for part_id, pair in layer.get_step_pairs().items():
            found = lookup.get(id(pair))
            entries.append({
                "part_id": str(part_id),
                "step_index": found[1] if found else None,
            })
        layers_payload.append({"index": layer.index, "steps": entries})

    return {
        "schema_version": SCHEMA_SCHEDULE_V1,
        "layer_count": len(global_layers),
        "parts": [
            {
                "part_id": str(part.id),
                "name": getattr(part, "name", str(part.id)),
                "step_count": part.count_step_pairs(),
            }
            for part in parts
        ],
        "layers": layers_payload,
    }


def verify_schedule(
    global_layers: Sequence[GlobalLayer],
    parts: Sequence[PartStepSource],
) -> List[ScheduleViolation]:
    """Check a schedule against its parts.

    Returns list of violations (empty = every step scheduled exactly once,
    in part order, with layers numbered 0..N-1).
    """
    violations: List[ScheduleViolation] = []
    lookup = _step_index_lookup(parts)
    known_ids = {part.id for part in parts}
    seen: Dict[int, int] = {}
    last_index: Dict[object, int] = {}

    for position, layer in enumerate(global_layers):
        if layer.index != position:
            violations.append(ScheduleViolation(
                rule_name="layer_index",
                message=f"Layer at position {position} is numbered {layer.index}",
                layer_index=layer.index,
            ))
        for part_id, pair in layer.get_step_pairs().items():
            if part_id not in known_ids:
                violations.append(ScheduleViolation(
                    rule_name="unknown_part",
                    message=f"Layer {layer.index} references unknown part {part_id}",
                    layer_index=layer.index,
                    part_id=str(part_id),
                ))
                continue
            found = lookup.get(id(pair))
            if found is None or found[0].id != part_id:
                violations.append(ScheduleViolation(
                    rule_name="foreign_step",
                    message=f"Layer {layer.index} holds a step not owned by part {part_id}",
                    layer_index=layer.index,
                    part_id=str(part_id),
                ))
                continue
            step_index = found[1]
            if id(pair) in seen:
                violations.append(ScheduleViolation(
                    rule_name="duplicate_step",
                    message=(
                        f"Part {part_id} step {step_index} scheduled in layers "
                        f"{seen[id(pair)]} and {layer.index}"
                    ),
                    layer_index=layer.index,
                    part_id=str(part_id),
                ))
                continue
            seen[id(pair)] = layer.index
            if step_index <= last_index.get(part_id, -1):
                violations.append(ScheduleViolation(
                    rule_name="order",
                    message=(
                        f"Part {part_id} step {step_index} follows step "
                        f"{last_index[part_id]}"
                    ),
                    layer_index=layer.index,
                    part_id=str(part_id),
                ))
            last_index[part_id] = max(step_index, last_index.get(part_id, -1))

    for pair_key, (part, step_index) in lookup.items():
        if pair_key not in seen:
            violations.append(ScheduleViolation(
                rule_name="missing_step",
                message=f"Part {part.id} step {step_index} is not scheduled",
                part_id=str(part.id),
            ))

    if violations:
        logger.warning("Schedule has %d violation(s)", len(violations))
    return violations
