"""
In-memory parts: sliced steps, step pairs and per-part step sequences.

A Part owns its StepPair sequence. Pairs are only ever appended; each
append marks the pair dirty until a consumer drains it with
get_dirty_step_pairs().
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Optional

from global_layers.plane import Plane

logger = logging.getLogger(__name__)

LAYER_HEIGHT_KEY = "layer_height"


@dataclass(eq=False)
class Step:
    """One sliced layer of a part."""
    slicing_plane: Plane
    settings: Dict[str, Any] = field(default_factory=dict)

    def setting(self, key: str) -> Any:
        try:
            return self.settings[key]
        except KeyError:
            raise KeyError(f"Step has no setting {key!r}") from None

    @property
    def layer_height(self) -> float:
        return float(self.setting(LAYER_HEIGHT_KEY))


@dataclass(eq=False)
class StepPair:
    """A printable iteration of a part: the printing layer plus an optional scan layer.

    Compared by identity, so two pairs built from equal steps stay distinct.
    """
    printing_layer: Step
    scan_layer: Optional[Step] = None


class Part:
    """An independently sliced build object and its ordered step pairs."""

    def __init__(self, part_id: Optional[Hashable] = None, name: str = ""):
        self._id = part_id if part_id is not None else uuid.uuid4()
        self.name = name or str(self._id)
        self._step_pairs: List[StepPair] = []
        self._dirty: List[StepPair] = []

    @property
    def id(self) -> Hashable:
        return self._id

    def add_step_pair(self, step_pair: StepPair) -> int:
        """Append a step pair and mark it dirty. Returns its index."""
        self._step_pairs.append(step_pair)
        self._dirty.append(step_pair)
        return len(self._step_pairs) - 1

    def add_step(self, step: Step) -> int:
        return self.add_step_pair(StepPair(printing_layer=step))

    def extend(self, steps: Iterable[Step]) -> None:
        for step in steps:
            self.add_step(step)

    def count_step_pairs(self) -> int:
        return len(self._step_pairs)

    def get_step_pair(self, index: int) -> StepPair:
        if index < 0 or index >= len(self._step_pairs):
            raise IndexError(
                f"Part {self.name} has {len(self._step_pairs)} step pairs, no index {index}"
            )
        return self._step_pairs[index]

    def index_of(self, step_pair: StepPair) -> int:
        for i, pair in enumerate(self._step_pairs):
            if pair is step_pair:
                return i
        raise ValueError(f"Step pair does not belong to part {self.name}")

    def has_dirty_step_pairs(self) -> bool:
        return bool(self._dirty)

    def peek_dirty_step_pairs(self) -> List[StepPair]:
        """Step pairs added since the last drain, without clearing them."""
        return list(self._dirty)

    def get_dirty_step_pairs(self) -> List[StepPair]:
        """Return step pairs added since the last call and clear the dirty set."""
        dirty, self._dirty = self._dirty, []
        if dirty:
            logger.debug("Part %s: draining %d dirty step pairs", self.name, len(dirty))
        return dirty

    def __repr__(self) -> str:
        return f"Part(name={self.name!r}, steps={len(self._step_pairs)})"


def make_step(
    offset_mm: float,
    layer_height_mm: float,
    normal=(0.0, 0.0, 1.0),
    **settings: Any,
) -> Step:
    """Step whose slicing plane is n . p = offset_mm with the given layer height."""
    merged = dict(settings)
    merged[LAYER_HEIGHT_KEY] = float(layer_height_mm)
    return Step(slicing_plane=Plane.from_offset(normal, offset_mm), settings=merged)


def make_uniform_part(
    count: int,
    layer_height_mm: float,
    start_mm: float = 0.0,
    normal=(0.0, 0.0, 1.0),
    name: str = "",
    part_id: Optional[Hashable] = None,
) -> Part:
    """Part sliced into ``count`` equal layers starting at ``start_mm``."""
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if layer_height_mm <= 0:
        raise ValueError(f"layer_height_mm must be > 0, got {layer_height_mm}")
    part = Part(part_id=part_id, name=name)
    part.extend(
        make_step(start_mm + i * layer_height_mm, layer_height_mm, normal)
        for i in range(count)
    )
    return part
