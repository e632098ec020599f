"""
Layer order optimization for multi-part builds.

Interleaves the step pairs of independently sliced parts into an ordered
list of GlobalLayers. Three policies are supported:

- BY_HEIGHT: group layers whose centre planes coincide (within tolerance),
  lowest first along the stacking direction.
- BY_LAYER_NUMBER: zip the parts' steps by index.
- BY_PART: print each part to completion before starting the next.

Every step pair available at call time is scheduled exactly once and each
part's steps keep their own order.
"""
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence

from global_layers.contracts import (
    GlobalLayer,
    LayerOrdering,
    PartStepSource,
    SchedulerSettings,
)
from global_layers.plane import Plane

logger = logging.getLogger(__name__)

LayerObserver = Callable[[List[GlobalLayer]], None]


class LayerScheduler(ABC):
    """Common contract of the ordering policies."""
    ordering: LayerOrdering

    @abstractmethod
    def schedule(
        self,
        parts: Sequence[PartStepSource],
        settings: SchedulerSettings,
    ) -> List[GlobalLayer]:
        ...


class ByLayerNumberScheduler(LayerScheduler):
    ordering = LayerOrdering.BY_LAYER_NUMBER

    def schedule(self, parts, settings):
        max_steps = max((part.count_step_pairs() for part in parts), default=0)

        global_layers: List[GlobalLayer] = []
        for step in range(max_steps):
            layer = GlobalLayer(step)
            for part in parts:
                if step < part.count_step_pairs():
                    layer.add_step_pair(part.id, part.get_step_pair(step))
            global_layers.append(layer)
        return global_layers


class ByPartScheduler(LayerScheduler):
    ordering = LayerOrdering.BY_PART

    def schedule(self, parts, settings):
        # Parts print sequentially, so every part layer gets its own global layer
        global_layers: List[GlobalLayer] = []
        for part in parts:
            for s in range(part.count_step_pairs()):
                layer = GlobalLayer(len(global_layers))
                layer.add_step_pair(part.id, part.get_step_pair(s))
                global_layers.append(layer)
        return global_layers


class ByHeightScheduler(LayerScheduler):
    """Group co-planar layers across parts, lowest layer centre first.

    Assumes every part was sliced along the same, non-rotating stacking
    direction. Each part's current layer plane is shifted up by half its
    layer height so layers are compared centre to centre.
    """
    ordering = LayerOrdering.BY_HEIGHT

    def schedule(self, parts, settings):
        direction = settings.stacking_direction()
        tolerance = settings.grouping_tolerance_mm

        # Next unscheduled step index per part
        cursors: Dict[object, int] = {part.id: 0 for part in parts}

        global_layers: List[GlobalLayer] = []
        while True:
            active = [p for p in parts if cursors[p.id] < p.count_step_pairs()]
            if not active:
                break

            min_plane: Optional[Plane] = None
            min_dist = 0.0
            for part in active:
                plane = layer_centre_plane(part.get_step_pair(cursors[part.id]))
                dist = plane.distance_along(direction)
                if min_plane is None or dist < min_dist:
                    min_plane = plane
                    min_dist = dist

            layer = GlobalLayer(len(global_layers))
            for part in active:
                pair = part.get_step_pair(cursors[part.id])
                if layer_centre_plane(pair).is_equal(min_plane, tolerance):
                    layer.add_step_pair(part.id, pair)
                    cursors[part.id] += 1

            logger.debug(
                "Global layer %d at %.4f mm: %d part(s)",
                layer.index, min_dist, len(layer),
            )
            global_layers.append(layer)
        return global_layers


SCHEDULERS: Dict[LayerOrdering, LayerScheduler] = {
    scheduler.ordering: scheduler
    for scheduler in (ByHeightScheduler(), ByLayerNumberScheduler(), ByPartScheduler())
}


def layer_centre_plane(step_pair) -> Plane:
    """The printing layer's slicing plane moved to the middle of the layer."""
    step = step_pair.printing_layer
    return step.slicing_plane.shifted_along_normal(step.layer_height / 2.0)


def _check_unique_ids(parts: Sequence[PartStepSource]) -> None:
    seen = set()
    for part in parts:
        if part.id in seen:
            raise ValueError(f"Duplicate part id in build: {part.id}")
        seen.add(part.id)


class LayerOrderOptimizer:
    """Builds global layers from the current parts of a build.

    Observers are called with every schedule produced by populate_steps,
    e.g. to append a diagnostic report.
    """

    def __init__(self, observers: Optional[Sequence[LayerObserver]] = None):
        self.observers: List[LayerObserver] = list(observers or [])

    def add_observer(self, observer: LayerObserver) -> None:
        self.observers.append(observer)

    def populate_step(self, parts: Sequence[PartStepSource]) -> GlobalLayer:
        """Collect every newly available (dirty) step pair into one global layer.

        Used while slicing is still in progress. Only one incremental layer
        is live at a time, so it is always numbered 0. Parts are drained
        only after the whole layer is built; a rejected call drains nothing.
        """
        pending = [(part, part.peek_dirty_step_pairs()) for part in parts]

        layer = GlobalLayer(0)
        for part, pairs in pending:
            for pair in pairs:
                layer.add_step_pair(part.id, pair)

        for part, pairs in pending:
            if pairs:
                part.get_dirty_step_pairs()
        logger.debug("Incremental global layer: %d part(s)", len(layer))
        return layer

    def populate_steps(
        self,
        settings: SchedulerSettings,
        parts: Sequence[PartStepSource],
    ) -> List[GlobalLayer]:
        """Schedule every step pair of every part into ordered global layers.

        Args:
            settings: Ordering policy, stacking direction and grouping tolerance.
            parts: Parts of the build, in build order.

        Returns:
            Global layers numbered consecutively from 0.

        Raises:
            ValueError: for an unsupported ordering policy or duplicate part ids.
        """
        scheduler = SCHEDULERS.get(settings.layer_ordering)
        if scheduler is None:
            raise ValueError(f"Unsupported layer ordering: {settings.layer_ordering!r}")
        parts = list(parts)
        _check_unique_ids(parts)

        global_layers = scheduler.schedule(parts, settings)

        logger.info(
            "Scheduled %d global layers from %d part(s) (%s)",
            len(global_layers), len(parts), settings.layer_ordering.value,
        )
        for observer in self.observers:
            observer(global_layers)
        return global_layers


def populate_steps(
    settings: SchedulerSettings,
    parts: Sequence[PartStepSource],
) -> List[GlobalLayer]:
    return LayerOrderOptimizer().populate_steps(settings, parts)


def populate_step(parts: Sequence[PartStepSource]) -> GlobalLayer:
    return LayerOrderOptimizer().populate_step(parts)
