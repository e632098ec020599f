"""Public API for global layer scheduling of multi-part builds."""

from global_layers.contracts import GlobalLayer, LayerOrdering, PartStepSource, SchedulerSettings
from global_layers.optimizer import LayerOrderOptimizer, populate_step, populate_steps
from global_layers.parts import Part, Step, StepPair
from global_layers.plane import Plane

__all__ = [
    "GlobalLayer",
    "LayerOrderOptimizer",
    "LayerOrdering",
    "Part",
    "PartStepSource",
    "Plane",
    "SchedulerSettings",
    "Step",
    "StepPair",
    "populate_step",
    "populate_steps",
]
