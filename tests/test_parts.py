"""Tests for parts module."""
import uuid

import pytest

from global_layers.parts import (
    LAYER_HEIGHT_KEY,
    Part,
    Step,
    StepPair,
    make_step,
    make_uniform_part,
)
from global_layers.plane import Plane


class TestStep:

    def test_layer_height_from_settings(self):
        step = make_step(1.0, 0.3, infill="grid")
        assert step.layer_height == pytest.approx(0.3)
        assert step.setting("infill") == "grid"
        assert step.settings[LAYER_HEIGHT_KEY] == pytest.approx(0.3)

    def test_missing_layer_height(self):
        step = Step(slicing_plane=Plane.from_offset([0, 0, 1], 0.0))
        with pytest.raises(KeyError):
            _ = step.layer_height

    def test_step_pairs_compare_by_identity(self):
        step = make_step(0.0, 0.2)
        assert StepPair(step) != StepPair(step)


class TestPart:

    def test_default_id_is_uuid(self):
        part = Part()
        assert isinstance(part.id, uuid.UUID)
        assert part.name == str(part.id)

    def test_append_and_index(self):
        part = Part(part_id="p")
        first = StepPair(make_step(0.0, 0.2))
        second = StepPair(make_step(0.2, 0.2))
        assert part.add_step_pair(first) == 0
        assert part.add_step_pair(second) == 1
        assert part.count_step_pairs() == 2
        assert part.get_step_pair(1) is second
        assert part.index_of(second) == 1

    def test_out_of_range(self):
        part = Part(part_id="p")
        with pytest.raises(IndexError):
            part.get_step_pair(0)

    def test_index_of_foreign_pair(self):
        part = Part(part_id="p")
        with pytest.raises(ValueError):
            part.index_of(StepPair(make_step(0.0, 0.2)))

    def test_peek_does_not_clear(self):
        part = Part(part_id="p")
        part.add_step(make_step(0.0, 0.2))
        assert part.peek_dirty_step_pairs() == [part.get_step_pair(0)]
        assert part.has_dirty_step_pairs()
        assert part.get_dirty_step_pairs() == [part.get_step_pair(0)]

    def test_dirty_pairs_drain(self):
        part = Part(part_id="p")
        part.add_step(make_step(0.0, 0.2))
        part.add_step(make_step(0.2, 0.2))
        assert part.has_dirty_step_pairs()

        dirty = part.get_dirty_step_pairs()
        assert [part.index_of(p) for p in dirty] == [0, 1]
        assert not part.has_dirty_step_pairs()
        assert part.get_dirty_step_pairs() == []

        part.add_step(make_step(0.4, 0.2))
        dirty = part.get_dirty_step_pairs()
        assert len(dirty) == 1
        assert dirty[0] is part.get_step_pair(2)


class TestMakeUniformPart:

    def test_offsets(self):
        part = make_uniform_part(3, 0.5, start_mm=1.0, name="u")
        offsets = [
            part.get_step_pair(i).printing_layer.slicing_plane.offset
            for i in range(part.count_step_pairs())
        ]
        assert offsets == pytest.approx([1.0, 1.5, 2.0])

    def test_empty(self):
        assert make_uniform_part(0, 0.2).count_step_pairs() == 0

    def test_invalid_height(self):
        with pytest.raises(ValueError):
            make_uniform_part(2, 0.0)
