"""Tests for build description loading."""
import json

import pytest

from global_layers.build_io import build_from_dict, load_build, part_from_dict
from global_layers.contracts import LayerOrdering
from global_layers.diagnostics import verify_schedule
from global_layers.optimizer import populate_steps


class TestPartFromDict:

    def test_uniform(self):
        part = part_from_dict({"name": "p", "uniform": {"count": 3, "layer_height_mm": 0.2, "start_mm": 1.0}})
        assert part.count_step_pairs() == 3
        step = part.get_step_pair(2).printing_layer
        assert step.slicing_plane.offset == pytest.approx(1.4)
        assert step.layer_height == pytest.approx(0.2)

    def test_explicit_layers_with_normal(self):
        part = part_from_dict({
            "name": "p",
            "normal": [0, 1, 0],
            "layers": [{"offset_mm": 2.0, "layer_height_mm": 0.5}],
        })
        plane = part.get_step_pair(0).printing_layer.slicing_plane
        assert plane.normal.tolist() == [0.0, 1.0, 0.0]
        assert plane.offset == pytest.approx(2.0)

    def test_id_is_kept(self):
        part = part_from_dict({"id": "abc", "name": "p", "layers": []})
        assert part.id == "abc"

    def test_default_name(self):
        part = part_from_dict({"layers": []}, position=4)
        assert part.name == "part_4"

    def test_missing_slicing(self):
        with pytest.raises(ValueError, match="expected 'layers' or 'uniform'"):
            part_from_dict({"name": "p"})

    def test_missing_layer_key(self):
        with pytest.raises(ValueError, match="offset_mm"):
            part_from_dict({"layers": [{"layer_height_mm": 0.2}]}, position=2)

    def test_bad_layer_height(self):
        with pytest.raises(ValueError):
            part_from_dict({"uniform": {"count": 2, "layer_height_mm": 0}})


class TestBuildFromDict:

    def test_settings_and_parts(self, build_payload):
        build = build_from_dict(build_payload)
        assert build.settings.layer_ordering is LayerOrdering.BY_HEIGHT
        assert build.settings.grouping_tolerance_mm == pytest.approx(0.01)
        assert [p.name for p in build.parts] == ["bracket", "pin", "tab"]
        assert build.parts[2].id == "tab-1"

    def test_duplicate_ids(self):
        payload = {"parts": [{"id": "x", "layers": []}, {"id": "x", "layers": []}]}
        with pytest.raises(ValueError, match="duplicate"):
            build_from_dict(payload)

    def test_empty_build(self):
        build = build_from_dict({})
        assert build.parts == []


class TestLoadBuild:

    def test_load_and_schedule(self, build_file):
        build = load_build(build_file)
        layers = populate_steps(build.settings, build.parts)
        assert verify_schedule(layers, build.parts) == []
        # bracket and tab share the first two 0.2mm layers
        first = layers[0].get_step_pairs()
        assert len(first) == 2
        assert build.parts[2].id in first

    def test_steps_start_dirty(self, build_file):
        build = load_build(build_file)
        assert all(part.has_dirty_step_pairs() for part in build.parts)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="invalid JSON"):
            load_build(path)

    def test_unknown_ordering(self, tmp_path):
        path = tmp_path / "build.json"
        path.write_text(json.dumps({"settings": {"layer_ordering": "spiral"}, "parts": []}), encoding="utf-8")
        with pytest.raises(ValueError, match="Unknown layer ordering"):
            load_build(path)
