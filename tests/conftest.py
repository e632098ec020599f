"""
Shared test fixtures for global layer scheduling tests.
"""
import json
import sys
from pathlib import Path

import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from global_layers.parts import Part, make_step


@pytest.fixture
def part_at_centres():
    """Factory: a part whose layer centres sit at the given heights.

    Each slicing plane is placed half a layer below its centre so the
    scheduler's half-height shift lands exactly on the requested value.
    """
    def _make(name, centres, layer_height=1.0, normal=(0.0, 0.0, 1.0)):
        part = Part(part_id=name, name=name)
        for centre in centres:
            part.add_step(make_step(centre - layer_height / 2.0, layer_height, normal))
        return part
    return _make


@pytest.fixture
def two_uneven_parts(part_at_centres):
    """Parts with 4 and 2 steps on the same 1mm grid."""
    return [
        part_at_centres("long", [0.5, 1.5, 2.5, 3.5]),
        part_at_centres("short", [0.5, 1.5]),
    ]


@pytest.fixture
def build_payload():
    """A small build description: two uniform parts and one explicit part."""
    return {
        "settings": {
            "layer_ordering": "by_height",
            "stacking_direction": {"pitch_deg": 0.0, "yaw_deg": 0.0, "roll_deg": 0.0},
            "grouping_tolerance_mm": 0.01,
        },
        "parts": [
            {"name": "bracket", "uniform": {"count": 4, "layer_height_mm": 0.2}},
            {"name": "pin", "uniform": {"count": 2, "layer_height_mm": 0.4}},
            {
                "name": "tab",
                "id": "tab-1",
                "layers": [
                    {"offset_mm": 0.0, "layer_height_mm": 0.2},
                    {"offset_mm": 0.2, "layer_height_mm": 0.2},
                ],
            },
        ],
    }


@pytest.fixture
def build_file(tmp_path, build_payload):
    """The build_payload fixture written to disk."""
    path = tmp_path / "build.json"
    path.write_text(json.dumps(build_payload), encoding="utf-8")
    return str(path)
