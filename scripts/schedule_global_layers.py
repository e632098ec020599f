#!/usr/bin/env python3
"""Schedule the parts of a build description into global layers."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from global_layers import LayerOrderOptimizer, LayerOrdering
from global_layers.build_io import load_build
from global_layers.diagnostics import (
    GlobalLayerLogObserver,
    schedule_to_payload,
    verify_schedule,
)
from run_protocol import (
    copy_input_file,
    prepare_run_dir,
    update_latest_pointer,
    write_json,
    write_text,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Interleave sliced parts into synchronized global layers"
    )
    parser.add_argument("--build", required=True, help="Path to build description JSON")
    parser.add_argument("--name", default="schedule", help="Run name")
    parser.add_argument("--runs-dir", default="runs", help="Runs output root")
    parser.add_argument(
        "--ordering",
        choices=[member.value for member in LayerOrdering],
        default=None,
        help="Override the layer ordering policy from the build file",
    )
    parser.add_argument(
        "--tolerance-mm",
        type=float,
        default=None,
        help="Override the by-height grouping tolerance",
    )
    parser.add_argument("--pitch-deg", type=float, default=None, help="Stacking direction pitch")
    parser.add_argument("--yaw-deg", type=float, default=None, help="Stacking direction yaw")
    parser.add_argument("--roll-deg", type=float, default=None, help="Stacking direction roll")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def _settings_overrides(args: argparse.Namespace) -> dict:
    overrides = {}
    if args.ordering is not None:
        overrides["layer_ordering"] = LayerOrdering.parse(args.ordering)
    if args.tolerance_mm is not None:
        overrides["grouping_tolerance_mm"] = float(args.tolerance_mm)
    for arg_name, field_name in (
        ("pitch_deg", "stacking_pitch_deg"),
        ("yaw_deg", "stacking_yaw_deg"),
        ("roll_deg", "stacking_roll_deg"),
    ):
        value = getattr(args, arg_name)
        if value is not None:
            overrides[field_name] = float(value)
    return overrides


def _build_summary(
    *,
    run_id: str,
    elapsed_s: float,
    ordering: str,
    part_count: int,
    step_count: int,
    layer_count: int,
    violation_count: int,
) -> str:
    status = "ok" if violation_count == 0 else "invalid"
    return "\n".join(
        [
            f"# Run {run_id}",
            "",
            f"- Status: **{status.upper()}**",
            f"- Duration: {elapsed_s:.3f}s",
            f"- Ordering: {ordering}",
            f"- Parts: {part_count}",
            f"- Steps: {step_count}",
            f"- Global layers: {layer_count}",
            f"- Violations: {violation_count}",
            "",
        ]
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.tolerance_mm is not None and args.tolerance_mm < 0:
        parser.error(f"--tolerance-mm must be >= 0, got {args.tolerance_mm}")

    started = time.perf_counter()
    # Validate the build before any run folder exists
    build = load_build(args.build)
    settings = dataclasses.replace(build.settings, **_settings_overrides(args))

    run_paths = prepare_run_dir(args.runs_dir, args.name)
    copied_build = copy_input_file(args.build, run_paths.input_dir)

    optimizer = LayerOrderOptimizer(
        observers=[GlobalLayerLogObserver(run_paths.layer_log_path, build.parts)]
    )
    global_layers = optimizer.populate_steps(settings, build.parts)
    violations = verify_schedule(global_layers, build.parts)
    elapsed = time.perf_counter() - started

    step_count = sum(part.count_step_pairs() for part in build.parts)
    schedule = schedule_to_payload(global_layers, build.parts)
    schedule["settings"] = settings.to_dict()
    write_json(run_paths.schedule_path, schedule)

    write_json(run_paths.metrics_path, {
        "run_id": run_paths.run_id,
        "elapsed_s": round(elapsed, 4),
        "ordering": settings.layer_ordering.value,
        "counts": {
            "parts": len(build.parts),
            "steps": step_count,
            "global_layers": len(global_layers),
            "violations": len(violations),
        },
        "violations": [dataclasses.asdict(v) for v in violations],
    })
    write_text(run_paths.summary_path, _build_summary(
        run_id=run_paths.run_id,
        elapsed_s=elapsed,
        ordering=settings.layer_ordering.value,
        part_count=len(build.parts),
        step_count=step_count,
        layer_count=len(global_layers),
        violation_count=len(violations),
    ))
    write_json(run_paths.manifest_path, {
        "run_id": run_paths.run_id,
        "run_name": args.name,
        "created_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "input_build": str(copied_build),
        "settings": settings.to_dict(),
        "artifacts": {
            "schedule": str(run_paths.schedule_path),
            "layer_log": str(run_paths.layer_log_path),
            "metrics": str(run_paths.metrics_path),
            "summary": str(run_paths.summary_path),
        },
    })
    update_latest_pointer(args.runs_dir, run_paths.run_dir)

    print(f"Run ID: {run_paths.run_id}")
    print(f"Run dir: {run_paths.run_dir}")
    print(f"Ordering: {settings.layer_ordering.value}")
    print(f"Parts: {len(build.parts)}")
    print(f"Global layers: {len(global_layers)}")
    print(f"Violations: {len(violations)}")
    print(f"Schedule: {run_paths.schedule_path}")
    return 0 if not violations else 1


if __name__ == "__main__":
    raise SystemExit(main())
