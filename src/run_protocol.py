"""Run folders for scheduling runs: input copy, artifacts, metrics, summary."""

from __future__ import annotations

import json
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class RunPaths:
    run_id: str
    run_dir: Path
    input_dir: Path
    artifacts_dir: Path
    schedule_path: Path
    layer_log_path: Path
    manifest_path: Path
    metrics_path: Path
    summary_path: Path


def slugify(value: str) -> str:
    value = re.sub(r"[^a-z0-9]+", "-", value.strip().lower())
    return value.strip("-") or "run"


def create_run_id(run_name: str, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d_%H%M%S")
    return f"{stamp}_{slugify(run_name)}"


def prepare_run_dir(runs_root: str | Path, run_name: str) -> RunPaths:
    run_id = create_run_id(run_name)
    run_dir = Path(runs_root) / run_id
    # Two runs started in the same second get a numeric suffix
    suffix = 1
    while run_dir.exists():
        suffix += 1
        run_dir = Path(runs_root) / f"{run_id}_{suffix}"
    run_id = run_dir.name

    input_dir = run_dir / "input"
    artifacts_dir = run_dir / "artifacts"
    input_dir.mkdir(parents=True, exist_ok=True)
    artifacts_dir.mkdir(parents=True, exist_ok=True)

    return RunPaths(
        run_id=run_id,
        run_dir=run_dir,
        input_dir=input_dir,
        artifacts_dir=artifacts_dir,
        schedule_path=artifacts_dir / "schedule.json",
        layer_log_path=artifacts_dir / "global_layers_log.txt",
        manifest_path=run_dir / "manifest.json",
        metrics_path=run_dir / "metrics.json",
        summary_path=run_dir / "summary.md",
    )


def copy_input_file(source: str | Path, input_dir: Path) -> Path:
    src = Path(source)
    dst = input_dir / src.name
    if src.resolve() != dst.resolve():
        shutil.copy2(src, dst)
    return dst


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def update_latest_pointer(runs_root: str | Path, run_dir: Path) -> None:
    """Point ``<runs_root>/latest`` at ``run_dir``."""
    runs_path = Path(runs_root)
    latest = runs_path / "latest"

    if latest.is_symlink() or latest.is_file():
        latest.unlink()
    elif latest.exists():
        shutil.rmtree(latest)

    try:
        latest.symlink_to(os.path.relpath(run_dir, runs_path))
    except OSError:
        # No symlinks on this filesystem
        latest.mkdir(parents=True, exist_ok=True)
        (latest / "latest_run.txt").write_text(run_dir.name, encoding="utf-8")
