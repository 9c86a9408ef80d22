"""Serialization of run results for ``--summary-export``."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

    from reviewload.metrics.models import MetricSnapshot, RunResult


def _snapshot_to_dict(snapshot: MetricSnapshot) -> dict[str, Any]:
    data = asdict(snapshot)
    # JSON object keys must be strings
    data["status_counts"] = {str(code): count for code, count in snapshot.status_counts.items()}
    return data


def result_to_dict(result: RunResult, *, include_snapshots: bool = False) -> dict[str, Any]:
    """Convert a RunResult to a JSON-serializable dictionary.

    Args:
        result: Completed run result.
        include_snapshots: Also include the per-tick snapshot series.

    Returns:
        Dictionary with run metadata, the final summary and optionally the
        snapshot series.
    """
    data: dict[str, Any] = {
        "script": result.script_name,
        "pattern": result.pattern_description,
        "duration_seconds": result.duration_seconds,
        "summary": (
            _snapshot_to_dict(result.final_summary) if result.final_summary is not None else None
        ),
    }
    if include_snapshots:
        data["snapshots"] = [_snapshot_to_dict(s) for s in result.snapshots]
    return data


def write_summary_json(
    result: RunResult,
    path: Path,
    *,
    include_snapshots: bool = False,
) -> None:
    """Write the run summary as pretty-printed JSON to *path*.

    Parent directories are created when missing.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = result_to_dict(result, include_snapshots=include_snapshots)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
