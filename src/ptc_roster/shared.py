"""ptc_roster.shared

Shared utilities used by the registration and class import modes.
Includes the batch-level exceptions, RunCounters, header normalization
and report-writing support.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ImportFormatError(ValueError):
    """Raised when an import feed is missing a column or has a malformed row.

    Fatal for the whole batch: nothing from the feed is persisted.
    """


class BatchRejectedError(Exception):
    """Raised when a batch fails a sanity check before any mutation is staged."""


class StoreConflictError(Exception):
    """Raised when a staged mutation no longer matches the stored record."""


# ---------------------------------------------------------------------------
# RunCounters
# ---------------------------------------------------------------------------

@dataclass
class RunCounters:
    participants_read: int = 0
    participants_inserted: int = 0
    participants_updated: int = 0
    participants_deleted: int = 0
    classes_read: int = 0
    classes_inserted: int = 0
    classes_updated: int = 0
    classes_deleted: int = 0
    suggested_schedules_read: int = 0
    mutations: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "participants_read": self.participants_read,
            "participants_inserted": self.participants_inserted,
            "participants_updated": self.participants_updated,
            "participants_deleted": self.participants_deleted,
            "classes_read": self.classes_read,
            "classes_inserted": self.classes_inserted,
            "classes_updated": self.classes_updated,
            "classes_deleted": self.classes_deleted,
            "suggested_schedules_read": self.suggested_schedules_read,
            "mutations": self.mutations,
        }


# ---------------------------------------------------------------------------
# Header normalization
# ---------------------------------------------------------------------------

def normalize_headers(raw: dict[str, str | None]) -> dict[str, str | None]:
    """Return a new dict with header keys whitespace-stripped."""
    return {k.strip(): v for k, v in raw.items() if k is not None}


def missing_headers(fieldnames: list[str] | None, required: list[str]) -> list[str]:
    """Return the required column names absent from fieldnames, in required order."""
    present = {name.strip() for name in fieldnames or []}
    return [name for name in required if name not in present]


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

def join_comma(names: list[str], limit: int) -> str:
    """Join names with ", ", collapsing the tail past limit into "and N more"."""
    if len(names) <= limit:
        return ", ".join(names)
    return f"{', '.join(names[:limit - 1])} and {len(names) - limit + 1} more"


# ---------------------------------------------------------------------------
# Report writer
# ---------------------------------------------------------------------------

def write_run_report(
    run_id: str,
    started_at: str,
    mode: str,
    dry_run: bool,
    source_paths: dict[str, str],
    counters: RunCounters,
) -> Path:
    report = {
        "run_id": run_id,
        "mode": mode,
        "started_at": started_at,
        "finished_at": datetime.utcnow().isoformat(),
        "dry_run": dry_run,
        **source_paths,
        "counters": counters.to_dict(),
    }
    report_path = Path(f"./artifacts/reports/{run_id}.json")
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report, indent=2, default=str))
    return report_path
