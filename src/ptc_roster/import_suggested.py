"""ptc_roster.import_suggested

Suggested schedules tab of the planning spreadsheet (CSV export) →
SuggestedSchedule list.

The tab has no header row.  Each schedule row is:

    program name, schedule name, number, elective, number, elective, ...

Rows whose first cell is not a known program name are skipped.  The whole
list is stored as one document and replaced on every import.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import IO

from ptc_roster.conference_config import MISC_KIND
from ptc_roster.model import Program, SuggestedClass, SuggestedSchedule
from ptc_roster.shared import ImportFormatError
from ptc_roster.store import RecordStore

SUGGESTED_SCHEDULES_KEY = "suggested_schedules"

PROGRAM_NAMES: dict[str, Program] = {
    "Cub Scouts": Program.CUB,
    "Scouts BSA": Program.BSA,
    "Venturing": Program.VENTURING,
    "Sea Scouts": Program.SEA,
    "Commissioner": Program.COMMISSIONER,
    "Youth": Program.YOUTH,
}

_TRUE = {"1", "t", "T", "true", "TRUE", "True"}


def parse_suggested_schedules(fh: IO[str]) -> list[SuggestedSchedule]:
    """Parse the suggested schedules tab.

    Raises:
        ImportFormatError: a class number cell is not an integer.
    """
    result: list[SuggestedSchedule] = []
    for row_no, row in enumerate(csv.reader(fh), start=1):
        if len(row) < 3:
            continue
        program = PROGRAM_NAMES.get(row[0])
        if program is None:
            continue
        ss = SuggestedSchedule(program=program, name=row[1])
        for col in range(2, len(row), 2):
            cell = row[col].strip()
            if not cell:
                continue
            try:
                number = int(cell)
            except ValueError as exc:
                raise ImportFormatError(
                    f"could not parse class number {row[col]!r} in row {row_no}, column {col + 1}"
                ) from exc
            elective = col + 1 < len(row) and row[col + 1].strip() in _TRUE
            ss.classes.append(SuggestedClass(number=number, elective=elective))
        result.append(ss)
    return result


def read_suggested_schedules(path: Path) -> list[SuggestedSchedule]:
    with path.open(encoding="utf-8-sig", newline="") as fh:
        return parse_suggested_schedules(fh)


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

def save_suggested_schedules(store: RecordStore, schedules: list[SuggestedSchedule]) -> None:
    with store.transaction() as tx:
        tx.put(MISC_KIND, SUGGESTED_SCHEDULES_KEY, {"schedules": [ss.to_doc() for ss in schedules]})


def get_suggested_schedules(store: RecordStore, program: Program | None = None) -> list[SuggestedSchedule]:
    """Stored schedules in sheet order, optionally only those for program."""
    with store.transaction() as tx:
        doc = tx.get(MISC_KIND, SUGGESTED_SCHEDULES_KEY)
    if doc is None:
        return []
    schedules = [SuggestedSchedule.from_doc(d) for d in doc.get("schedules") or []]
    if program is not None:
        schedules = [ss for ss in schedules if ss.program is program]
    return schedules
