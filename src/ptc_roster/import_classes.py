"""ptc_roster.import_classes

Planning spreadsheet (CSV export) → Class batch.

Only rows whose ``number`` cell is a three digit class number are classes;
everything else in the sheet (section headings, notes, the OA banquet row)
is skipped.
"""

from __future__ import annotations

import csv
import re
from pathlib import Path
from typing import IO, Callable

from ptc_roster.model import NUM_SESSION, OA_BANQUET_CLASS_NUMBER, Class, Program
from ptc_roster.normalize import collapse_cell, split_comma, split_instructors, split_list
from ptc_roster.shared import ImportFormatError, missing_headers, normalize_headers

_CLASS_NUMBER_RE = re.compile(r"^\s*\d\d\d\s*$")


def _parse_int(value: str) -> int:
    if not value:
        return 0
    return int(value)


def _set_capacity(c: Class, value: str) -> None:
    # Smallest non-zero of the requested and location capacities.
    if not value:
        return
    v = int(value)
    if v == 0:
        return
    if c.capacity == 0 or v < c.capacity:
        c.capacity = v


def _program_setter(program: Program) -> Callable[[Class, str], None]:
    def set_program(c: Class, value: str) -> None:
        if value:
            c.programs = c.programs | {program}
    return set_program


def _attr_setter(attr: str, parse: Callable[[str], object] = str) -> Callable[[Class, str], None]:
    def set_attr(c: Class, value: str) -> None:
        setattr(c, attr, parse(value))
    return set_attr


SETTERS: list[tuple[str, Callable[[Class, str], None]]] = [
    ("number", _attr_setter("number", _parse_int)),
    ("length", _attr_setter("length", _parse_int)),
    ("responsibility", _attr_setter("responsibility")),
    ("new", _attr_setter("new")),
    ("title", _attr_setter("title")),
    ("titleNote", _attr_setter("title_note")),
    ("description", _attr_setter("description")),
    ("location", _attr_setter("location")),
    ("instructorNames", _attr_setter("instructor_names", split_instructors)),
    ("instructorEmails", _attr_setter("instructor_emails", lambda s: split_list(s.lower()))),
    ("evaluationCodes", _attr_setter("evaluation_codes", split_comma)),
    ("accessToken", _attr_setter("access_token")),
] + [
    (p.code, _program_setter(p)) for p in Program
] + [
    ("requestedCapacity", _set_capacity),
    ("locationCapacity", _set_capacity),
]

REQUIRED_HEADERS: list[str] = [name for name, _ in SETTERS]


def parse_class_sheet(fh: IO[str]) -> list[Class]:
    """Parse the planning sheet export.

    Raises:
        ImportFormatError: a required column is missing, a numeric cell does
            not parse, or a class does not fit in the session grid.
    """
    reader = csv.DictReader(fh)
    missing = missing_headers(reader.fieldnames, REQUIRED_HEADERS)
    if missing:
        raise ImportFormatError(f"could not find column {missing[0]!r} in sheet")

    result: list[Class] = []
    for row_no, raw_row in enumerate(reader, start=2):
        row = normalize_headers(raw_row)
        number = row.get("number") or ""
        if not _CLASS_NUMBER_RE.match(number) or int(number) == OA_BANQUET_CLASS_NUMBER:
            continue

        c = Class(spreadsheet_row=row_no)
        for name, setter in SETTERS:
            value = row.get(name)
            if value is None:
                continue
            try:
                setter(c, collapse_cell(value))
            except ValueError as exc:
                raise ImportFormatError(f"sheet ({row_no}, {name}): {exc}") from exc

        start, end = c.start_end()
        if start >= NUM_SESSION or end >= NUM_SESSION or end < start:
            raise ImportFormatError(f"class {c.number} has bad number or length ({c.length})")
        result.append(c)
    return result


def read_class_sheet(path: Path) -> list[Class]:
    with path.open(encoding="utf-8-sig", newline="") as fh:
        return parse_class_sheet(fh)
