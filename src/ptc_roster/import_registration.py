"""ptc_roster.import_registration

Registration export → Participant batch.

The export has one row per registered event.  A participant's conference
registration row ("... Program and Training Conference") is followed by
one row per class, whose event name starts with the three digit class
number ("301: Knots and Lashings").

Any structural problem (missing column, short row, class row before the
first registration row, unrecognized event) is fatal for the whole batch;
the reconciler relies on receiving the complete registration list.
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

import requests

from ptc_roster.model import NO_CLASS_NUMBER, OA_BANQUET_CLASS_NUMBER, Participant
from ptc_roster.normalize import (
    has_parenthetical,
    normalize_email,
    strip_parenthetical,
    title_case,
    title_case_like,
    unit_number_digits,
)
from ptc_roster.shared import ImportFormatError, missing_headers, normalize_headers

HOME_COUNCIL = "Chief Seattle"
CONFERENCE_EVENT_SUFFIX = "Program and Training Conference"
EVENT_COLUMN = "Event Name"

# Administrative titles typed into the suffix field.
REMOVED_SUFFIXES = frozenset({"MBA", "Esq."})

_CLASS_EVENT_RE = re.compile(r"^(\d\d\d):")
_MIDDLE_INITIAL_RE = re.compile(r"^ [A-Za-z]$")

# Column → Participant attribute.
PARTICIPANT_COLUMNS: list[tuple[str, str]] = [
    ("Registration Number", "registration_number"),
    ("Registered By Email", "registered_by_email"),
    ("Registered By Phone", "registered_by_phone"),
    ("First Name", "first_name"),
    ("Last Name", "last_name"),
    ("Suffix", "suffix"),
    ("Generic 1", "bsa_number"),
    ("Telephone", "phone"),
    ("Email", "email"),
    ("Address", "address"),
    ("City", "city"),
    ("State", "state"),
    ("Postal Code", "zip"),
    ("Council", "council"),
    ("District", "district"),
    ("Unit Type", "unit_type"),
    ("Unit Number", "unit_number"),
    ("Staff role", "staff_role"),
    ("Nickname for PTC name badge", "nickname"),
    ("How many years have you been in scouting?", "scouting_years"),
]

# Column → _Draft attribute (consumed by clean_participant).
DRAFT_COLUMNS: list[tuple[str, str]] = [
    ("Registered By First Name", "registered_by_first_name"),
    ("Registered By Last Name", "registered_by_last_name"),
    ("Type", "registration_type"),
    ("Which classes are you teaching?", "instructor_description"),
    ("Which organization are you representing on the midway?", "midway_description"),
]

QR_CODE_COLUMN = "Print QR code on PTC name badge?"

# Processed in this order: Vegan must come before Vegetarian.
DIETARY_COLUMNS: list[str] = [
    "Do you have any meal requirements?:Vegan",
    "Do you have any meal requirements?:Vegetarian",
    "Do you have any meal requirements?:Gluten Free",
]

# The free-text "other" column must stay last.
MARKETING_COLUMNS: list[str] = [
    "How did you hear about the PTC?:Roundtable/District",
    "How did you hear about the PTC?:eTotem",
    "How did you hear about the PTC?:Council website",
    "How did you hear about the PTC?:Attended before",
    "How did you hear about the PTC?:Wood Badge",
    "What other ways did you hear about the PTC?",
]

REQUIRED_HEADERS: list[str] = (
    [c for c, _ in PARTICIPANT_COLUMNS]
    + [c for c, _ in DRAFT_COLUMNS]
    + [QR_CODE_COLUMN]
    + DIETARY_COLUMNS
    + MARKETING_COLUMNS
    + [EVENT_COLUMN]
)


class RegistrationFetchError(Exception):
    """Raised when the registration export cannot be downloaded."""


@dataclass
class _Draft:
    p: Participant = field(default_factory=Participant)
    registered_by_first_name: str = ""
    registered_by_last_name: str = ""
    registration_type: str = ""
    instructor_description: str = ""
    midway_description: str = ""


# ---------------------------------------------------------------------------
# Accumulating columns
# ---------------------------------------------------------------------------

def _option_label(column: str) -> str:
    """"Question?:Option" → "Option"; a column without an option is its own label."""
    _, sep, option = column.rpartition(":")
    return option if sep else column


def _append(acc: str, value: str) -> str:
    if not acc:
        return value
    return f"{acc}; {value}"


def add_dietary_restriction(acc: str, column: str, value: str) -> str:
    """Fold one meal-requirement checkbox into the accumulated restrictions.

    A checked Vegetarian box is dropped when Vegan is already recorded.
    """
    if not value:
        return acc
    label = _option_label(column)
    if label == "Vegetarian" and "Vegan" in acc.split("; "):
        return acc
    return _append(acc, label)


def add_marketing(acc: str, column: str, value: str) -> str:
    """Fold one marketing column into the accumulated sources.

    Checkbox columns contribute their option label, the free-text column its
    value.  Embedded ';' is replaced so the join stays unambiguous.
    """
    if not value:
        return acc
    label = _option_label(column) if ":" in column else value
    return _append(acc, label.replace(";", " "))


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------

def clean_nickname(nickname: str, first_name: str, last_name: str) -> str:
    """Drop badge nicknames that add nothing to the first name.

    "Bob" for Bob → "", "Bobby Smith" for Bob Smith → "Bobby",
    "Bob J Smith" for Bob Smith → "".
    """
    if not nickname:
        return ""
    if nickname.lower() == first_name.lower():
        return ""
    tail = " " + last_name
    if last_name and nickname.endswith(tail) and len(nickname) > len(tail):
        nickname = nickname[: -len(tail)]
        rest = nickname[len(first_name):]
        if nickname.startswith(first_name) and (not rest or _MIDDLE_INITIAL_RE.match(rest)):
            return ""
    return nickname


def clean_participant(d: _Draft, home_council: str = HOME_COUNCIL) -> Participant:
    p = d.p
    p.first_name = title_case_like(p.first_name, d.registered_by_first_name)
    p.last_name = title_case_like(p.last_name, d.registered_by_last_name)
    p.nickname = clean_nickname(title_case(p.nickname), p.first_name, p.last_name)
    p.registered_by_name = f"{d.registered_by_first_name} {d.registered_by_last_name}".strip()

    if p.suffix in REMOVED_SUFFIXES:
        p.suffix = ""

    p.city = title_case(p.city)
    p.email = normalize_email(p.email)
    p.registered_by_email = normalize_email(p.registered_by_email)
    p.unit_number = unit_number_digits(p.unit_number)

    if has_parenthetical(p.district):
        p.district = strip_parenthetical(p.district)
    elif p.district != "Council":
        p.district = ""

    p.youth = "Youth" in d.registration_type
    p.staff = "Staff" in d.registration_type
    if p.staff:
        p.staff_role = strip_parenthetical(p.staff_role)
    else:
        p.staff_role = ""

    if p.council == "Other":
        p.council = ""
    if p.council != home_council:
        p.district = ""

    if p.unit_type in ("Council", "District"):
        p.unit_number = ""

    if p.staff_role == "Midway":
        p.staff_description = d.midway_description
    elif p.staff_role == "Instructor":
        p.staff_description = d.instructor_description

    # "Cub Pack" → "Pack"
    p.unit_type = p.unit_type.rsplit(" ", 1)[-1]
    return p


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _draft_from_row(row: dict[str, str]) -> _Draft:
    d = _Draft()
    for column, attr in PARTICIPANT_COLUMNS:
        setattr(d.p, attr, row[column])
    for column, attr in DRAFT_COLUMNS:
        setattr(d, attr, row[column])
    d.p.show_qr_code = row[QR_CODE_COLUMN] == "Yes"
    for column in DIETARY_COLUMNS:
        d.p.dietary_restrictions = add_dietary_restriction(d.p.dietary_restrictions, column, row[column])
    for column in MARKETING_COLUMNS:
        d.p.marketing = add_marketing(d.p.marketing, column, row[column])
    return d


def parse_registration_csv(fh: IO[str], home_council: str = HOME_COUNCIL) -> list[Participant]:
    """Parse a registration export into cleaned participants.

    Raises:
        ImportFormatError: a required column is missing or a row is malformed.
    """
    reader = csv.DictReader(fh)
    missing = missing_headers(reader.fieldnames, REQUIRED_HEADERS)
    if missing:
        raise ImportFormatError(f"could not find column {missing[0]!r} in export file")

    participants: list[Participant] = []
    current: Participant | None = None
    for line_no, raw_row in enumerate(reader, start=2):
        row = normalize_headers(raw_row)
        if any(row.get(column) is None for column in REQUIRED_HEADERS):
            raise ImportFormatError(f"short row at line {line_no}")
        row = {k: v.strip() for k, v in row.items() if v is not None}

        event = row[EVENT_COLUMN]
        m = _CLASS_EVENT_RE.match(event)
        if m:
            if current is None:
                raise ImportFormatError(f"class row before conference registration row at line {line_no}")
            n = int(m.group(1))
            if n == OA_BANQUET_CLASS_NUMBER:
                current.oa_banquet = True
            elif n != NO_CLASS_NUMBER:
                current.classes.append(n)
        elif event.endswith(CONFERENCE_EVENT_SUFFIX):
            current = clean_participant(_draft_from_row(row), home_council)
            participants.append(current)
        else:
            raise ImportFormatError(f"unrecognized event {event!r} at line {line_no}")

    for p in participants:
        p.classes.sort()
    return participants


def read_registration_csv(path: Path, home_council: str = HOME_COUNCIL) -> list[Participant]:
    with path.open(encoding="utf-8-sig", newline="") as fh:
        return parse_registration_csv(fh, home_council)


def fetch_registration_csv(
    url: str,
    headers: dict[str, str] | None = None,
    home_council: str = HOME_COUNCIL,
    timeout: int = 30,
) -> list[Participant]:
    """Download the registration export and parse it."""
    try:
        resp = requests.get(url, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise RegistrationFetchError(f"error fetching {url}: {exc}") from exc
    if resp.status_code != 200:
        raise RegistrationFetchError(f"error fetching {url}: HTTP {resp.status_code} {resp.reason}")
    text = resp.content.decode("utf-8-sig")
    return parse_registration_csv(io.StringIO(text, newline=""), home_council)
