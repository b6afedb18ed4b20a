"""String cleanup rules for registration export and planning sheet ingestion.

All functions accept str | None.  The trim-style rules return None for
blank input; the casing and list rules return "" / [] so their results can
be stored directly on a record.
"""

from __future__ import annotations

import re

_WS_RE = re.compile(r"[\r\n\t ]+")
_DIGITS_RE = re.compile(r"\d+")
_LIST_DELIM_RE = re.compile(r"[\t\r\n;, ]+")
_PAREN_RE = re.compile(r"\([^(]*\)")
_INSTRUCTOR_DELIM_RE = re.compile(r"[\r\n\t ]*[/,][\r\n\t ]*")
# First word character not preceded by a letter, digit or underscore.
_WORD_START_RE = re.compile(r"(?<!\w)\w")


# ---------------------------------------------------------------------------
# Rule 1: trim
# ---------------------------------------------------------------------------

def trim(value: str | None) -> str | None:
    """Strip leading/trailing whitespace; treat empty string as None."""
    if value is None:
        return None
    v = value.strip()
    return v if v else None


# ---------------------------------------------------------------------------
# Rule 2: normalize_space
# ---------------------------------------------------------------------------

def normalize_space(value: str | None) -> str | None:
    """Collapse internal runs of whitespace to single spaces, then trim."""
    v = trim(value)
    if v is None:
        return None
    return _WS_RE.sub(" ", v)


# ---------------------------------------------------------------------------
# Rule 3: normalize_email
# ---------------------------------------------------------------------------

def normalize_email(value: str | None) -> str:
    """Lowercase and trim an email address.  Blank → ""."""
    v = trim(value)
    if v is None:
        return ""
    return v.lower()


# ---------------------------------------------------------------------------
# Rule 4: title casing
# ---------------------------------------------------------------------------

def capitalize_words(value: str) -> str:
    """Upper-case the first letter of each word.

    Digits belong to the word, so "3rd ave" → "3rd Ave".
    """
    return _WORD_START_RE.sub(lambda m: m.group(0).upper(), value)


def is_mixed_case(value: str) -> bool:
    """True when value is neither fully lower nor fully upper case."""
    return value != value.lower() and value != value.upper()


def title_case(value: str | None) -> str:
    """Keep a mixed-case value verbatim, otherwise title-case it.

    "SMITH" → "Smith", "o'brien" → "O'Brien", "McDonald" → "McDonald".
    """
    v = value or ""
    if is_mixed_case(v):
        return v
    return capitalize_words(v.lower())


def title_case_like(value: str | None, companion: str | None) -> str:
    """Like title_case, but prefer the spelling of a mixed-case companion.

    The registration export carries the name a second time as the
    "registered by" name.  When the participant's own name was typed in a
    single case and the companion matches it case-insensitively and is
    mixed case, the companion's spelling wins ("MCDONALD" + "McDonald").
    """
    v = value or ""
    if is_mixed_case(v):
        return v
    c = companion or ""
    if c.lower() == v.lower() and is_mixed_case(c):
        return c
    return capitalize_words(v.lower())


# ---------------------------------------------------------------------------
# Rule 5: parentheticals and digits
# ---------------------------------------------------------------------------

def strip_parenthetical(value: str | None) -> str:
    """Truncate at the first " (".  "Alpine (North)" → "Alpine"."""
    v = value or ""
    i = v.find(" (")
    if i > 0:
        return v[:i]
    return v


def has_parenthetical(value: str | None) -> bool:
    return (value or "").find(" (") > 0


def unit_number_digits(value: str | None) -> str:
    """First run of digits, left-zero-stripped.  "Troop 0042" → "42"."""
    m = _DIGITS_RE.search(value or "")
    if not m:
        return ""
    return m.group(0).lstrip("0")


# ---------------------------------------------------------------------------
# Rule 6: list splitting (planning sheet cells)
# ---------------------------------------------------------------------------

def collapse_cell(value: str | None) -> str:
    """Collapse whitespace runs (including newlines) to one space and trim."""
    return normalize_space(value) or ""


def split_list(value: str | None) -> list[str]:
    """Split on whitespace, ';' and ',' and return the sorted, non-empty parts."""
    return sorted(e for e in _LIST_DELIM_RE.split(value or "") if e)


def split_instructors(value: str | None) -> list[str]:
    """Split an instructor-names cell.

    Parenthetical remarks are dropped, names are separated by '/' or ','
    and returned sorted.
    """
    v = _PAREN_RE.sub(" ", value or "")
    return sorted(e.strip() for e in _INSTRUCTOR_DELIM_RE.split(v) if e.strip())


def split_comma(value: str | None) -> list[str]:
    """Split on ',' keeping order, trimming each part and dropping blanks."""
    return [part.strip() for part in (value or "").split(",") if part.strip()]
