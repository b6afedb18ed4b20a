"""ptc_roster.fields

Field ownership tables for the record kinds synchronized from external
feeds, and the generic routines driven by them.

Every stored field of a record kind is listed with its owner:

  FEED   : authoritative value comes from the import; overwritten on merge
           and included in the import hash.
  LOCAL  : maintained inside the system; never touched by an import.

Fields not listed (id, import_hash, print_form, login_code) are managed by
the reconciler itself.

Changing the set of FEED fields of a kind requires a new salt so that every
stored import hash is invalidated on the next import.
"""

from __future__ import annotations

import copy
import hashlib
import json
from dataclasses import dataclass
from typing import Any, Callable

from ptc_roster.model import Class, Participant

FEED = "feed"
LOCAL = "local"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    owner: str
    # Participant fields printed on the schedule form.
    printed: bool = False


@dataclass(frozen=True)
class RecordKind:
    name: str
    fields: tuple[FieldSpec, ...]
    salt: str
    key_of: Callable[[Any], str]
    from_doc: Callable[[str, dict[str, Any]], Any]

    @property
    def feed_fields(self) -> tuple[str, ...]:
        return tuple(sorted(f.name for f in self.fields if f.owner == FEED))

    @property
    def local_fields(self) -> tuple[str, ...]:
        return tuple(sorted(f.name for f in self.fields if f.owner == LOCAL))

    @property
    def print_fields(self) -> tuple[str, ...]:
        return tuple(sorted(f.name for f in self.fields if f.printed))


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def participant_id(p: Participant) -> str:
    """Return the storage key for a participant.

    A sha256 over the lower-cased, NUL-joined (last name, first name,
    suffix, registration number).  Other fields do not contribute, so the
    same person resolves to the same key on every import.
    """
    parts = (p.last_name, p.first_name, p.suffix, p.registration_number)
    key = "\x00".join(parts).lower()
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def class_key(c: Class) -> str:
    return str(c.number)


# ---------------------------------------------------------------------------
# Ownership tables
# ---------------------------------------------------------------------------

PARTICIPANT = RecordKind(
    name="participant",
    fields=(
        FieldSpec("registration_number", FEED),
        FieldSpec("registered_by_name", FEED),
        FieldSpec("registered_by_email", FEED),
        FieldSpec("registered_by_phone", FEED),
        FieldSpec("first_name", FEED, printed=True),
        FieldSpec("last_name", FEED, printed=True),
        FieldSpec("nickname", FEED, printed=True),
        FieldSpec("suffix", FEED, printed=True),
        FieldSpec("staff", FEED),
        FieldSpec("youth", FEED),
        FieldSpec("phone", FEED),
        FieldSpec("email", FEED),
        FieldSpec("address", FEED),
        FieldSpec("city", FEED),
        FieldSpec("state", FEED),
        FieldSpec("zip", FEED),
        FieldSpec("staff_role", FEED),
        FieldSpec("council", FEED),
        FieldSpec("district", FEED),
        FieldSpec("unit_type", FEED),
        FieldSpec("unit_number", FEED),
        FieldSpec("dietary_restrictions", FEED),
        FieldSpec("marketing", FEED),
        FieldSpec("scouting_years", FEED),
        FieldSpec("show_qr_code", FEED),
        FieldSpec("bsa_number", FEED),
        FieldSpec("classes", FEED, printed=True),
        FieldSpec("staff_description", FEED),
        FieldSpec("oa_banquet", FEED, printed=True),
        FieldSpec("instructor_classes", LOCAL, printed=True),
        FieldSpec("notes", LOCAL),
        FieldSpec("no_show", LOCAL),
    ),
    salt="participant-import-v1",
    key_of=participant_id,
    from_doc=Participant.from_doc,
)

CLASS = RecordKind(
    name="class",
    fields=(
        FieldSpec("number", FEED),
        FieldSpec("length", FEED),
        FieldSpec("responsibility", FEED),
        FieldSpec("new", FEED),
        FieldSpec("title", FEED),
        FieldSpec("title_note", FEED),
        FieldSpec("description", FEED),
        FieldSpec("programs", FEED),
        FieldSpec("capacity", FEED),
        FieldSpec("location", FEED),
        FieldSpec("spreadsheet_row", FEED),
        FieldSpec("access_token", FEED),
        FieldSpec("instructor_names", FEED),
        FieldSpec("instructor_emails", FEED),
        FieldSpec("evaluation_codes", FEED),
    ),
    salt="class-import-v1",
    key_of=class_key,
    from_doc=Class.from_doc,
)


# ---------------------------------------------------------------------------
# Generic routines
# ---------------------------------------------------------------------------

def _canonical(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(_canonical(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if hasattr(value, "code"):
        return value.code
    if hasattr(value, "__dataclass_fields__"):
        return {k: _canonical(v) for k, v in sorted(value.__dict__.items())}
    return value


def import_hash(kind: RecordKind, record: Any) -> str:
    """Hash the feed-owned fields of record.

    Fields are visited in name order and each value is JSON encoded, so the
    result does not depend on declaration order.
    """
    h = hashlib.sha256()
    h.update(kind.salt.encode("utf-8"))
    for name in kind.feed_fields:
        value = json.dumps(_canonical(getattr(record, name)), sort_keys=True, separators=(",", ":"))
        h.update(b"\x00")
        h.update(name.encode("utf-8"))
        h.update(b"=")
        h.update(value.encode("utf-8"))
    return h.hexdigest()


def copy_import_fields(kind: RecordKind, src: Any, dst: Any) -> None:
    """Copy the feed-owned fields of src onto dst, leaving local fields alone."""
    for name in kind.feed_fields:
        setattr(dst, name, copy.copy(getattr(src, name)))


def equal_import_fields(kind: RecordKind, a: Any, b: Any) -> bool:
    return all(
        _canonical(getattr(a, name)) == _canonical(getattr(b, name))
        for name in kind.feed_fields
    )


def equal_print_fields(a: Participant, b: Participant) -> bool:
    """Compare the feed-owned print fields of two participants.

    Local print fields (instructor classes) are absent from imported
    records and are compared by their own writers.
    """
    feed = set(PARTICIPANT.feed_fields)
    return all(
        _canonical(getattr(a, name)) == _canonical(getattr(b, name))
        for name in PARTICIPANT.print_fields
        if name in feed
    )
