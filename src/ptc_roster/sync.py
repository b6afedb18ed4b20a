"""ptc_roster.sync

Reconcile a full import batch against the stored records of one kind.

Each sync runs in a single store transaction:

  1. key-only scan of the kind            → existing = {key: None}
  2. projected scan of import_hash        → existing = {key: stored_hash}
  3. for each incoming record:
       key not stored            → insert the full record
       stored hash != feed hash  → read the stored record, copy only the
                                   feed-owned fields onto it, update
       hashes equal              → nothing to do
  4. keys left in existing       → delete
  5. apply every staged mutation in one batch

The batch must be the complete feed: anything missing from it is deleted.
A batch below the configured minimum size, or one that would delete more
than the configured maximum, is rejected before any mutation is applied.
Concurrent imports of the same kind are the caller's problem (run them
one at a time).
"""

from __future__ import annotations

import copy
import logging
import secrets
from dataclasses import dataclass, field
from typing import Any, Callable

from ptc_roster.fields import (
    CLASS,
    PARTICIPANT,
    RecordKind,
    copy_import_fields,
    equal_print_fields,
    import_hash,
)
from ptc_roster.model import (
    Class,
    ClassMap,
    InstructorClass,
    Participant,
    is_valid_class_number,
    new_class_map,
)
from ptc_roster.shared import BatchRejectedError, StoreConflictError, join_comma
from ptc_roster.store import DELETE, INSERT, UPDATE, Mutation, RecordStore, StoreTransaction

log = logging.getLogger(__name__)

_LOGIN_CODE_ATTEMPTS = 10000


# ---------------------------------------------------------------------------
# Limits / results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SyncLimits:
    min_batch_size: int = 1
    max_deletes: int | None = None


PARTICIPANT_LIMITS = SyncLimits(min_batch_size=1, max_deletes=20)
CLASS_LIMITS = SyncLimits(min_batch_size=20, max_deletes=None)


@dataclass
class SyncResult:
    kind: str
    inserted: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def mutation_count(self) -> int:
        return len(self.inserted) + len(self.updated) + len(self.deleted)

    def summary(self, limit: int = 5) -> str:
        parts = []
        if self.inserted:
            parts.append(f"Added {join_comma(self.inserted, limit)}")
        if self.updated:
            parts.append(f"Updated {join_comma(self.updated, limit)}")
        if self.deleted:
            parts.append(f"Deleted {len(self.deleted)}")
        return "; ".join(parts) or "No changes"


# ---------------------------------------------------------------------------
# Generic reconciler
# ---------------------------------------------------------------------------

def reconcile(
    tx: StoreTransaction,
    kind: RecordKind,
    records: list[Any],
    limits: SyncLimits,
    label: Callable[[Any], str] = str,
    prepare: Callable[[Any], None] | None = None,
    on_insert: Callable[[Any], None] | None = None,
    on_merge: Callable[[Any, Any], None] | None = None,
) -> tuple[SyncResult, list[Mutation]]:
    """Compute the mutations that bring the stored kind in line with records.

    Each record is staged as a shallow copy; the caller's objects are never
    modified.  prepare(copy) puts it in stored form before it is hashed.
    on_insert(record) runs before a new record is staged; on_merge(incoming,
    stored) runs before the feed-owned fields are copied onto the stored
    record.  Nothing is written here; the caller applies the mutations.
    """
    existing: dict[str, str | None] = {key: None for key in tx.keys(kind.name)}
    existing.update(tx.project(kind.name, "import_hash"))

    result = SyncResult(kind=kind.name)
    mutations: list[Mutation] = []
    seen: set[str] = set()

    for incoming in records:
        record = copy.copy(incoming)
        if prepare:
            prepare(record)
        key = kind.key_of(record)
        if key in seen:
            raise BatchRejectedError(f"duplicate {kind.name} {label(record)!r} in import batch")
        seen.add(key)
        h = import_hash(kind, record)

        if key not in existing:
            if isinstance(record, Participant):
                record.id = key
            record.import_hash = h
            if on_insert:
                on_insert(record)
            mutations.append(Mutation(INSERT, kind.name, key, record.to_doc()))
            result.inserted.append(label(record))
            continue

        stored_hash = existing.pop(key)
        if stored_hash == h:
            continue

        doc = tx.get(kind.name, key)
        if doc is None:
            raise StoreConflictError(f"{kind.name}/{key} disappeared during import")
        stored = kind.from_doc(key, doc)
        if on_merge:
            on_merge(record, stored)
        copy_import_fields(kind, record, stored)
        stored.import_hash = h
        mutations.append(Mutation(UPDATE, kind.name, key, stored.to_doc()))
        result.updated.append(label(record))

    if limits.max_deletes is not None and len(existing) > limits.max_deletes:
        raise BatchRejectedError(
            f"possible bad import, attempt to delete {len(existing)} {kind.name} records, "
            f"limit is {limits.max_deletes}"
        )
    for key in existing:
        mutations.append(Mutation(DELETE, kind.name, key))
        result.deleted.append(key)

    return result, mutations


def _check_batch_size(kind: RecordKind, records: list[Any], limits: SyncLimits) -> None:
    if len(records) < limits.min_batch_size:
        raise BatchRejectedError(
            f"{kind.name} import has {len(records)} records, at least "
            f"{limits.min_batch_size} expected"
        )


# ---------------------------------------------------------------------------
# Participants
# ---------------------------------------------------------------------------

def allocate_login_code(codes: set[str]) -> str:
    """Return a six digit code not already in codes, and add it to codes."""
    for _ in range(_LOGIN_CODE_ATTEMPTS):
        code = str(secrets.randbelow(900000) + 100000)
        if code in codes:
            continue
        codes.add(code)
        return code
    raise RuntimeError("could not assign login code")


def sync_participants(
    store: RecordStore,
    participants: list[Participant],
    limits: SyncLimits = PARTICIPANT_LIMITS,
    dry_run: bool = False,
) -> SyncResult:
    """Reconcile the stored participants with a full registration batch."""
    _check_batch_size(PARTICIPANT, participants, limits)

    with store.transaction() as tx:
        codes = {c for c in tx.project(PARTICIPANT.name, "login_code").values() if c}

        def prepare(p: Participant) -> None:
            p.classes = sorted(p.classes)

        def on_insert(p: Participant) -> None:
            p.login_code = allocate_login_code(codes)
            p.print_form = True

        def on_merge(incoming: Participant, stored: Participant) -> None:
            if not stored.print_form and not equal_print_fields(incoming, stored):
                stored.print_form = True

        result, mutations = reconcile(
            tx, PARTICIPANT, participants, limits,
            label=lambda p: p.last_name,
            prepare=prepare,
            on_insert=on_insert,
            on_merge=on_merge,
        )
        if mutations and not dry_run:
            tx.mutate(mutations)

    log.info("participant sync: %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Classes
# ---------------------------------------------------------------------------

def sync_classes(
    store: RecordStore,
    classes: list[Class],
    limits: SyncLimits = CLASS_LIMITS,
    dry_run: bool = False,
) -> SyncResult:
    """Reconcile the stored classes with a full planning sheet batch."""
    _check_batch_size(CLASS, classes, limits)
    for c in classes:
        if not is_valid_class_number(c.number):
            raise BatchRejectedError(f"invalid class number {c.number}")

    with store.transaction() as tx:
        result, mutations = reconcile(
            tx, CLASS, classes, limits,
            label=lambda c: str(c.number),
        )
        if mutations and not dry_run:
            tx.mutate(mutations)

    log.info("class sync: %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------

def get_participant(store: RecordStore, participant_id: str) -> Participant | None:
    with store.transaction() as tx:
        doc = tx.get(PARTICIPANT.name, participant_id)
    if doc is None:
        return None
    return Participant.from_doc(participant_id, doc)


def get_all_participants(store: RecordStore) -> list[Participant]:
    with store.transaction() as tx:
        docs = [(key, tx.get(PARTICIPANT.name, key)) for key in tx.keys(PARTICIPANT.name)]
    participants = [Participant.from_doc(key, doc) for key, doc in docs if doc is not None]
    participants.sort(key=lambda p: p.sort_key)
    return participants


def get_all_classes(store: RecordStore) -> ClassMap:
    with store.transaction() as tx:
        docs = [(key, tx.get(CLASS.name, key)) for key in tx.keys(CLASS.name)]
    return new_class_map([Class.from_doc(key, doc) for key, doc in docs if doc is not None])


def get_class_participants(store: RecordStore, class_number: int) -> list[Participant]:
    """Participants enrolled in class_number, in name order."""
    with store.transaction() as tx:
        enrolled = tx.project(PARTICIPANT.name, "classes")
        keys = [key for key, numbers in enrolled.items() if class_number in (numbers or [])]
        docs = [(key, tx.get(PARTICIPANT.name, key)) for key in keys]
    participants = [Participant.from_doc(key, doc) for key, doc in docs if doc is not None]
    participants.sort(key=lambda p: p.sort_key)
    return participants


def get_class_participant_counts(store: RecordStore) -> dict[int, int]:
    with store.transaction() as tx:
        enrolled = tx.project(PARTICIPANT.name, "classes")
    counts: dict[int, int] = {}
    for numbers in enrolled.values():
        for n in numbers or []:
            counts[int(n)] = counts.get(int(n), 0) + 1
    return counts


# ---------------------------------------------------------------------------
# Local field writers
# ---------------------------------------------------------------------------

def _update_participant(
    store: RecordStore,
    participant_id: str,
    fn: Callable[[Participant], bool],
) -> bool:
    """Read-modify-write one participant.  fn returns False for no change.

    Returns False when the participant does not exist.
    """
    with store.transaction() as tx:
        doc = tx.get(PARTICIPANT.name, participant_id)
        if doc is None:
            return False
        p = Participant.from_doc(participant_id, doc)
        if fn(p):
            tx.put(PARTICIPANT.name, participant_id, p.to_doc())
    return True


def set_instructor_classes(
    store: RecordStore,
    participant_id: str,
    classes: list[InstructorClass],
) -> bool:
    classes = sorted(classes, key=lambda ic: ic.session)

    def update(p: Participant) -> bool:
        if p.instructor_classes == classes:
            return False
        p.instructor_classes = classes
        p.print_form = True
        return True

    return _update_participant(store, participant_id, update)


def set_participant_notes(store: RecordStore, participant_id: str, notes: str) -> bool:
    def update(p: Participant) -> bool:
        p.notes = notes
        return True

    return _update_participant(store, participant_id, update)


def set_no_show(store: RecordStore, participant_id: str, no_show: bool) -> bool:
    def update(p: Participant) -> bool:
        p.no_show = no_show
        return True

    return _update_participant(store, participant_id, update)


def set_print_form(store: RecordStore, participant_ids: list[str], print_form: bool) -> int:
    """Set print_form on each participant; return how many changed."""
    changed = 0
    with store.transaction() as tx:
        for participant_id in participant_ids:
            doc = tx.get(PARTICIPANT.name, participant_id)
            if doc is None or bool(doc.get("print_form")) == print_form:
                continue
            p = Participant.from_doc(participant_id, doc)
            p.print_form = print_form
            tx.put(PARTICIPANT.name, participant_id, p.to_doc())
            changed += 1
    return changed
