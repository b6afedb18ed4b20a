"""Unit tests for ptc_roster.fields."""

from __future__ import annotations

import dataclasses

from ptc_roster.fields import (
    CLASS,
    FEED,
    LOCAL,
    PARTICIPANT,
    RecordKind,
    copy_import_fields,
    equal_import_fields,
    equal_print_fields,
    import_hash,
    participant_id,
)
from ptc_roster.model import Class, InstructorClass, Participant, Program


def _participant(**kw) -> Participant:
    base = dict(last_name="Jones", first_name="Pat", registration_number="R100", email="pat@example.org")
    base.update(kw)
    return Participant(**base)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

class TestParticipantId:
    def test_stable_across_other_fields(self):
        a = _participant(email="a@example.org", classes=[101], city="Seattle")
        b = _participant(email="b@example.org", classes=[202], staff=True)
        assert participant_id(a) == participant_id(b)

    def test_case_insensitive(self):
        assert participant_id(_participant(last_name="JONES")) == participant_id(_participant())

    def test_youth_not_part_of_identity(self):
        assert participant_id(_participant(youth=True)) == participant_id(_participant())

    def test_identity_fields_distinguish(self):
        base = participant_id(_participant())
        assert participant_id(_participant(registration_number="R101")) != base
        assert participant_id(_participant(suffix="Jr.")) != base
        assert participant_id(_participant(first_name="Sam")) != base

    def test_no_separator_collisions(self):
        a = _participant(last_name="ab", first_name="c")
        b = _participant(last_name="a", first_name="bc")
        assert participant_id(a) != participant_id(b)


# ---------------------------------------------------------------------------
# Ownership tables
# ---------------------------------------------------------------------------

class TestOwnership:
    def test_every_participant_field_classified(self):
        managed = {"id", "import_hash", "print_form", "login_code"}
        declared = {f.name for f in PARTICIPANT.fields}
        assert declared | managed == {f.name for f in dataclasses.fields(Participant)}

    def test_every_class_field_classified(self):
        declared = {f.name for f in CLASS.fields}
        assert declared | {"import_hash"} == {f.name for f in dataclasses.fields(Class)}

    def test_local_fields(self):
        assert PARTICIPANT.local_fields == ("instructor_classes", "no_show", "notes")
        assert CLASS.local_fields == ()


# ---------------------------------------------------------------------------
# Change detection
# ---------------------------------------------------------------------------

class TestImportHash:
    def test_local_fields_not_hashed(self):
        a = _participant()
        b = _participant(notes="late", no_show=True, instructor_classes=[InstructorClass(1, 201)])
        assert import_hash(PARTICIPANT, a) == import_hash(PARTICIPANT, b)

    def test_managed_fields_not_hashed(self):
        a = _participant()
        b = _participant(login_code="123456", print_form=True, id="x")
        assert import_hash(PARTICIPANT, a) == import_hash(PARTICIPANT, b)

    def test_feed_change_detected(self):
        assert import_hash(PARTICIPANT, _participant()) != import_hash(PARTICIPANT, _participant(phone="555"))

    def test_independent_of_declaration_order(self):
        reordered = RecordKind(
            name=CLASS.name,
            fields=tuple(reversed(CLASS.fields)),
            salt=CLASS.salt,
            key_of=CLASS.key_of,
            from_doc=CLASS.from_doc,
        )
        c = Class(number=301, length=2, programs=frozenset({Program.SEA, Program.CUB}))
        assert import_hash(reordered, c) == import_hash(CLASS, c)

    def test_salt_changes_hash(self):
        resalted = dataclasses.replace(CLASS, salt="class-import-v2")
        c = Class(number=301, length=2)
        assert import_hash(resalted, c) != import_hash(CLASS, c)

    def test_survives_store_roundtrip(self):
        c = Class(number=301, length=2, programs=frozenset({Program.BSA}), evaluation_codes=["a", "b"])
        restored = Class.from_doc("301", c.to_doc())
        assert import_hash(CLASS, restored) == import_hash(CLASS, c)


class TestMerge:
    def test_copy_import_fields_keeps_local(self):
        incoming = _participant(phone="555", classes=[101])
        stored = _participant(notes="vip", no_show=True, login_code="111111")
        copy_import_fields(PARTICIPANT, incoming, stored)
        assert stored.phone == "555"
        assert stored.classes == [101]
        assert (stored.notes, stored.no_show, stored.login_code) == ("vip", True, "111111")
        assert equal_import_fields(PARTICIPANT, incoming, stored)

    def test_copied_lists_not_shared(self):
        incoming = _participant(classes=[101])
        stored = _participant()
        copy_import_fields(PARTICIPANT, incoming, stored)
        incoming.classes.append(201)
        assert stored.classes == [101]

    def test_print_fields(self):
        assert equal_print_fields(_participant(), _participant(phone="555"))
        assert not equal_print_fields(_participant(), _participant(nickname="Skip"))
        assert not equal_print_fields(_participant(), _participant(classes=[101]))

    def test_print_fields_ignore_local(self):
        stored = _participant(instructor_classes=[InstructorClass(1, 201)])
        assert equal_print_fields(_participant(), stored)

    def test_owner_constants(self):
        assert {f.owner for f in PARTICIPANT.fields} == {FEED, LOCAL}
