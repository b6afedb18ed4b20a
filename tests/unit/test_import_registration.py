"""Unit tests for ptc_roster.import_registration."""

from __future__ import annotations

import csv
import io

import pytest
import requests

from ptc_roster import import_registration
from ptc_roster.import_registration import (
    REQUIRED_HEADERS,
    RegistrationFetchError,
    add_dietary_restriction,
    add_marketing,
    clean_nickname,
    fetch_registration_csv,
    parse_registration_csv,
)
from ptc_roster.shared import ImportFormatError

PTC = "2026 Program and Training Conference"
VEGAN = "Do you have any meal requirements?:Vegan"
VEGETARIAN = "Do you have any meal requirements?:Vegetarian"
GLUTEN_FREE = "Do you have any meal requirements?:Gluten Free"
ETOTEM = "How did you hear about the PTC?:eTotem"
WOOD_BADGE = "How did you hear about the PTC?:Wood Badge"
OTHER_MARKETING = "What other ways did you hear about the PTC?"


def _row(**overrides: str) -> dict[str, str]:
    row = {h: "" for h in REQUIRED_HEADERS}
    row.update({
        "Registration Number": "R100",
        "First Name": "Pat",
        "Last Name": "Jones",
        "Registered By First Name": "Pat",
        "Registered By Last Name": "Jones",
        "Email": "pat@example.org",
        "Registered By Email": "pat@example.org",
        "Council": "Chief Seattle",
        "Unit Type": "Troop",
        "Unit Number": "42",
        "Type": "Adult",
        "Event Name": PTC,
    })
    row.update(overrides)
    return row


def _class_row(event: str) -> dict[str, str]:
    return {h: "" for h in REQUIRED_HEADERS} | {"Event Name": event}


def _csv(rows: list[dict[str, str]], headers: list[str] = REQUIRED_HEADERS) -> io.StringIO:
    buf = io.StringIO()
    w = csv.DictWriter(buf, fieldnames=headers, extrasaction="ignore")
    w.writeheader()
    w.writerows(rows)
    buf.seek(0)
    return buf


def _parse_one(**overrides: str):
    [p] = parse_registration_csv(_csv([_row(**overrides)]))
    return p


# ---------------------------------------------------------------------------
# Row structure
# ---------------------------------------------------------------------------

class TestRowStructure:
    def test_classes_follow_registration_row(self):
        participants = parse_registration_csv(_csv([
            _row(),
            _class_row("401: Advanced Knots"),
            _class_row("101: Intro to Scouting"),
            _row(**{"Registration Number": "R101", "First Name": "Sam"}),
            _class_row("201: Camp Cooking"),
        ]))
        assert [p.first_name for p in participants] == ["Pat", "Sam"]
        assert participants[0].classes == [101, 401]
        assert participants[1].classes == [201]

    def test_banquet_and_no_class(self):
        participants = parse_registration_csv(_csv([
            _row(),
            _class_row("700: OA Banquet"),
            _class_row("999: No classes"),
        ]))
        assert participants[0].oa_banquet is True
        assert participants[0].classes == []

    def test_class_row_before_registration_is_fatal(self):
        with pytest.raises(ImportFormatError, match="before conference registration"):
            parse_registration_csv(_csv([_class_row("101: Intro"), _row()]))

    def test_unrecognized_event_is_fatal(self):
        with pytest.raises(ImportFormatError, match="unrecognized event"):
            parse_registration_csv(_csv([_row(**{"Event Name": "Summer Camp"})]))

    def test_missing_column_named(self):
        headers = [h for h in REQUIRED_HEADERS if h != "Unit Number"]
        with pytest.raises(ImportFormatError, match="Unit Number"):
            parse_registration_csv(_csv([_row()], headers))

    def test_short_row_is_fatal(self):
        buf = _csv([_row()])
        text = buf.getvalue() + "R200,only,three\n"
        with pytest.raises(ImportFormatError, match="short row at line 3"):
            parse_registration_csv(io.StringIO(text))

    def test_empty_export(self):
        assert parse_registration_csv(_csv([])) == []


# ---------------------------------------------------------------------------
# Field cleanup
# ---------------------------------------------------------------------------

class TestCleanParticipant:
    def test_name_spelling_from_registered_by(self):
        p = _parse_one(**{
            "First Name": "MARY", "Last Name": "MCDONALD",
            "Registered By First Name": "Mary", "Registered By Last Name": "McDonald",
        })
        assert (p.first_name, p.last_name) == ("Mary", "McDonald")
        assert p.registered_by_name == "Mary McDonald"

    def test_removed_suffix(self):
        assert _parse_one(Suffix="MBA").suffix == ""
        assert _parse_one(Suffix="Jr.").suffix == "Jr."

    def test_emails_lowercased(self):
        p = _parse_one(Email="Pat@Example.ORG")
        assert p.email == "pat@example.org"

    def test_city_title_cased(self):
        assert _parse_one(City="SEATTLE").city == "Seattle"

    def test_unit(self):
        p = _parse_one(**{"Unit Type": "Cub Pack", "Unit Number": "Pack 0042"})
        assert (p.unit_type, p.unit_number) == ("Pack", "42")

    def test_district_unit_has_no_number(self):
        p = _parse_one(**{"Unit Type": "District", "Unit Number": "7"})
        assert p.unit_number == ""

    def test_home_council_district_truncated(self):
        assert _parse_one(District="Alpine (North Seattle)").district == "Alpine"

    def test_council_district_kept(self):
        assert _parse_one(District="Council").district == "Council"

    def test_other_council_clears_district(self):
        p = _parse_one(Council="Mount Baker", District="Alpine (North)")
        assert p.council == "Mount Baker"
        assert p.district == ""

    def test_council_other_cleared(self):
        assert _parse_one(Council="Other").council == ""

    def test_home_council_override(self):
        [p] = parse_registration_csv(
            _csv([_row(Council="Mount Baker", District="Tulip (Skagit)")]),
            home_council="Mount Baker",
        )
        assert p.district == "Tulip"

    def test_staff_instructor(self):
        p = _parse_one(**{
            "Type": "Staff",
            "Staff role": "Instructor (teaching a class)",
            "Which classes are you teaching?": "Knots",
        })
        assert p.staff and not p.youth
        assert p.staff_role == "Instructor"
        assert p.staff_description == "Knots"
        assert p.type_label == "Staff"

    def test_staff_midway(self):
        p = _parse_one(**{
            "Type": "Staff",
            "Staff role": "Midway",
            "Which organization are you representing on the midway?": "Camp Parsons",
        })
        assert p.staff_description == "Camp Parsons"

    def test_non_staff_role_cleared(self):
        p = _parse_one(**{"Staff role": "Instructor"})
        assert p.staff_role == ""
        assert p.staff_description == ""

    def test_youth(self):
        p = _parse_one(Type="Youth")
        assert p.youth and not p.staff

    def test_qr_code(self):
        assert _parse_one(**{"Print QR code on PTC name badge?": "Yes"}).show_qr_code
        assert not _parse_one().show_qr_code


class TestNickname:
    def test_same_as_first_dropped(self):
        assert clean_nickname("Bob", "Bob", "Smith") == ""

    def test_full_name_reduced(self):
        assert clean_nickname("Bobby Smith", "Bob", "Smith") == "Bobby"

    def test_middle_initial_dropped(self):
        assert clean_nickname("Bob J Smith", "Bob", "Smith") == ""

    def test_kept(self):
        assert clean_nickname("Skip", "Robert", "Smith") == "Skip"

    def test_parsed_nickname_title_cased(self):
        p = _parse_one(**{"Nickname for PTC name badge": "SKIP"})
        assert p.nickname == "Skip"
        assert p.nickname_or_first_name == "Skip"


# ---------------------------------------------------------------------------
# Accumulating columns
# ---------------------------------------------------------------------------

class TestDietaryRestrictions:
    def test_vegan_suppresses_vegetarian(self):
        p = _parse_one(**{VEGAN: "Vegan", VEGETARIAN: "Vegetarian"})
        assert p.dietary_restrictions == "Vegan"

    def test_vegan_then_gluten_free(self):
        p = _parse_one(**{VEGAN: "Vegan", VEGETARIAN: "Vegetarian", GLUTEN_FREE: "Gluten Free"})
        assert p.dietary_restrictions == "Vegan; Gluten Free"

    def test_vegetarian_alone(self):
        assert add_dietary_restriction("", VEGETARIAN, "Vegetarian") == "Vegetarian"

    def test_blank_value_ignored(self):
        assert add_dietary_restriction("Vegan", GLUTEN_FREE, "") == "Vegan"


class TestMarketing:
    def test_checkboxes_and_other(self):
        p = _parse_one(**{ETOTEM: "eTotem", WOOD_BADGE: "Wood Badge", OTHER_MARKETING: "flyer; friend"})
        assert p.marketing == "eTotem; Wood Badge; flyer  friend"

    def test_semicolon_replaced_in_first_value(self):
        assert add_marketing("", OTHER_MARKETING, "a;b") == "a b"


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------

class _Response:
    def __init__(self, status_code: int, content: bytes = b"", reason: str = "OK") -> None:
        self.status_code = status_code
        self.content = content
        self.reason = reason


class TestFetch:
    def test_parses_download(self, monkeypatch):
        body = ("\ufeff" + _csv([_row()]).getvalue()).encode("utf-8")
        monkeypatch.setattr(import_registration.requests, "get", lambda url, headers, timeout: _Response(200, body))
        [p] = fetch_registration_csv("https://example.org/export.csv")
        assert p.registration_number == "R100"

    def test_http_error(self, monkeypatch):
        monkeypatch.setattr(
            import_registration.requests, "get",
            lambda url, headers, timeout: _Response(403, reason="Forbidden"),
        )
        with pytest.raises(RegistrationFetchError, match="403"):
            fetch_registration_csv("https://example.org/export.csv")

    def test_network_error(self, monkeypatch):
        def boom(url, headers, timeout):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(import_registration.requests, "get", boom)
        with pytest.raises(RegistrationFetchError, match="refused"):
            fetch_registration_csv("https://example.org/export.csv")
