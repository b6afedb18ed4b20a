"""ptc_roster.model

Record types shared by the importers, the reconciler and the read path:
Participant, Class, Lunch, Conference, plus the fixed session grid.

Records round-trip through the store as plain dicts (``to_doc`` /
``from_doc``).  Which fields the external feeds own is declared separately
in ptc_roster.fields.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import time
from typing import Any

# ---------------------------------------------------------------------------
# Session grid
# ---------------------------------------------------------------------------

NUM_SESSION = 6
LUNCH_SESSION = 2

# Special class numbers used by the registration export.
NO_CLASS_NUMBER = 999
OA_BANQUET_CLASS_NUMBER = 700


@dataclass(frozen=True)
class SessionTime:
    start: time
    end: time
    lunch: bool = False


SESSION_TIMES: tuple[SessionTime, ...] = (
    SessionTime(time(9, 0), time(10, 0)),
    SessionTime(time(10, 10), time(11, 10)),
    SessionTime(time(11, 20), time(13, 15), lunch=True),
    SessionTime(time(13, 25), time(14, 25)),
    SessionTime(time(14, 35), time(15, 35)),
    SessionTime(time(15, 45), time(16, 45)),
)


def is_valid_class_number(number: int) -> bool:
    return 100 <= number < (NUM_SESSION + 1) * 100


# ---------------------------------------------------------------------------
# Programs
# ---------------------------------------------------------------------------

class Program(enum.Enum):
    """Audience a class is intended for.

    ALL is an explicit sentinel and must stay the last member.
    """

    CUB = ("cub", "Cub Pack adults")
    BSA = ("bsa", "Scout Troop adults")
    VENTURING = ("ven", "Venturing Crew adults")
    SEA = ("sea", "Sea Scout adults")
    COMMISSIONER = ("com", "Commissioners")
    YOUTH = ("you", "youth")
    ALL = ("all", "everyone")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def description(self) -> str:
        return self.value[1]

    @classmethod
    def from_code(cls, code: str) -> Program:
        for p in cls:
            if p.code == code:
                return p
        raise ValueError(f"unknown program code {code!r}")


CONCRETE_PROGRAMS: tuple[Program, ...] = tuple(p for p in Program if p is not Program.ALL)


def program_descriptions(programs: frozenset[Program], reverse: bool = False) -> list[Program]:
    """Return the programs to list for a class.

    A class open to every concrete program (or flagged ALL) is listed as
    ALL alone.
    """
    if Program.ALL in programs or all(p in programs for p in CONCRETE_PROGRAMS):
        return [Program.ALL]
    result = [p for p in CONCRETE_PROGRAMS if p in programs]
    if reverse:
        result.reverse()
    return result


# ---------------------------------------------------------------------------
# Participant
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InstructorClass:
    session: int
    class_number: int


@dataclass
class Participant:
    # Identity
    last_name: str = ""
    first_name: str = ""
    suffix: str = ""
    youth: bool = False
    registration_number: str = ""

    # Owned by the registration export
    registered_by_name: str = ""
    registered_by_email: str = ""
    registered_by_phone: str = ""
    nickname: str = ""
    staff: bool = False
    phone: str = ""
    email: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    staff_role: str = ""  # Instructor, Support, Midway
    council: str = ""
    district: str = ""
    unit_type: str = ""
    unit_number: str = ""
    dietary_restrictions: str = ""
    marketing: str = ""
    scouting_years: str = ""
    show_qr_code: bool = False
    bsa_number: str = ""
    classes: list[int] = field(default_factory=list)
    staff_description: str = ""
    oa_banquet: bool = False

    # Maintained locally
    instructor_classes: list[InstructorClass] = field(default_factory=list)
    notes: str = ""
    no_show: bool = False

    # Managed by the reconciler
    id: str = ""
    import_hash: str = ""
    print_form: bool = False
    login_code: str = ""

    @property
    def type_label(self) -> str:
        if self.staff:
            return "Staff"
        if self.youth:
            return "Youth"
        return "Adult"

    @property
    def unit(self) -> str:
        if not self.unit_number:
            return self.unit_type
        return f"{self.unit_type} {self.unit_number}"

    @property
    def name(self) -> str:
        if self.suffix:
            return f"{self.first_name} {self.last_name} {self.suffix}"
        return f"{self.first_name} {self.last_name}"

    @property
    def nickname_or_first_name(self) -> str:
        return self.nickname or self.first_name

    @property
    def firsts(self) -> str:
        """Possessive form of the badge name: "Chris'" / "Pat's"."""
        n = self.nickname_or_first_name
        if n.endswith("s"):
            return n + "'"
        return n + "'s"

    @property
    def emails(self) -> list[str]:
        if not self.youth or self.email == self.registered_by_email:
            return [self.email]
        return [self.registered_by_email, self.email]

    @property
    def sort_key(self) -> str:
        return f"{self.last_name}\n{self.first_name}\n{self.suffix}".lower()

    def to_doc(self) -> dict[str, Any]:
        doc = {k: v for k, v in self.__dict__.items() if k not in ("id", "instructor_classes")}
        doc["classes"] = list(self.classes)
        doc["instructor_classes"] = [
            {"session": ic.session, "class_number": ic.class_number}
            for ic in self.instructor_classes
        ]
        return doc

    @classmethod
    def from_doc(cls, key: str, doc: dict[str, Any]) -> Participant:
        known = set(cls.__dataclass_fields__)
        kwargs = {k: v for k, v in doc.items() if k in known}
        kwargs["id"] = key
        kwargs["classes"] = sorted(int(n) for n in doc.get("classes") or [])
        kwargs["instructor_classes"] = sorted(
            (
                InstructorClass(int(ic["session"]), int(ic["class_number"]))
                for ic in doc.get("instructor_classes") or []
            ),
            key=lambda ic: ic.session,
        )
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Class
# ---------------------------------------------------------------------------

@dataclass
class Class:
    """A conference class.

    The number encodes the starting session: 101-199 start in the first
    session, 201-299 in the second and so on.  A class occupies ``length``
    consecutive sessions.
    """

    number: int = 0
    length: int = 0
    responsibility: str = ""
    new: str = ""
    title: str = ""
    title_note: str = ""
    description: str = ""
    programs: frozenset[Program] = frozenset()
    capacity: int = 0
    location: str = ""
    spreadsheet_row: int = 0
    access_token: str = ""
    instructor_names: list[str] = field(default_factory=list)
    instructor_emails: list[str] = field(default_factory=list)
    evaluation_codes: list[str] = field(default_factory=list)

    import_hash: str = ""

    @property
    def start(self) -> int:
        """Zero based index of the first session."""
        return self.number // 100 - 1

    @property
    def end(self) -> int:
        """Zero based index of the last session."""
        return self.start + self.length - 1

    def start_end(self) -> tuple[int, int]:
        return self.start, self.end

    def format_part(self, fmt: str, session: int) -> str:
        """Return "" for single session classes, else fmt % part."""
        if self.number == 0 or self.length <= 1:
            return ""
        return fmt % (session - self.start + 1)

    @property
    def short_title(self) -> str:
        i = self.title.find(" - ")
        if i > 0:
            return self.title[:i]
        if self.title.endswith(")"):
            i = self.title.find(" (")
            if i > 0:
                return self.title[:i]
        return self.title

    def to_doc(self) -> dict[str, Any]:
        doc = dict(self.__dict__)
        doc["programs"] = sorted(p.code for p in self.programs)
        doc["instructor_names"] = list(self.instructor_names)
        doc["instructor_emails"] = list(self.instructor_emails)
        doc["evaluation_codes"] = list(self.evaluation_codes)
        return doc

    @classmethod
    def from_doc(cls, key: str, doc: dict[str, Any]) -> Class:
        known = set(cls.__dataclass_fields__)
        kwargs = {k: v for k, v in doc.items() if k in known}
        kwargs["number"] = int(key)
        kwargs["programs"] = frozenset(Program.from_code(c) for c in doc.get("programs") or [])
        return cls(**kwargs)


ClassMap = dict[int, Class]


def new_class_map(classes: list[Class]) -> ClassMap:
    return {c.number: c for c in classes}


# ---------------------------------------------------------------------------
# Suggested schedules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SuggestedClass:
    number: int
    elective: bool = False


@dataclass
class SuggestedSchedule:
    """A named set of classes recommended to one program's participants."""

    program: Program
    name: str = ""
    classes: list[SuggestedClass] = field(default_factory=list)

    def to_doc(self) -> dict[str, Any]:
        return {
            "program": self.program.code,
            "name": self.name,
            "classes": [{"number": c.number, "elective": c.elective} for c in self.classes],
        }

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> SuggestedSchedule:
        return cls(
            program=Program.from_code(doc["program"]),
            name=doc.get("name") or "",
            classes=[SuggestedClass(**c) for c in doc.get("classes") or []],
        )


# ---------------------------------------------------------------------------
# Conference / Lunch
# ---------------------------------------------------------------------------

@dataclass
class Lunch:
    name: str = ""
    short_name: str = ""
    location: str = ""
    # 1: first, 2: second
    seating: int = 0
    # A participant taking one of these classes picks up lunch here, else
    # a participant whose unit type (Pack, Troop, Crew, Ship) is listed.
    classes: list[int] = field(default_factory=list)
    unit_types: list[str] = field(default_factory=list)


@dataclass
class Conference:
    # The first lunch is the default.
    lunches: list[Lunch] = field(default_factory=list)
    registration_url: str = ""
    catalog_status_message: str = ""
    no_class_description: str = ""
    oa_banquet_description: str = ""
    oa_banquet_location: str = ""
    opening_location: str = ""
    staff_ids: list[str] = field(default_factory=list)
    home_council: str = ""
    version: str = ""

    def is_staff(self, login_id: str) -> bool:
        return login_id.lower() in {s.lower() for s in self.staff_ids}

    def to_doc(self) -> dict[str, Any]:
        doc = dict(self.__dict__)
        doc["lunches"] = [dict(lunch.__dict__) for lunch in self.lunches]
        return doc

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> Conference:
        known = set(cls.__dataclass_fields__)
        kwargs = {k: v for k, v in doc.items() if k in known}
        kwargs["lunches"] = [Lunch(**lunch) for lunch in doc.get("lunches") or []]
        return cls(**kwargs)
