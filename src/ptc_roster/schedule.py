"""ptc_roster.schedule

Expand a participant's class numbers into the fixed per-session grid.

Problems with a single reference (unknown class, instructor session out of
range) are logged and skipped; a schedule is always returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ptc_roster.model import NUM_SESSION, Class, ClassMap, Participant

log = logging.getLogger(__name__)

NO_CLASS = Class(title="No Class", length=1)


@dataclass
class SessionConflict:
    class_: Class
    instructor: bool


@dataclass
class SessionClass:
    session: int
    class_: Class = field(default_factory=lambda: NO_CLASS)
    # 1-based position within a multi-session class.  Instructor slots use
    # class.start - session + 1, which is zero or negative for slots after
    # the class start.
    part: int = 0
    instructor: bool = False
    conflicts: list[SessionConflict] = field(default_factory=list)

    @property
    def number(self) -> int:
        return self.class_.number

    def _assign(self, c: Class, part: int, instructor: bool) -> None:
        if self.class_.number != 0:
            self.conflicts.append(SessionConflict(self.class_, self.instructor))
        self.class_ = c
        self.part = part
        self.instructor = instructor


def build_schedule(participant: Participant, classes: ClassMap) -> list[SessionClass]:
    """Return the participant's NUM_SESSION session slots.

    Enrolled classes fill the grid first; instructor overrides are applied
    afterwards and win over an attended class in the same slot.
    """
    grid = [SessionClass(session=i) for i in range(NUM_SESSION)]

    for n in participant.classes:
        c = classes.get(n)
        if c is None:
            log.warning("unknown class %d for participant %s", n, participant.id)
            continue
        start, end = c.start_end()
        if start < 0 or end >= NUM_SESSION:
            continue
        for i in range(start, end + 1):
            grid[i]._assign(c, i - start + 1, instructor=False)

    for ic in participant.instructor_classes:
        c = classes.get(ic.class_number)
        if c is None:
            log.warning(
                "unknown instructor class %d for participant %s", ic.class_number, participant.id
            )
            continue
        if not 0 <= ic.session < NUM_SESSION:
            log.warning(
                "instructor session %d out of range for participant %s", ic.session, participant.id
            )
            continue
        grid[ic.session]._assign(c, c.start - ic.session + 1, instructor=True)

    return grid


def lookup_evaluation_code(classes: ClassMap, code: str) -> SessionClass | None:
    """Map an evaluation code to the class session it evaluates.

    A class lists one code per session it spans; the Nth code belongs to
    session start + N.  Codes compare case-insensitively.
    """
    wanted = code.strip().lower()
    if wanted:
        for number in sorted(classes):
            c = classes[number]
            for i, candidate in enumerate(c.evaluation_codes):
                if candidate.lower() == wanted and c.start + i < NUM_SESSION:
                    return SessionClass(session=c.start + i, class_=c, part=i + 1)
    log.info("no class for evaluation code %r", code)
    return None


def is_instructor_for(participant: Participant, classes: ClassMap, session_class: SessionClass) -> bool:
    """True when the participant teaches session_class's class in that session."""
    sc = build_schedule(participant, classes)[session_class.session]
    return sc.instructor and sc.class_.number == session_class.class_.number
