"""ptc_roster.lunch

Lunch assignment from the conference's ordered lunch rules.

Lookup tables are built once per conference version, on first use.
Concurrent first callers wait for the one build and then read the tables
without locking.
"""

from __future__ import annotations

import threading

from ptc_roster.model import LUNCH_SESSION, Class, Conference, Lunch, Participant

TBD_LUNCH = Lunch(name="TBD", short_name="TBD", location="TBD", seating=1)
PROGRAM_LUNCH = Lunch(
    name="Lunch location depends on participant unit type",
    short_name="*",
    seating=2,
)


class LunchResolver:
    def __init__(self, conference: Conference) -> None:
        self.conference = conference
        self._lock = threading.Lock()
        self._built = False
        self._by_class: dict[int, Lunch] = {}
        self._by_unit_type: dict[str, Lunch] = {}
        self.build_count = 0

    def _ensure_built(self) -> None:
        if self._built:
            return
        with self._lock:
            if self._built:
                return
            by_class: dict[int, Lunch] = {}
            by_unit_type: dict[str, Lunch] = {}
            # Later rules overwrite earlier ones.
            for lunch in self.conference.lunches:
                for n in lunch.classes:
                    by_class[n] = lunch
                for unit_type in lunch.unit_types:
                    by_unit_type[unit_type] = lunch
            self._by_class = by_class
            self._by_unit_type = by_unit_type
            self.build_count += 1
            self._built = True

    def participant_lunch(self, participant: Participant) -> Lunch:
        """First enrolled class with a rule, else the unit type rule, else the default."""
        self._ensure_built()
        for n in sorted(participant.classes):
            lunch = self._by_class.get(n)
            if lunch is not None:
                return lunch
        lunch = self._by_unit_type.get(participant.unit_type)
        if lunch is not None:
            return lunch
        if not self.conference.lunches:
            return TBD_LUNCH
        return self.conference.lunches[0]

    def class_lunch(self, c: Class) -> Lunch | None:
        """Lunch for students of c, or None when c does not span the lunch session."""
        self._ensure_built()
        start, end = c.start_end()
        if start > LUNCH_SESSION or end < LUNCH_SESSION:
            return None
        return self._by_class.get(c.number, PROGRAM_LUNCH)


class LunchCache:
    """The resolver for the most recently seen conference, owned by the caller.

    Conferences are matched by version; an unversioned conference only
    matches itself.  A new conference replaces the held resolver.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: LunchResolver | None = None

    def resolver(self, conference: Conference) -> LunchResolver:
        with self._lock:
            r = self._current
            if r is None or not _same_conference(r.conference, conference):
                r = LunchResolver(conference)
                self._current = r
            return r

    def participant_lunch(self, conference: Conference, participant: Participant) -> Lunch:
        return self.resolver(conference).participant_lunch(participant)


def _same_conference(a: Conference, b: Conference) -> bool:
    if a.version or b.version:
        return a.version == b.version
    return a is b
