"""Integration tests: evaluations and the conference singleton in PostgreSQL."""

from __future__ import annotations

from datetime import datetime, timezone

from ptc_roster.conference_config import get_conference, save_conference
from ptc_roster.evaluation import (
    ClassEvaluation,
    ConferenceEvaluation,
    get_all_evaluation_status,
    get_class_evaluation,
    get_conference_evaluation,
    get_evaluation_status,
    set_class_evaluations,
    set_conference_evaluation,
)
from ptc_roster.model import Conference, Lunch


class TestEvaluations:
    def test_status(self, store):
        set_class_evaluations(store, [
            ClassEvaluation(participant_id="p1", session=1, class_number=201, overall_rating=4),
            ClassEvaluation(participant_id="p1", session=5, class_number=601),
        ])
        set_conference_evaluation(store, ConferenceEvaluation(participant_id="p1", midway_rating=3))

        status = get_evaluation_status(store, "p1")
        assert status.conference is True
        assert status.class_numbers == [0, 201, 0, 0, 0, 601]
        assert get_evaluation_status(store, "p2").class_numbers == [0] * 6

        everyone = get_all_evaluation_status(store)
        assert list(everyone) == ["p1"]
        assert everyone["p1"] == status

    def test_roundtrip(self, store):
        updated = datetime(2026, 3, 7, 12, 0, tzinfo=timezone.utc)
        e = ClassEvaluation(participant_id="p1", session=2, class_number=301, comments="great", updated=updated)
        set_class_evaluations(store, [e])
        assert get_class_evaluation(store, "p1", 2) == e
        assert get_conference_evaluation(store, "p1") is None


class TestConferenceSingleton:
    def test_save_and_replace(self, store):
        assert get_conference(store) == Conference()
        first = Conference(lunches=[Lunch(name="Gym", seating=2, unit_types=["Troop"])], version="v1")
        save_conference(store, first)
        assert get_conference(store) == first

        second = Conference(lunches=[], version="v2")
        save_conference(store, second)
        assert get_conference(store) == second
