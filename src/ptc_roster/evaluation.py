"""ptc_roster.evaluation

Class and conference evaluations submitted by participants.

Class evaluations are stored one per (participant, session) under the key
``"{participant_id}/{session}"``, so all of a participant's evaluations sit
under one key prefix.  The conference evaluation is keyed by the
participant id alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ptc_roster.model import NUM_SESSION
from ptc_roster.store import RecordStore

CLASS_EVALUATION_KIND = "class_evaluation"
CONFERENCE_EVALUATION_KIND = "conference_evaluation"


@dataclass
class ClassEvaluation:
    participant_id: str = ""
    session: int = 0
    class_number: int = 0
    knowledge_rating: int = 0
    presentation_rating: int = 0
    usefulness_rating: int = 0
    overall_rating: int = 0
    comments: str = ""
    source: str = ""
    updated: datetime | None = None


@dataclass
class ConferenceEvaluation:
    participant_id: str = ""
    experience_rating: int = 0
    promotion_rating: int = 0
    registration_rating: int = 0
    checkin_rating: int = 0
    midway_rating: int = 0
    lunch_rating: int = 0
    facilities_rating: int = 0
    website_rating: int = 0
    signage_wayfinding_rating: int = 0
    learn_topics: str = ""
    teach_topics: str = ""
    comments: str = ""
    source: str = ""
    updated: datetime | None = None


@dataclass
class EvaluationStatus:
    conference: bool = False
    # Class number evaluated in each session, 0 when not evaluated.
    class_numbers: list[int] = field(default_factory=lambda: [0] * NUM_SESSION)


# ---------------------------------------------------------------------------
# Keys / documents
# ---------------------------------------------------------------------------

def _check_participant_id(participant_id: str) -> None:
    if not participant_id:
        raise ValueError("invalid participant id")


def class_evaluation_key(participant_id: str, session: int) -> str:
    _check_participant_id(participant_id)
    return f"{participant_id}/{session}"


def _to_doc(e: ClassEvaluation | ConferenceEvaluation) -> dict[str, Any]:
    doc = dict(e.__dict__)
    doc.pop("participant_id")
    doc.pop("session", None)
    doc["updated"] = e.updated.isoformat() if e.updated else None
    return doc


def _updated(doc: dict[str, Any]) -> datetime | None:
    value = doc.get("updated")
    return datetime.fromisoformat(value) if value else None


def _from_doc(cls: type, doc: dict[str, Any], **identity: Any) -> Any:
    known = set(cls.__dataclass_fields__)
    kwargs = {k: v for k, v in doc.items() if k in known}
    kwargs.update(identity)
    kwargs["updated"] = _updated(doc)
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Class evaluations
# ---------------------------------------------------------------------------

def get_class_evaluation(
    store: RecordStore,
    participant_id: str,
    session: int,
) -> ClassEvaluation | None:
    key = class_evaluation_key(participant_id, session)
    with store.transaction() as tx:
        doc = tx.get(CLASS_EVALUATION_KIND, key)
    if doc is None:
        return None
    return _from_doc(ClassEvaluation, doc, participant_id=participant_id, session=session)


def get_class_evaluations(store: RecordStore, participant_id: str) -> list[ClassEvaluation]:
    _check_participant_id(participant_id)
    prefix = f"{participant_id}/"
    with store.transaction() as tx:
        docs = [(key, tx.get(CLASS_EVALUATION_KIND, key)) for key in tx.keys(CLASS_EVALUATION_KIND, prefix)]
    return [
        _from_doc(ClassEvaluation, doc, participant_id=participant_id, session=int(key[len(prefix):]))
        for key, doc in docs
        if doc is not None
    ]


def set_class_evaluations(store: RecordStore, evaluations: list[ClassEvaluation]) -> None:
    """Store evaluations in one transaction, replacing any for the same session."""
    keyed = [(class_evaluation_key(e.participant_id, e.session), e) for e in evaluations]
    with store.transaction() as tx:
        for key, e in keyed:
            tx.put(CLASS_EVALUATION_KIND, key, _to_doc(e))


def _split_class_key(key: str) -> tuple[str, int]:
    participant_id, _, session = key.rpartition("/")
    return participant_id, int(session)


def get_all_class_evaluations(store: RecordStore) -> list[ClassEvaluation]:
    """Every stored class evaluation, ordered by participant and session."""
    with store.transaction() as tx:
        docs = [(key, tx.get(CLASS_EVALUATION_KIND, key)) for key in tx.keys(CLASS_EVALUATION_KIND)]
    result = []
    for key, doc in docs:
        if doc is None:
            continue
        participant_id, session = _split_class_key(key)
        result.append(_from_doc(ClassEvaluation, doc, participant_id=participant_id, session=session))
    result.sort(key=lambda e: (e.participant_id, e.session))
    return result


# ---------------------------------------------------------------------------
# Conference evaluations
# ---------------------------------------------------------------------------

def get_conference_evaluation(store: RecordStore, participant_id: str) -> ConferenceEvaluation | None:
    _check_participant_id(participant_id)
    with store.transaction() as tx:
        doc = tx.get(CONFERENCE_EVALUATION_KIND, participant_id)
    if doc is None:
        return None
    return _from_doc(ConferenceEvaluation, doc, participant_id=participant_id)


def set_conference_evaluation(store: RecordStore, evaluation: ConferenceEvaluation) -> None:
    _check_participant_id(evaluation.participant_id)
    with store.transaction() as tx:
        tx.put(CONFERENCE_EVALUATION_KIND, evaluation.participant_id, _to_doc(evaluation))


def get_all_conference_evaluations(store: RecordStore) -> list[ConferenceEvaluation]:
    with store.transaction() as tx:
        docs = [(key, tx.get(CONFERENCE_EVALUATION_KIND, key)) for key in tx.keys(CONFERENCE_EVALUATION_KIND)]
    return [
        _from_doc(ConferenceEvaluation, doc, participant_id=key)
        for key, doc in docs
        if doc is not None
    ]


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------

def get_evaluation_status(store: RecordStore, participant_id: str) -> EvaluationStatus:
    """Which sessions, and whether the conference, the participant has evaluated."""
    _check_participant_id(participant_id)
    prefix = f"{participant_id}/"
    status = EvaluationStatus()
    with store.transaction() as tx:
        status.conference = participant_id in tx.keys(CONFERENCE_EVALUATION_KIND, participant_id)
        evaluated = tx.project(CLASS_EVALUATION_KIND, "class_number", prefix)
    for key, class_number in evaluated.items():
        session = int(key[len(prefix):])
        if 0 <= session < NUM_SESSION:
            status.class_numbers[session] = int(class_number or 0)
    return status


def get_all_evaluation_status(store: RecordStore) -> dict[str, EvaluationStatus]:
    """Evaluation status of every participant with at least one evaluation."""
    with store.transaction() as tx:
        conference_ids = tx.keys(CONFERENCE_EVALUATION_KIND)
        evaluated = tx.project(CLASS_EVALUATION_KIND, "class_number")

    result: dict[str, EvaluationStatus] = {}
    for key, class_number in evaluated.items():
        participant_id, session = _split_class_key(key)
        if 0 <= session < NUM_SESSION:
            status = result.setdefault(participant_id, EvaluationStatus())
            status.class_numbers[session] = int(class_number or 0)
    for participant_id in conference_ids:
        result.setdefault(participant_id, EvaluationStatus()).conference = True
    return result
