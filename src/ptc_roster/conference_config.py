"""ptc_roster.conference_config

YAML configuration for the conference singleton and the import limits.

Responsibilities:
  - Load and validate config/conference.yml into a Conference
  - Read the optional ``import:`` section into SyncLimits per record kind
  - Persist / read the Conference singleton in the record store

Usage:
    from pathlib import Path
    from ptc_roster.conference_config import load_conference

    conference = load_conference(Path("config/conference.yml"))
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any

import yaml

from ptc_roster.import_registration import HOME_COUNCIL
from ptc_roster.model import Conference, Lunch
from ptc_roster.store import RecordStore
from ptc_roster.sync import CLASS_LIMITS, PARTICIPANT_LIMITS, SyncLimits

MISC_KIND = "misc"
CONFERENCE_KEY = "conference"

OPTIONAL_STRING_KEYS = (
    "registration_url",
    "catalog_status_message",
    "no_class_description",
    "oa_banquet_description",
    "oa_banquet_location",
    "opening_location",
    "home_council",
)

VALID_LUNCH_KEYS = frozenset({"name", "short_name", "location", "seating", "classes", "unit_types"})


class ConferenceConfigError(ValueError):
    """Raised when the conference YAML fails validation."""


# ---------------------------------------------------------------------------
# Loader + validator
# ---------------------------------------------------------------------------

def _load_yaml(path: Path) -> tuple[str, dict[str, Any]]:
    raw = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConferenceConfigError(f"{path}: invalid YAML: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConferenceConfigError(f"{path}: top level must be a mapping")
    return raw, data


def _parse_lunch(i: int, item: Any) -> Lunch:
    if not isinstance(item, dict):
        raise ConferenceConfigError(f"lunches[{i}] must be a mapping")
    unknown = set(item) - VALID_LUNCH_KEYS
    if unknown:
        raise ConferenceConfigError(f"lunches[{i}] has unknown keys: {sorted(unknown)}")
    if not item.get("name"):
        raise ConferenceConfigError(f"lunches[{i}] is missing name")
    seating = item.get("seating", 1)
    if seating not in (1, 2):
        raise ConferenceConfigError(f"lunches[{i}] seating must be 1 or 2, got {seating!r}")
    try:
        classes = [int(n) for n in item.get("classes") or []]
    except (TypeError, ValueError) as exc:
        raise ConferenceConfigError(f"lunches[{i}] classes must be class numbers") from exc
    return Lunch(
        name=str(item["name"]),
        short_name=str(item.get("short_name") or item["name"]),
        location=str(item.get("location") or ""),
        seating=seating,
        classes=classes,
        unit_types=[str(u) for u in item.get("unit_types") or []],
    )


def validate_conference(data: dict[str, Any]) -> None:
    """Raise ConferenceConfigError if data does not match the conference schema."""
    if "lunches" not in data:
        raise ConferenceConfigError("missing required key: lunches")
    if not isinstance(data["lunches"], list):
        raise ConferenceConfigError("lunches must be a list")
    for key in OPTIONAL_STRING_KEYS:
        if key in data and data[key] is not None and not isinstance(data[key], str):
            raise ConferenceConfigError(f"{key} must be a string")
    staff_ids = data.get("staff_ids") or []
    if not isinstance(staff_ids, list):
        raise ConferenceConfigError("staff_ids must be a list")


def load_conference(path: Path) -> Conference:
    """Load, validate, and return the Conference described by a YAML file.

    Raises:
        ConferenceConfigError: If a required key is missing or invalid.
        FileNotFoundError: If the YAML file does not exist.
    """
    raw, data = _load_yaml(path)
    validate_conference(data)
    return Conference(
        lunches=[_parse_lunch(i, item) for i, item in enumerate(data["lunches"])],
        registration_url=data.get("registration_url") or "",
        catalog_status_message=data.get("catalog_status_message") or "",
        no_class_description=data.get("no_class_description") or "",
        oa_banquet_description=data.get("oa_banquet_description") or "",
        oa_banquet_location=data.get("oa_banquet_location") or "",
        opening_location=data.get("opening_location") or "",
        staff_ids=[str(s) for s in data.get("staff_ids") or []],
        home_council=data.get("home_council") or HOME_COUNCIL,
        version=hashlib.sha256(raw.encode("utf-8")).hexdigest(),
    )


def _parse_limits(name: str, section: Any, default: SyncLimits) -> SyncLimits:
    if section is None:
        return default
    if not isinstance(section, dict):
        raise ConferenceConfigError(f"import.{name} must be a mapping")
    min_batch_size = section.get("min_batch_size", default.min_batch_size)
    max_deletes = section.get("max_deletes", default.max_deletes)
    if not isinstance(min_batch_size, int) or min_batch_size < 0:
        raise ConferenceConfigError(f"import.{name}.min_batch_size must be a non-negative integer")
    if max_deletes is not None and (not isinstance(max_deletes, int) or max_deletes < 0):
        raise ConferenceConfigError(f"import.{name}.max_deletes must be a non-negative integer or null")
    return SyncLimits(min_batch_size=min_batch_size, max_deletes=max_deletes)


def load_sync_limits(path: Path) -> dict[str, SyncLimits]:
    """Return {"participants": ..., "classes": ...} from the ``import:`` section.

    Missing entries fall back to the built-in limits.
    """
    _, data = _load_yaml(path)
    section = data.get("import") or {}
    if not isinstance(section, dict):
        raise ConferenceConfigError("import must be a mapping")
    return {
        "participants": _parse_limits("participants", section.get("participants"), PARTICIPANT_LIMITS),
        "classes": _parse_limits("classes", section.get("classes"), CLASS_LIMITS),
    }


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

def save_conference(store: RecordStore, conference: Conference) -> None:
    with store.transaction() as tx:
        tx.put(MISC_KIND, CONFERENCE_KEY, conference.to_doc())


def get_conference(store: RecordStore) -> Conference:
    """Return the stored Conference, or an empty one if none was saved."""
    with store.transaction() as tx:
        doc = tx.get(MISC_KIND, CONFERENCE_KEY)
    if doc is None:
        return Conference()
    return Conference.from_doc(doc)
