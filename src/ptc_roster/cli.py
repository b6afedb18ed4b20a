"""ptc_roster.cli

Command-line entry point.

Modes:
  registration       import the registration export (file or URL) into participants
  classes            import the class planning sheet into classes
  suggested          import the suggested schedules tab of the planning sheet
  conference         load config/conference.yml into the conference singleton
  schedule           print one participant's session grid and lunch
  evaluation_status  print which sessions a participant has evaluated

Usage:
    ptc-roster --mode registration --db-dsn "$DSN" --csv-path export.csv \\
        --config-path config/conference.yml --dry-run
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path

import click
import psycopg

from ptc_roster.conference_config import (
    ConferenceConfigError,
    get_conference,
    load_conference,
    load_sync_limits,
    save_conference,
)
from ptc_roster.evaluation import get_evaluation_status
from ptc_roster.import_classes import read_class_sheet
from ptc_roster.import_suggested import read_suggested_schedules, save_suggested_schedules
from ptc_roster.import_registration import (
    HOME_COUNCIL,
    RegistrationFetchError,
    fetch_registration_csv,
    read_registration_csv,
)
from ptc_roster.lunch import LunchCache
from ptc_roster.model import SESSION_TIMES
from ptc_roster.schedule import build_schedule
from ptc_roster.shared import (
    BatchRejectedError,
    ImportFormatError,
    RunCounters,
    StoreConflictError,
    write_run_report,
)
from ptc_roster.store import PostgresStore
from ptc_roster.sync import (
    CLASS_LIMITS,
    PARTICIPANT_LIMITS,
    get_all_classes,
    get_participant,
    sync_classes,
    sync_participants,
)

MODES = ["registration", "classes", "suggested", "conference", "schedule", "evaluation_status"]

# Failures reported as a single FATAL line; anything else is a bug and raises.
FATAL_ERRORS = (
    ImportFormatError,
    RegistrationFetchError,
    BatchRejectedError,
    StoreConflictError,
    ConferenceConfigError,
    FileNotFoundError,
    psycopg.Error,
)


@click.command()
@click.option("--mode", required=True, type=click.Choice(MODES))
@click.option("--db-dsn", required=True, help="PostgreSQL DSN")
@click.option("--csv-path", default=None, type=click.Path(), help="[registration] Export CSV")
@click.option("--csv-url", default=None, help="[registration] Export download URL")
@click.option("--sheet-path", default=None, type=click.Path(), help="[classes|suggested] Planning sheet CSV")
@click.option("--config-path", default=None, type=click.Path(), help="Conference YAML")
@click.option("--participant-id", default=None, help="[schedule|evaluation_status] Participant id")
@click.option("--dry-run", is_flag=True, default=False)
@click.option("--run-id", default=None, help="Override UUID for log correlation")
def main(
    mode: str,
    db_dsn: str,
    csv_path: str | None,
    csv_url: str | None,
    sheet_path: str | None,
    config_path: str | None,
    participant_id: str | None,
    dry_run: bool,
    run_id: str | None,
) -> None:
    """Conference roster import and lookup CLI."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    run_id = run_id or str(uuid.uuid4())
    started_at = datetime.utcnow().isoformat()
    counters = RunCounters()

    _validate_flags(mode, csv_path, csv_url, sheet_path, config_path, participant_id, run_id)
    click.echo(f"[{run_id}] Starting {mode} run (dry_run={dry_run})")

    try:
        store = PostgresStore.connect(db_dsn)
    except psycopg.Error as exc:
        click.echo(f"[{run_id}] FATAL: cannot connect to database: {exc}", err=True)
        sys.exit(1)

    try:
        if mode == "registration":
            source = _run_registration(store, counters, csv_path, csv_url, config_path, dry_run, run_id)
        elif mode == "classes":
            source = _run_classes(store, counters, sheet_path, config_path, dry_run, run_id)
        elif mode == "suggested":
            source = _run_suggested(store, counters, sheet_path, dry_run, run_id)
        elif mode == "conference":
            source = _run_conference(store, config_path, dry_run, run_id)  # type: ignore[arg-type]
        elif mode == "schedule":
            _run_schedule(store, participant_id, run_id)  # type: ignore[arg-type]
            return
        else:
            _run_evaluation_status(store, participant_id, run_id)  # type: ignore[arg-type]
            return
    except FATAL_ERRORS as exc:
        click.echo(f"[{run_id}] FATAL: {exc}", err=True)
        sys.exit(1)
    finally:
        store.close()

    report_path = write_run_report(run_id, started_at, mode, dry_run, source, counters)
    click.echo(f"[{run_id}] Run report: {report_path}")
    click.echo(json.dumps(counters.to_dict(), indent=2, default=str))
    click.echo(f"[{run_id}] Done.")


def _validate_flags(
    mode: str,
    csv_path: str | None,
    csv_url: str | None,
    sheet_path: str | None,
    config_path: str | None,
    participant_id: str | None,
    run_id: str,
) -> None:
    problem = None
    if mode == "registration" and bool(csv_path) == bool(csv_url):
        problem = "registration mode requires exactly one of --csv-path, --csv-url"
    elif mode in ("classes", "suggested") and not sheet_path:
        problem = f"{mode} mode requires: --sheet-path"
    elif mode == "conference" and not config_path:
        problem = "conference mode requires: --config-path"
    elif mode in ("schedule", "evaluation_status") and not participant_id:
        problem = f"{mode} mode requires: --participant-id"
    if problem:
        click.echo(f"[{run_id}] FATAL: {problem}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# Import modes
# ---------------------------------------------------------------------------

def _run_registration(
    store: PostgresStore,
    counters: RunCounters,
    csv_path: str | None,
    csv_url: str | None,
    config_path: str | None,
    dry_run: bool,
    run_id: str,
) -> dict[str, str]:
    limits = load_sync_limits(Path(config_path))["participants"] if config_path else PARTICIPANT_LIMITS
    home_council = load_conference(Path(config_path)).home_council if config_path else HOME_COUNCIL

    if csv_path:
        participants = read_registration_csv(Path(csv_path), home_council)
        source = {"csv_path": csv_path}
    else:
        participants = fetch_registration_csv(csv_url, home_council=home_council)  # type: ignore[arg-type]
        source = {"csv_url": csv_url}  # type: ignore[dict-item]
    counters.participants_read = len(participants)
    click.echo(f"[{run_id}] Parsed {len(participants)} participants")

    result = sync_participants(store, participants, limits, dry_run=dry_run)
    counters.participants_inserted = len(result.inserted)
    counters.participants_updated = len(result.updated)
    counters.participants_deleted = len(result.deleted)
    counters.mutations = result.mutation_count
    click.echo(f"[{run_id}] {result.summary()}")
    if dry_run:
        click.echo(f"[{run_id}] DRY RUN, nothing written.")
    return source


def _run_classes(
    store: PostgresStore,
    counters: RunCounters,
    sheet_path: str | None,
    config_path: str | None,
    dry_run: bool,
    run_id: str,
) -> dict[str, str]:
    limits = load_sync_limits(Path(config_path))["classes"] if config_path else CLASS_LIMITS
    classes = read_class_sheet(Path(sheet_path))  # type: ignore[arg-type]
    counters.classes_read = len(classes)
    click.echo(f"[{run_id}] Parsed {len(classes)} classes")

    result = sync_classes(store, classes, limits, dry_run=dry_run)
    counters.classes_inserted = len(result.inserted)
    counters.classes_updated = len(result.updated)
    counters.classes_deleted = len(result.deleted)
    counters.mutations = result.mutation_count
    click.echo(f"[{run_id}] {result.summary()}")
    if dry_run:
        click.echo(f"[{run_id}] DRY RUN, nothing written.")
    return {"sheet_path": sheet_path}  # type: ignore[dict-item]


def _run_suggested(
    store: PostgresStore,
    counters: RunCounters,
    sheet_path: str | None,
    dry_run: bool,
    run_id: str,
) -> dict[str, str]:
    schedules = read_suggested_schedules(Path(sheet_path))  # type: ignore[arg-type]
    counters.suggested_schedules_read = len(schedules)
    click.echo(f"[{run_id}] Parsed {len(schedules)} suggested schedules")
    if dry_run:
        click.echo(f"[{run_id}] DRY RUN, nothing written.")
    else:
        save_suggested_schedules(store, schedules)
        counters.mutations = 1
        click.echo(f"[{run_id}] Saved suggested schedules.")
    return {"sheet_path": sheet_path}  # type: ignore[dict-item]


def _run_conference(store: PostgresStore, config_path: str, dry_run: bool, run_id: str) -> dict[str, str]:
    conference = load_conference(Path(config_path))
    click.echo(
        f"[{run_id}] Conference version {conference.version[:12]} "
        f"with {len(conference.lunches)} lunches"
    )
    if dry_run:
        click.echo(f"[{run_id}] DRY RUN, nothing written.")
    else:
        save_conference(store, conference)
        click.echo(f"[{run_id}] Saved conference.")
    return {"config_path": config_path}


# ---------------------------------------------------------------------------
# Lookup modes
# ---------------------------------------------------------------------------

def _run_schedule(store: PostgresStore, participant_id: str, run_id: str) -> None:
    participant = get_participant(store, participant_id)
    if participant is None:
        click.echo(f"[{run_id}] FATAL: participant {participant_id} not found", err=True)
        sys.exit(1)
    classes = get_all_classes(store)
    conference = get_conference(store)

    click.echo(f"{participant.name} ({participant.type_label}, {participant.unit})")
    for sc, times in zip(build_schedule(participant, classes), SESSION_TIMES):
        c = sc.class_
        label = f"{c.number} {c.short_title}" if c.number else c.title
        part = c.format_part(" (part %d)", sc.session) if not sc.instructor else ""
        role = " [instructor]" if sc.instructor else ""
        click.echo(f"  {times.start:%H:%M} {label}{part}{role}")
        for conflict in sc.conflicts:
            click.echo(f"      conflicts with {conflict.class_.number} {conflict.class_.short_title}")

    lunch = LunchCache().participant_lunch(conference, participant)
    click.echo(f"  Lunch: {lunch.name} at {lunch.location or 'TBD'} (seating {lunch.seating})")
    if participant.oa_banquet:
        click.echo("  OA banquet")


def _run_evaluation_status(store: PostgresStore, participant_id: str, run_id: str) -> None:
    status = get_evaluation_status(store, participant_id)
    click.echo(f"[{run_id}] conference evaluated: {'yes' if status.conference else 'no'}")
    for session, number in enumerate(status.class_numbers):
        click.echo(f"  session {session + 1}: {number if number else '-'}")


if __name__ == "__main__":
    main()
