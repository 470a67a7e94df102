from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Any

from ..errors import ConsistencyViolation, UnknownDayStatus, UnrecognizedDayLetter
from ..models.command_result import AttendanceResult
from ..tables.database import Database
from ..tables.fields import UNSET
from ..tables.mods import A_DAY_MODS, B_DAY_MODS, stringify_mod
from ..tables.table import Record
from .form_sync import EXCUSED_MINUTES
from .progress import ProgressTracker

"""Attendance reconciliation.

Tutors and learners carry an ``attendance`` JSON map:

    {"<local midnight epoch ms>": ["<mod> <minutes>", ...]}

Reconciliation folds valid attendance-log entries into those maps, then
settles every attendance day marked ``doit`` (synthesize absences for
expected slots nobody reported) or ``doreset`` (drop synthesized absences).
A slot is only ever written when the person has no entry for that mod on
that day, so re-running never double counts. Settled days move to
``isdone`` / ``isreset`` and are not processed again.

Minutes convention: 0 = absent (synthesized for the tutor), 1 = excused
(synthesized for the tutor's expected learner), anything else = present.
"""

__all__ = [
    "DAY_STATUSES",
    "SETTLED_STATUS",
    "optional_ref",
    "midnight_key",
    "format_entry",
    "parse_entry",
    "is_a_day",
    "build_expected_slots",
    "recalculate_attendance",
]

logger = logging.getLogger(__name__)

DAY_STATUSES = frozenset({"doit", "doreset", "ignore", "isdone", "isreset"})
SETTLED_STATUS = {"doit": "isdone", "doreset": "isreset"}
ABSENT_MINUTES = 0


def optional_ref(value: Any) -> int | None:
    """Storage uses -1 for "no reference"; the engine works with None."""
    if value is None or value == UNSET:
        return None
    return int(value)


def midnight_key(ms: int, tz: tzinfo) -> int:
    """Round an epoch-ms timestamp down to local midnight (epoch ms)."""
    local = datetime.fromtimestamp(ms / 1000, tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return round(midnight.timestamp() * 1000)


def format_entry(mod: int, minutes: int | float) -> str:
    return f"{mod} {minutes}"


def parse_entry(entry: str) -> tuple[int, float]:
    tokens = entry.split()
    if len(tokens) != 2:
        raise ConsistencyViolation(f"malformed attendance entry {entry!r}")
    try:
        return int(tokens[0]), float(tokens[1])
    except ValueError:
        raise ConsistencyViolation(f"malformed attendance entry {entry!r}") from None


def is_a_day(letter: str) -> bool:
    code = letter.strip().lower()
    if code.startswith("a"):
        return True
    if code.startswith("b"):
        return False
    raise UnrecognizedDayLetter(f"attendance day letter {letter!r} must start with A or B")


def _attendance(person: Record) -> dict[str, list[str]]:
    attendance = person.get("attendance")
    if attendance is None:
        # never recorded: start an empty map, persisted only once an entry lands
        attendance = person["attendance"] = {}
    if not isinstance(attendance, dict):
        raise ConsistencyViolation(f"attendance of record {person.get('id')} is not a day map")
    return attendance


def _has_mod(person: Record, day: int, mod: int) -> bool:
    return any(parse_entry(e)[0] == mod for e in _attendance(person).get(str(day), []))


def _add_entry(person: Record, day: int, mod: int, minutes: int | float) -> bool:
    if _has_mod(person, day, mod):
        return False
    _attendance(person).setdefault(str(day), []).append(format_entry(mod, minutes))
    return True


def _remove_entries(person: Record, day: int, mod: int | None = None) -> int:
    """Remove 0-minute entries of ``day`` (only for ``mod`` when given)."""
    attendance = _attendance(person)
    entries = attendance.get(str(day), [])
    kept = []
    for entry in entries:
        entry_mod, minutes = parse_entry(entry)
        if minutes == ABSENT_MINUTES and (mod is None or entry_mod == mod):
            continue
        kept.append(entry)
    removed = len(entries) - len(kept)
    if removed:
        if kept:
            attendance[str(day)] = kept
        else:
            del attendance[str(day)]
    return removed


def _drop_in_mods(tutor: Record) -> list[int]:
    mods = tutor.get("dropInMods")
    if mods is None:
        return []
    if not isinstance(mods, list):
        raise ConsistencyViolation(f"drop-in mods of tutor {tutor.get('id')} are not a list")
    return mods


def build_expected_slots(
    tutors: dict[str, Record], matchings: dict[str, Record]
) -> dict[int, dict[int, int | None]]:
    """Map tutor id -> {mod: expected learner id or None}.

    Drop-in mods expect no learner. A matching on a drop-in mod replaces the
    drop-in; two matchings of one tutor on one mod are a ConsistencyViolation.
    """
    expected: dict[int, dict[int, int | None]] = {}
    for tutor in tutors.values():
        slots: dict[int, int | None] = {}
        for mod in _drop_in_mods(tutor):
            stringify_mod(mod)
            slots[mod] = None
        expected[tutor["id"]] = slots

    matched: set[tuple[int, int]] = set()
    for matching in sorted(matchings.values(), key=lambda r: r["id"]):
        tutor_id = optional_ref(matching["tutor"])
        if tutor_id is None:
            continue
        if tutor_id not in expected:
            logger.warning(f"matching {matching['id']} references unknown tutor {tutor_id}")
            continue
        mod = matching["mod"]
        if mod == UNSET:
            logger.warning(f"matching {matching['id']} has no mod")
            continue
        key = (tutor_id, mod)
        if key in matched:
            raise ConsistencyViolation(f"tutor {tutor_id} is matched twice on mod {stringify_mod(mod)}")
        matched.add(key)
        expected[tutor_id][mod] = optional_ref(matching["learner"])
    return expected


def _check_days(days: list[Record]) -> None:
    for day in days:
        if day["status"] not in DAY_STATUSES:
            raise UnknownDayStatus(f"attendance day {day['id']} has unknown status {day['status']!r}")
        if day["status"] in SETTLED_STATUS:
            is_a_day(day["abDay"])
            if day["dateOfAttendance"] == UNSET:
                raise ConsistencyViolation(f"attendance day {day['id']} has no date")


def recalculate_attendance(db: Database, tz: tzinfo) -> AttendanceResult:
    tutors = db.table("tutors").retrieve_all()
    learners = db.table("learners").retrieve_all()
    log_entries = db.table("attendanceLog").retrieve_all()
    days = sorted(db.table("attendanceDays").retrieve_all().values(), key=lambda r: r["dateOfAttendance"])
    matchings = db.table("matchings").retrieve_all()

    _check_days(days)
    for person in list(tutors.values()) + list(learners.values()):
        _attendance(person)

    people = {"tutor": tutors, "learner": learners}
    minutes_field = {"tutor": "minutesForTutor", "learner": "minutesForLearner"}
    changed: dict[str, set[str]] = {"tutor": set(), "learner": set()}
    changes = 0
    skipped = 0

    # log entries -> attendance maps
    for entry in sorted(log_entries.values(), key=lambda r: r["date"]):
        if entry["validity"] != "":
            skipped += 1
            continue
        day = midnight_key(entry["dateOfAttendance"], tz)
        mod = entry["mod"]
        for side in ("tutor", "learner"):
            person_id = optional_ref(entry[side])
            if person_id is None:
                continue
            person = people[side].get(str(person_id))
            if person is None:
                logger.warning(f"attendance log {entry['id']} references unknown {side} {person_id}")
                continue
            if entry["markForReset"]:
                touched = _remove_entries(person, day, mod) > 0
            else:
                touched = _add_entry(person, day, mod, entry[minutes_field[side]])
            if touched:
                changes += 1
                changed[side].add(str(person_id))

    expected = build_expected_slots(tutors, matchings)

    settled_days: list[Record] = []
    with ProgressTracker(len(days), description="Attendance days", unit="day") as progress:
        for day_record in days:
            status = day_record["status"]
            if status not in SETTLED_STATUS:
                continue
            progress.start(str(day_record["id"]))
            day = midnight_key(day_record["dateOfAttendance"], tz)
            half = A_DAY_MODS if is_a_day(day_record["abDay"]) else B_DAY_MODS
            day_changes = 0
            if status == "doit":
                for tutor_id, slots in expected.items():
                    tutor = tutors[str(tutor_id)]
                    for mod, learner_id in sorted(slots.items()):
                        if mod not in half:
                            continue
                        if not _add_entry(tutor, day, mod, ABSENT_MINUTES):
                            continue
                        day_changes += 1
                        changed["tutor"].add(str(tutor_id))
                        if learner_id is None:
                            continue
                        learner = learners.get(str(learner_id))
                        if learner is None:
                            logger.warning(f"tutor {tutor_id} is matched to unknown learner {learner_id}")
                            continue
                        if _add_entry(learner, day, mod, EXCUSED_MINUTES):
                            day_changes += 1
                            changed["learner"].add(str(learner_id))
            else:
                for key, tutor in tutors.items():
                    removed = _remove_entries(tutor, day)
                    if removed:
                        day_changes += removed
                        changed["tutor"].add(key)
            changes += day_changes
            day_record["status"] = SETTLED_STATUS[status]
            settled_days.append(day_record)
            logger.info(f"attendance day={day_record['id']} {status}->{day_record['status']} changes={day_changes}")
            progress.finish(changes=changes)

    db.table("tutors").update_all(tutors[k] for k in sorted(changed["tutor"]))
    db.table("learners").update_all(learners[k] for k in sorted(changed["learner"]))
    db.table("attendanceDays").update_all(settled_days)

    return AttendanceResult(
        changes=changes,
        processed_days=[midnight_key(d["dateOfAttendance"], tz) for d in settled_days],
        skipped_entries=skipped,
    )
