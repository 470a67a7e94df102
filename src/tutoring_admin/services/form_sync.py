from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..config.loader import AppConfig
from ..errors import InvalidModSlot
from ..models.command_result import SyncStat
from ..tables.database import Database
from ..tables.fields import UNSET
from ..tables.mods import parse_mod, parse_mod_list
from ..tables.table import Record, Table
from .progress import ProgressTracker

"""Form sync: one-way import of form submissions into canonical tables.

A form record is matched to the target table by its submission ``date``.
Targets are only ever appended to; a submission whose date is already
present in the target is skipped, which makes a second run a no-op.
"""

__all__ = [
    "Transform",
    "sync_form",
    "request_form_transform",
    "special_request_form_transform",
    "tutor_registration_transform",
    "make_attendance_form_transform",
    "sync_data_from_forms",
]

logger = logging.getLogger(__name__)

Transform = Callable[[Record], Record]

PRESENT = "present"
ABSENT = "absent"
EXCUSED = "excused"
EXCUSED_MINUTES = 1


def sync_form(
    form_table: Table,
    target_table: Table,
    transform: Transform,
    origin: Callable[[Record], bool] | None = None,
) -> int:
    """Create ``transform(rec)`` in ``target_table`` for every unsynced form record.

    ``origin`` selects the target records that came from this form when
    several forms feed one table; only their dates count as synced.
    Returns the number of records created.
    """
    synced_dates = {
        rec["date"] for rec in target_table.retrieve_all().values() if origin is None or origin(rec)
    }
    created = 0
    form_records = sorted(form_table.retrieve_all().values(), key=lambda r: r["date"])
    for form_record in form_records:
        if form_record["date"] in synced_dates:
            continue
        target_record = transform(form_record)
        target_record["date"] = form_record["date"]
        target_table.create(target_record)
        synced_dates.add(form_record["date"])
        created += 1
    logger.debug(f"sync form={form_table.name} target={target_table.name} created={created}")
    return created


def _read_mods(mods_a: str, mods_b: str) -> tuple[list[int], list[str]]:
    mods: list[int] = []
    problems: list[str] = []
    for text, half in ((mods_a, "A"), (mods_b, "B")):
        try:
            mods.extend(parse_mod_list(text, half))
        except InvalidModSlot:
            problems.append(f"unreadable {half} mods {text!r}")
    return sorted(set(mods)), problems


def _friendly_full_name(friendly_name: str, first_name: str, last_name: str) -> str:
    return f"{friendly_name or first_name} {last_name}".strip()


def request_form_transform(rec: Record) -> Record:
    mods, problems = _read_mods(rec["modsA"], rec["modsB"])
    return {
        "id": UNSET,
        "date": rec["date"],
        "friendlyFullName": _friendly_full_name(rec["friendlyName"], rec["firstName"], rec["lastName"]),
        "friendlyName": rec["friendlyName"] or rec["firstName"],
        "firstName": rec["firstName"],
        "lastName": rec["lastName"],
        "studentId": rec["studentId"],
        "grade": rec["grade"],
        "mods": mods,
        "subject": rec["subject"],
        "isSpecial": False,
        "annotation": "; ".join(problems),
        "status": "unchecked",
    }


def special_request_form_transform(rec: Record) -> Record:
    mods, problems = _read_mods(rec["modsA"], rec["modsB"])
    notes = [
        f"{rec['numLearners']} learner(s)",
        f"room {rec['room']}",
        rec["teacherEmail"],
        rec["description"],
        *problems,
    ]
    return {
        "id": UNSET,
        "date": rec["date"],
        "friendlyFullName": rec["teacherName"],
        "friendlyName": rec["teacherName"],
        "firstName": "",
        "lastName": "",
        "studentId": "",
        "grade": UNSET,
        "mods": mods,
        "subject": rec["subject"],
        "isSpecial": True,
        "annotation": "; ".join(n for n in notes if n),
        "status": "unchecked",
    }


def tutor_registration_transform(rec: Record) -> Record:
    mods, problems = _read_mods(rec["modsA"], rec["modsB"])
    mods_pref, pref_problems = _read_mods(rec["modsPrefA"], rec["modsPrefB"])
    return {
        "id": UNSET,
        "date": rec["date"],
        "friendlyFullName": _friendly_full_name(rec["friendlyName"], rec["firstName"], rec["lastName"]),
        "friendlyName": rec["friendlyName"] or rec["firstName"],
        "firstName": rec["firstName"],
        "lastName": rec["lastName"],
        "studentId": rec["studentId"],
        "grade": rec["grade"],
        "mods": mods,
        "modsPref": mods_pref,
        "subjectList": rec["subjectList"],
        "attendance": {},
        "dropInMods": [],
        "adminComment": "; ".join(problems + pref_problems),
    }


def _index_by_student_id(records: dict[str, Record]) -> dict[str, list[int]]:
    index: dict[str, list[int]] = {}
    for rec in records.values():
        sid = str(rec["studentId"]).strip()
        if sid:
            index.setdefault(sid, []).append(rec["id"])
    return index


def make_attendance_form_transform(
    tutors: dict[str, Record], learners: dict[str, Record], present_minutes: int
) -> Transform:
    """Build the attendanceForm -> attendanceLog transform.

    The student id is resolved against tutors and learners. Anything that
    cannot be resolved to exactly one person, mod, or presence value is
    recorded in ``validity``; such log entries are ignored by attendance
    reconciliation.
    """
    tutor_ids = _index_by_student_id(tutors)
    learner_ids = _index_by_student_id(learners)
    minutes_for = {PRESENT: present_minutes, ABSENT: 0, EXCUSED: EXCUSED_MINUTES}

    def transform(rec: Record) -> Record:
        problems: list[str] = []
        sid = str(rec["studentId"]).strip()
        tutor_matches = tutor_ids.get(sid, [])
        learner_matches = learner_ids.get(sid, [])
        tutor = learner = UNSET
        if len(tutor_matches) + len(learner_matches) == 0:
            problems.append(f"student id {sid!r} not found")
        elif len(tutor_matches) + len(learner_matches) > 1:
            problems.append(f"student id {sid!r} is ambiguous")
        elif tutor_matches:
            tutor = tutor_matches[0]
        else:
            learner = learner_matches[0]

        try:
            mod = parse_mod(rec["mod"])
        except InvalidModSlot as e:
            mod = UNSET
            problems.append(str(e))

        presence = rec["presence"].strip().lower()
        minutes = minutes_for.get(presence)
        if minutes is None:
            problems.append(f"unknown presence {rec['presence']!r}")
            minutes = 0

        day = rec["dateOfAttendance"]
        return {
            "id": UNSET,
            "date": rec["date"],
            "dateOfAttendance": rec["date"] if day == UNSET else day,
            "validity": "; ".join(problems),
            "mod": mod,
            "tutor": tutor,
            "learner": learner,
            "minutesForTutor": minutes if tutor != UNSET else UNSET,
            "minutesForLearner": minutes if learner != UNSET else UNSET,
            "markForReset": False,
        }

    return transform


def _is_regular_request(rec: Record) -> bool:
    return not rec["isSpecial"]


def _is_special_request(rec: Record) -> bool:
    return bool(rec["isSpecial"])


def sync_data_from_forms(db: Database, config: AppConfig) -> list[SyncStat]:
    """Run every form -> table import. Tutor registrations go first so new
    tutors can be resolved by attendance submissions in the same run."""
    pairs: list[tuple[str, str, Callable[[], Transform], Callable[[Record], bool] | None]] = [
        ("tutorRegistrationForm", "tutors", lambda: tutor_registration_transform, None),
        ("requestForm", "requestSubmissions", lambda: request_form_transform, _is_regular_request),
        (
            "specialRequestForm",
            "requestSubmissions",
            lambda: special_request_form_transform,
            _is_special_request,
        ),
        (
            "attendanceForm",
            "attendanceLog",
            lambda: make_attendance_form_transform(
                db.table("tutors").retrieve_all(),
                db.table("learners").retrieve_all(),
                config.present_minutes,
            ),
            None,
        ),
    ]
    stats: list[SyncStat] = []
    with ProgressTracker(len(pairs), description="Syncing forms", unit="form") as progress:
        for form_name, target_name, make_transform, origin in pairs:
            progress.start(form_name)
            created = sync_form(db.table(form_name), db.table(target_name), make_transform(), origin)
            stats.append(SyncStat(form=form_name, target=target_name, created=created))
            logger.info(f"synced form={form_name} target={target_name} created={created}")
            progress.finish(created=created)
    return stats
