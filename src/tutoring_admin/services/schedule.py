from __future__ import annotations

import logging
from typing import Any

from ..tables.database import Database
from ..tables.mods import stringify_mod
from .attendance import build_expected_slots

"""Schedule generation: one row per tutor with what each mod-slot holds."""

__all__ = [
    "DROP_IN",
    "generate_schedule",
]

logger = logging.getLogger(__name__)

DROP_IN = "drop-in"


def generate_schedule(db: Database) -> list[dict[str, Any]]:
    """Build the tutor schedule from drop-in mods and matchings.

    Each row is ``{"tutor": id, "friendlyFullName": str, "slots": {"3A": ...}}``
    where a slot value is "drop-in" or "<learner name> (<subject>)". Rows
    are sorted by tutor name; tutors with nothing scheduled are included
    with empty slots.
    """
    tutors = db.table("tutors").retrieve_all()
    learners = db.table("learners").retrieve_all()
    matchings = db.table("matchings").retrieve_all()
    expected = build_expected_slots(tutors, matchings)

    subjects: dict[tuple[int, int], str] = {}
    for matching in matchings.values():
        subjects[(matching["tutor"], matching["mod"])] = matching["subject"]

    rows = []
    for tutor in sorted(tutors.values(), key=lambda t: (t["friendlyFullName"], t["id"])):
        slots: dict[str, str] = {}
        for mod, learner_id in sorted(expected[tutor["id"]].items()):
            if learner_id is None:
                slots[stringify_mod(mod)] = DROP_IN
                continue
            learner = learners.get(str(learner_id))
            name = learner["friendlyFullName"] if learner else f"learner {learner_id}"
            slots[stringify_mod(mod)] = f"{name} ({subjects.get((tutor['id'], mod), '')})"
        rows.append({"tutor": tutor["id"], "friendlyFullName": tutor["friendlyFullName"], "slots": slots})
    logger.info(f"schedule generated tutors={len(rows)}")
    return rows
