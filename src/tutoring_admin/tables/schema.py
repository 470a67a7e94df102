from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..errors import SchemaNotFound
from .fields import Field, FieldType

"""Table schema registry.

``TABLE_INFOS`` is the declarative list of every table the backend knows.
Field order is the physical column order in the workbook: column i of a
sheet always maps to field i of its schema.
"""

__all__ = [
    "TableInfo",
    "SchemaRegistry",
    "TABLE_INFOS",
    "default_registry",
]

B = FieldType.BOOLEAN
N = FieldType.NUMBER
S = FieldType.STRING
D = FieldType.DATE
J = FieldType.JSON


@dataclass(frozen=True)
class TableInfo:
    """Schema of one table (one worksheet)."""
    name: str
    sheet_name: str
    fields: tuple[Field, ...]
    is_form: bool = False

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def primary_key(self) -> str:
        """Entity tables are keyed by ``id``; form tables by submission ``date``."""
        return "date" if self.is_form else "id"

    @property
    def primary_key_index(self) -> int:
        return self.field_names.index(self.primary_key)


def _entity(name: str, *fields: tuple[FieldType, str]) -> TableInfo:
    return TableInfo(
        name=name,
        sheet_name=f"${name}",
        fields=(Field(N, "id"), Field(D, "date")) + tuple(Field(t, n) for t, n in fields),
    )


def _form(name: str, *fields: tuple[FieldType, str]) -> TableInfo:
    return TableInfo(
        name=name,
        sheet_name=f"${name}",
        fields=(Field(D, "date"),) + tuple(Field(t, n) for t, n in fields),
        is_form=True,
    )


_PERSON = ((S, "friendlyFullName"), (S, "friendlyName"), (S, "firstName"), (S, "lastName"), (S, "studentId"), (N, "grade"))

TABLE_INFOS: tuple[TableInfo, ...] = (
    _entity(
        "tutors",
        *_PERSON,
        (J, "mods"),
        (J, "modsPref"),
        (S, "subjectList"),
        (J, "attendance"),
        (J, "dropInMods"),
        (S, "adminComment"),
    ),
    _entity("learners", *_PERSON, (J, "attendance")),
    _entity(
        "requests",
        (N, "learner"),
        (J, "mods"),
        (S, "subject"),
        (B, "isSpecial"),
        (S, "annotation"),
        (S, "step"),
    ),
    _entity(
        "requestSubmissions",
        *_PERSON,
        (J, "mods"),
        (S, "subject"),
        (B, "isSpecial"),
        (S, "annotation"),
        (S, "status"),
    ),
    _entity("bookings", (N, "request"), (N, "tutor"), (N, "mod"), (S, "status")),
    _entity("matchings", (N, "learner"), (N, "tutor"), (S, "subject"), (N, "mod"), (S, "annotation")),
    _entity(
        "attendanceLog",
        (D, "dateOfAttendance"),
        (S, "validity"),
        (N, "mod"),
        (N, "tutor"),
        (N, "learner"),
        (N, "minutesForTutor"),
        (N, "minutesForLearner"),
        (B, "markForReset"),
    ),
    _entity("attendanceDays", (D, "dateOfAttendance"), (S, "abDay"), (S, "status")),
    _entity("operationLog", (J, "args")),
    _form(
        "requestForm",
        (S, "firstName"),
        (S, "lastName"),
        (S, "friendlyName"),
        (S, "studentId"),
        (N, "grade"),
        (S, "subject"),
        (S, "modsA"),
        (S, "modsB"),
    ),
    _form(
        "specialRequestForm",
        (S, "teacherName"),
        (S, "teacherEmail"),
        (N, "numLearners"),
        (S, "subject"),
        (S, "modsA"),
        (S, "modsB"),
        (S, "room"),
        (S, "description"),
    ),
    _form("attendanceForm", (D, "dateOfAttendance"), (S, "mod"), (S, "studentId"), (S, "presence")),
    _form(
        "tutorRegistrationForm",
        (S, "firstName"),
        (S, "lastName"),
        (S, "friendlyName"),
        (S, "studentId"),
        (N, "grade"),
        (S, "subjectList"),
        (S, "modsA"),
        (S, "modsB"),
        (S, "modsPrefA"),
        (S, "modsPrefB"),
    ),
)


class SchemaRegistry:
    """Immutable name -> TableInfo map built once from a declarative list."""

    def __init__(self, table_infos: Iterable[TableInfo]) -> None:
        infos: dict[str, TableInfo] = {}
        for info in table_infos:
            if info.name in infos:
                raise ValueError(f"table {info.name} declared twice")
            expected = ["date"] if info.is_form else ["id", "date"]
            if info.field_names[: len(expected)] != expected:
                raise ValueError(f"table {info.name} must start with columns {expected}")
            infos[info.name] = info
        self._infos = infos

    def lookup(self, name: str) -> TableInfo:
        try:
            return self._infos[name]
        except KeyError:
            raise SchemaNotFound(f"table {name} not found in schema registry") from None

    def names(self) -> list[str]:
        return list(self._infos)

    def __contains__(self, name: object) -> bool:
        return name in self._infos


def default_registry() -> SchemaRegistry:
    return SchemaRegistry(TABLE_INFOS)
