"""
Vue agrégée des notes: une ligne par couple étudiant/module, regroupement par étudiant
et liste des étudiants (roster) selon les filtres filière / niveau / semestre / module / année.

Sans année académique, la source est la table `grades` (notes courantes) et le roster ne
contient que les étudiants ayant au moins une note. Avec une année académique, l'appartenance
vient de `grade_history` et le roster contient toute la cohorte en périmètre; les valeurs
affichées sont lues dans `grades` ou dans `grade_history` selon GRADE_HISTORY_DISPLAY_SOURCE.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from django.conf import settings

from academics.models import Grade, GradeHistory, Student, level_label
from grades.exceptions import ValidationError
from grades.services.weighting import UNGRADED, grade_completeness

logger = logging.getLogger(__name__)

ALL = "all"
DISPLAY_LIVE = "live"
DISPLAY_HISTORY = "history"


def _clean(value):
    if value is None:
        return None
    value = str(value).strip()
    if not value or value.lower() == ALL:
        return None
    return value


def _clean_int(value, label):
    value = _clean(value)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{label} must be an integer")


@dataclass(frozen=True)
class GradeFilters:
    filiere: Optional[str] = None
    level: Optional[int] = None
    semester: Optional[str] = None
    module: Optional[int] = None
    academic_year: Optional[str] = None

    @classmethod
    def from_params(cls, params) -> "GradeFilters":
        return cls(
            filiere=_clean(params.get("filiere")),
            level=_clean_int(params.get("level"), "level"),
            semester=_clean(params.get("semester")),
            module=_clean_int(params.get("module"), "module"),
            academic_year=_clean(params.get("academic_year")),
        )

    @property
    def is_historical(self) -> bool:
        return self.academic_year is not None


@dataclass
class GradeRow:
    student_pk: int
    student_code: str
    student_name: str
    module_pk: int
    module_code: str
    module_name: str
    cc_grade: Optional[Decimal]
    exam_grade: Optional[Decimal]
    module_grade: Optional[Decimal]
    academic_year: str
    completeness: str
    source: str

    @property
    def key(self):
        return self.student_pk, self.module_pk

    def as_dict(self) -> dict:
        return {
            "student": self.student_pk,
            "student_id": self.student_code,
            "student_name": self.student_name,
            "module": self.module_pk,
            "module_code": self.module_code,
            "module_name": self.module_name,
            "cc_grade": _fmt(self.cc_grade),
            "exam_grade": _fmt(self.exam_grade),
            "module_grade": _fmt(self.module_grade),
            "academic_year": self.academic_year,
            "completeness": self.completeness,
            "source": self.source,
        }


@dataclass
class RosterEntry:
    student: Student
    grades: Dict[int, GradeRow] = field(default_factory=dict)

    @property
    def average(self) -> Optional[Decimal]:
        values = [row.module_grade for row in self.grades.values() if row.module_grade is not None]
        if not values:
            return None
        return (sum(values) / len(values)).quantize(Decimal("0.01"))

    def as_dict(self) -> dict:
        return {
            "id": self.student.pk,
            "student_id": self.student.student_id,
            "name": self.student.full_name,
            "filiere": self.student.filiere.code if self.student.filiere_id else None,
            "level": self.student.level,
            "semester": self.student.semester,
            "average": _fmt(self.average),
            "grades": {str(pk): row.as_dict() for pk, row in self.grades.items()},
        }


def _fmt(value):
    return None if value is None else str(value)


def _row(record, source) -> GradeRow:
    return GradeRow(
        student_pk=record.student_id,
        student_code=record.student.student_id,
        student_name=record.student.full_name,
        module_pk=record.module_id,
        module_code=record.module.code,
        module_name=record.module.name,
        cc_grade=record.cc_grade,
        exam_grade=record.exam_grade,
        module_grade=record.module_grade,
        academic_year=record.academic_year,
        completeness=grade_completeness(record.cc_grade, record.exam_grade),
        source=source,
    )


def _ungraded_row(record) -> GradeRow:
    # Présent dans l'historique mais sans ligne courante correspondante
    return GradeRow(
        student_pk=record.student_id,
        student_code=record.student.student_id,
        student_name=record.student.full_name,
        module_pk=record.module_id,
        module_code=record.module.code,
        module_name=record.module.name,
        cc_grade=None,
        exam_grade=None,
        module_grade=None,
        academic_year=record.academic_year,
        completeness=UNGRADED,
        source="grades",
    )


def apply_module_filters(qs, filters: GradeFilters):
    if filters.filiere:
        qs = qs.filter(module__filiere__code__iexact=filters.filiere)
    if filters.level is not None:
        qs = qs.filter(module__academic_level=level_label(filters.level))
    if filters.semester:
        qs = qs.filter(module__semester=filters.semester)
    if filters.module is not None:
        qs = qs.filter(module_id=filters.module)
    return qs


def student_scope(filters: GradeFilters):
    qs = Student.objects.select_related("filiere")
    if filters.filiere:
        qs = qs.filter(filiere__code__iexact=filters.filiere)
    if filters.level is not None:
        qs = qs.filter(level=filters.level)
    if filters.semester:
        qs = qs.filter(semester=filters.semester)
    return qs


def display_source() -> str:
    source = getattr(settings, "GRADE_HISTORY_DISPLAY_SOURCE", DISPLAY_LIVE)
    if source not in (DISPLAY_LIVE, DISPLAY_HISTORY):
        logger.warning("Unknown GRADE_HISTORY_DISPLAY_SOURCE, using live", extra={"value": source})
        return DISPLAY_LIVE
    return source


def _distinct(rows: Iterable[GradeRow]) -> List[GradeRow]:
    seen = set()
    result = []
    for row in rows:
        if row.key in seen:
            continue
        seen.add(row.key)
        result.append(row)
    return result


def grade_view(filters: GradeFilters) -> List[GradeRow]:
    if not filters.is_historical:
        qs = apply_module_filters(Grade.objects.select_related("student", "module"), filters)
        return _distinct(_row(g, "grades") for g in qs.order_by("student_id", "module_id"))

    history = apply_module_filters(
        GradeHistory.objects.filter(academic_year=filters.academic_year).select_related("student", "module"),
        filters,
    ).order_by("student_id", "module_id")

    if display_source() == DISPLAY_HISTORY:
        return _distinct(_row(h, "grade_history") for h in history)

    history = list(history)
    live = {
        (g.student_id, g.module_id): g
        for g in Grade.objects.filter(student_id__in={h.student_id for h in history}).select_related(
            "student", "module"
        )
    }
    rows = []
    for record in history:
        current = live.get((record.student_id, record.module_id))
        rows.append(_row(current, "grades") if current else _ungraded_row(record))
    return _distinct(rows)


def group_by_student(rows: Iterable[GradeRow]) -> Dict[int, Dict[int, GradeRow]]:
    grouped: Dict[int, Dict[int, GradeRow]] = {}
    for row in rows:
        grouped.setdefault(row.student_pk, {}).setdefault(row.module_pk, row)
    return grouped


def student_roster(filters: GradeFilters, rows: Optional[List[GradeRow]] = None) -> List[RosterEntry]:
    if rows is None:
        rows = grade_view(filters)
    grouped = group_by_student(rows)
    if filters.is_historical:
        students = student_scope(filters)
    else:
        students = Student.objects.select_related("filiere").filter(pk__in=list(grouped))
    logger.debug(
        "Roster built",
        extra={"academic_year": filters.academic_year, "rows": len(rows), "students_with_grades": len(grouped)},
    )
    return [RosterEntry(student=s, grades=grouped.get(s.pk, {})) for s in students.order_by("last_name", "first_name")]
