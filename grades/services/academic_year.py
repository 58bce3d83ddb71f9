import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from django.db import DatabaseError, transaction
from django.db.models import Q

from academics.models import Grade, GradeHistory, Student
from grades.exceptions import NoStudentsSelected, PartialFailure, ValidationError
from grades.services.metrics import mark_archived, mark_bulk_year

logger = logging.getLogger(__name__)

ACADEMIC_YEAR_RE = re.compile(r"^(\d{4})-(\d{4})$")


def validate_academic_year(value) -> str:
    year = str(value or "").strip()
    if not year:
        raise ValidationError("Academic year is required")
    match = ACADEMIC_YEAR_RE.match(year)
    if not match or int(match.group(2)) != int(match.group(1)) + 1:
        raise ValidationError(f"Invalid academic year '{year}', expected e.g. 2024-2025")
    return year


@dataclass
class BulkAcademicYearResult:
    academic_year: str
    requested: List[int]
    updated: List[int] = field(default_factory=list)
    failed: Dict[int, str] = field(default_factory=dict)
    grade_rows: int = 0
    history_rows: int = 0
    history_collapsed: int = 0

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def partial(self) -> bool:
        return bool(self.failed)

    def as_dict(self):
        return {
            "academic_year": self.academic_year,
            "updated_count": self.updated_count,
            "updated_students": self.updated,
            "failed": [{"student_id": pk, "error": err} for pk, err in self.failed.items()],
            "grade_rows": self.grade_rows,
            "history_rows": self.history_rows,
            "history_collapsed": self.history_collapsed,
        }

    def raise_for_failures(self):
        if self.failed:
            raise PartialFailure(
                f"{len(self.failed)} of {len(self.requested)} students could not be updated",
                failed=self.as_dict()["failed"],
                updated_count=self.updated_count,
            )
        return self


def _normalize_ids(student_ids: Optional[Iterable]) -> List[int]:
    ids = []
    for raw in student_ids or []:
        try:
            pk = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid student id: {raw!r}")
        if pk not in ids:
            ids.append(pk)
    return ids


def _collapse_history(student_pk) -> int:
    """
    Ne garde qu'une ligne grade_history par module (la plus récemment archivée), sinon
    ramener l'étudiant sur une seule année violerait l'unicité (student, module, academic_year).
    """
    seen = set()
    stale = []
    rows = GradeHistory.objects.filter(student_id=student_pk).order_by("module_id", "-archived_at", "-pk")
    for row in rows.values("pk", "module_id"):
        if row["module_id"] in seen:
            stale.append(row["pk"])
        else:
            seen.add(row["module_id"])
    if stale:
        GradeHistory.objects.filter(pk__in=stale).delete()
    return len(stale)


def bulk_set_academic_year(student_ids, new_year) -> BulkAcademicYearResult:
    """
    Applique `new_year` à toutes les lignes grades et grade_history des étudiants sélectionnés.
    Chaque étudiant est traité dans sa propre transaction: un échec n'annule pas les autres
    et figure dans `failed`. Les doublons d'historique d'un même module sont fusionnés.
    """
    ids = _normalize_ids(student_ids)
    if not ids:
        raise NoStudentsSelected()
    year = validate_academic_year(new_year)

    result = BulkAcademicYearResult(academic_year=year, requested=ids)
    existing = set(Student.objects.filter(pk__in=ids).values_list("pk", flat=True))

    for pk in ids:
        if pk not in existing:
            result.failed[pk] = "Student not found"
            continue
        try:
            with transaction.atomic():
                grade_rows = Grade.objects.filter(student_id=pk).update(academic_year=year)
                collapsed = _collapse_history(pk)
                history_rows = GradeHistory.objects.filter(student_id=pk).update(academic_year=year)
        except DatabaseError as exc:
            logger.warning("Academic year update failed", extra={"student_id": pk, "academic_year": year, "error": str(exc)})
            result.failed[pk] = str(exc)
            continue
        result.updated.append(pk)
        result.grade_rows += grade_rows
        result.history_rows += history_rows
        result.history_collapsed += collapsed

    mark_bulk_year(result.updated_count, len(result.failed))
    logger.info(
        "Bulk academic year done",
        extra={
            "academic_year": year,
            "requested": len(ids),
            "updated": result.updated_count,
            "failed": len(result.failed),
        },
    )
    return result


def bulk_update_academic_year(student_ids, new_academic_year) -> BulkAcademicYearResult:
    return bulk_set_academic_year(student_ids, new_academic_year)


def archive_academic_year(academic_year, student_ids=None) -> int:
    """
    Copie dans grade_history (upsert) les notes courantes saisies pour l'année donnée
    ou sans année. `student_ids=None` archive tous les étudiants; une liste vide est refusée.
    """
    year = validate_academic_year(academic_year)
    qs = Grade.objects.select_related("module", "student").filter(Q(academic_year="") | Q(academic_year=year))
    if student_ids is not None:
        ids = _normalize_ids(student_ids)
        if not ids:
            raise NoStudentsSelected()
        qs = qs.filter(student_id__in=ids)

    archived = 0
    with transaction.atomic():
        for grade in qs.order_by("student_id", "module_id"):
            GradeHistory.objects.update_or_create(
                student=grade.student,
                module=grade.module,
                academic_year=year,
                defaults={"cc_grade": grade.cc_grade, "exam_grade": grade.exam_grade},
            )
            archived += 1

    mark_archived(archived)
    logger.info("Academic year archived", extra={"academic_year": year, "rows": archived})
    return archived
