import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction

from academics.models import AcademicHistory, Filiere, Grade, GradeHistory, Module, Promotion, Student, level_label
from grades.exceptions import IneligibleForPromotion, PersistenceError, StudentNotFound, ValidationError
from grades.services.metrics import mark_promotion
from grades.services.weighting import UNGRADED, grade_completeness

logger = logging.getLogger(__name__)

BELOW_THRESHOLD = "BELOW_THRESHOLD"
NO_MODULES = "NO_MODULES"


def passing_grade() -> Decimal:
    return Decimal(str(getattr(settings, "PASSING_GRADE", 10)))


@dataclass
class ModuleShortfall:
    module_id: int
    code: str
    name: str
    module_grade: Optional[Decimal]
    reason: str

    def as_dict(self):
        return {
            "module_id": self.module_id,
            "code": self.code,
            "name": self.name,
            "module_grade": None if self.module_grade is None else str(self.module_grade),
            "reason": self.reason,
        }


@dataclass
class EligibilityReport:
    student: Student
    filiere: Optional[str]
    level: int
    required: List[Module] = field(default_factory=list)
    shortfalls: List[ModuleShortfall] = field(default_factory=list)

    @property
    def eligible(self) -> bool:
        return bool(self.required) and not self.shortfalls

    def as_dict(self):
        return {
            "student_id": self.student.pk,
            "filiere": self.filiere,
            "level": self.level,
            "eligible": self.eligible,
            "required_modules": [m.code for m in self.required],
            "failing_modules": [s.as_dict() for s in self.shortfalls],
        }


@dataclass
class PromotionResult:
    student: Student
    from_level: int
    to_level: int
    outcome: str
    history: AcademicHistory
    promotion: Promotion
    archived_grades: int = 0

    def as_dict(self):
        return {
            "success": True,
            "student_id": self.student.pk,
            "from_level": self.from_level,
            "to_level": self.to_level,
            "filiere": self.student.filiere.code if self.student.filiere_id else None,
            "status": self.student.status,
            "outcome": self.outcome,
            "archived_grades": self.archived_grades,
        }


def required_modules(filiere, level):
    code = filiere.code if isinstance(filiere, Filiere) else filiere
    if not code:
        return Module.objects.none()
    return Module.objects.filter(
        filiere__code__iexact=code,
        academic_level=level_label(level),
        status="active",
    ).order_by("code")


def evaluate_eligibility(student: Student) -> EligibilityReport:
    """
    Chaque module requis du niveau courant doit avoir une note courante >= PASSING_GRADE.
    Un module sans composante notée est en échec, même si son module_grade vaut 0.
    """
    code = student.filiere.code if student.filiere_id else None
    modules = list(required_modules(code, student.level))
    report = EligibilityReport(student=student, filiere=code, level=student.level, required=modules)
    grades = {g.module_id: g for g in Grade.objects.filter(student=student, module__in=modules)}
    threshold = passing_grade()

    for module in modules:
        grade = grades.get(module.id)
        if grade is None or grade_completeness(grade.cc_grade, grade.exam_grade) == UNGRADED:
            report.shortfalls.append(
                ModuleShortfall(module.id, module.code, module.name, grade.module_grade if grade else None, UNGRADED)
            )
        elif grade.module_grade < threshold:
            report.shortfalls.append(
                ModuleShortfall(module.id, module.code, module.name, grade.module_grade, BELOW_THRESHOLD)
            )
    return report


def _resolve_target(student: Student, to_level: int, filiere_code: Optional[str]):
    """Returns (target filière, outcome)."""
    current = student.filiere
    if filiere_code and (current is None or filiere_code.lower() != current.code.lower()):
        target = Filiere.objects.filter(code__iexact=filiere_code).first()
        if target is None:
            raise ValidationError(f"Unknown filiere {filiere_code}")
        if to_level not in (target.levels or []):
            raise ValidationError(f"Level {to_level} is not offered by filiere {target.code}")
        if to_level <= student.level:
            raise ValidationError("Target level must be above the current level")
        return target, "PROMOTED"

    if to_level != student.level + 1:
        raise ValidationError(f"Target level must be {student.level + 1}")
    if current is not None and current.max_level is not None and student.level >= current.max_level:
        return current, "GRADUATED"
    if current is not None and to_level not in (current.levels or []):
        raise ValidationError(f"Level {to_level} is not offered by filiere {current.code}")
    return current, "PROMOTED"


def _archive_student_grades(student: Student, academic_year: str, modules) -> int:
    """Archive uniquement les notes des modules du niveau quitté."""
    archived = 0
    for grade in Grade.objects.filter(student=student, module__in=modules).select_related("module"):
        GradeHistory.objects.update_or_create(
            student=student,
            module=grade.module,
            academic_year=academic_year,
            defaults={"cc_grade": grade.cc_grade, "exam_grade": grade.exam_grade},
        )
        archived += 1
    return archived


def promote_student(student_id, to_level, academic_year, promoted_by, reason="", filiere=None) -> PromotionResult:
    if not academic_year:
        raise ValidationError("academic_year is required")
    if not promoted_by:
        raise ValidationError("promoted_by is required")
    try:
        to_level = int(to_level)
    except (TypeError, ValueError):
        raise ValidationError("to_level must be an integer")

    try:
        with transaction.atomic():
            student = Student.objects.select_for_update().select_related("filiere").filter(pk=student_id).first()
            if student is None:
                raise StudentNotFound()
            if student.status == "Graduated":
                raise ValidationError("Student has already graduated")

            target, outcome = _resolve_target(student, to_level, filiere)
            report = evaluate_eligibility(student)
            if not report.eligible:
                reasons = [s.as_dict() for s in report.shortfalls]
                message = "Student is not eligible for promotion"
                if not report.required:
                    message = f"No modules configured for {report.filiere} {level_label(report.level)}"
                    reasons = [{"reason": NO_MODULES}]
                raise IneligibleForPromotion(message, modules=reasons)

            from_level = student.level
            from_filiere = student.filiere.code if student.filiere_id else ""
            archived = _archive_student_grades(student, academic_year, report.required)

            if outcome == "GRADUATED":
                student.status = "Graduated"
                student.save(update_fields=["status", "updated_at"])
                recorded_level = from_level
            else:
                student.level = to_level
                student.filiere = target
                student.save(update_fields=["level", "filiere", "updated_at"])
                recorded_level = to_level

            to_filiere = target.code if target else ""
            history = AcademicHistory.objects.create(
                student=student,
                from_level=from_level,
                to_level=recorded_level,
                from_filiere=from_filiere,
                to_filiere=to_filiere,
                academic_year=academic_year,
                promoted_by=promoted_by,
                reason=reason or "",
            )
            promotion = Promotion.objects.create(
                student=student,
                from_level=from_level,
                to_level=recorded_level,
                filiere=to_filiere,
                academic_year=academic_year,
                promoted_by=promoted_by,
                outcome=outcome,
            )
    except IneligibleForPromotion:
        mark_promotion("rejected")
        logger.info("Promotion refused", extra={"student_id": student_id, "to_level": to_level})
        raise
    except DatabaseError as exc:
        mark_promotion("failed")
        logger.exception("Promotion rolled back", extra={"student_id": student_id, "to_level": to_level})
        raise PersistenceError(f"Promotion could not be saved: {exc}", student_id=student_id)

    mark_promotion("succeeded")
    logger.info(
        "Student promoted",
        extra={
            "student_id": student.pk,
            "from_level": from_level,
            "to_level": recorded_level,
            "outcome": outcome,
            "academic_year": academic_year,
        },
    )
    return PromotionResult(
        student=student,
        from_level=from_level,
        to_level=recorded_level,
        outcome=outcome,
        history=history,
        promotion=promotion,
        archived_grades=archived,
    )
