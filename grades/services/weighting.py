from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

from grades.exceptions import InvalidWeightConfiguration, ValidationError

GRADE_MIN = Decimal("0")
GRADE_MAX = Decimal("20")
ONE_DECIMAL = Decimal("0.1")

UNGRADED = "UNGRADED"
PARTIAL = "PARTIAL"
COMPLETE = "COMPLETE"


@dataclass(frozen=True)
class GradeWeights:
    cc: int
    exam: int

    def validate(self):
        validate_weights(self.cc, self.exam)
        return self


DEFAULT_WEIGHTS = GradeWeights(
    cc=getattr(settings, "DEFAULT_CC_PERCENTAGE", 30),
    exam=getattr(settings, "DEFAULT_EXAM_PERCENTAGE", 70),
)


def validate_weights(cc, exam):
    if cc is None or exam is None:
        raise InvalidWeightConfiguration("CC and exam percentages are required")
    if cc < 0 or exam < 0:
        raise InvalidWeightConfiguration("Percentages cannot be negative")
    if cc + exam != 100:
        raise InvalidWeightConfiguration(f"CC and exam percentages must add up to 100 (got {cc} + {exam})")


def _to_decimal(value, label) -> Decimal:
    # Un composant absent compte pour 0 (pas "non noté")
    if value is None or value == "":
        return GRADE_MIN
    try:
        number = Decimal(str(value))
    except ArithmeticError:
        raise ValidationError(f"{label} must be a number")
    if not number.is_finite() or number < GRADE_MIN or number > GRADE_MAX:
        raise ValidationError(f"{label} must be between 0 and 20")
    return number


def compute_module_grade(cc_grade, exam_grade, weights: GradeWeights = DEFAULT_WEIGHTS) -> Decimal:
    """
    module_grade = cc * cc% / 100 + exam * exam% / 100, arrondi au dixième (half-up).
    """
    weights = weights or DEFAULT_WEIGHTS
    validate_weights(weights.cc, weights.exam)
    cc = _to_decimal(cc_grade, "cc_grade")
    exam = _to_decimal(exam_grade, "exam_grade")
    raw = (cc * weights.cc + exam * weights.exam) / Decimal(100)
    result = raw.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)
    return min(max(result, GRADE_MIN), GRADE_MAX)


def grade_completeness(cc_grade, exam_grade) -> str:
    graded = [value for value in (cc_grade, exam_grade) if value is not None and value != ""]
    if not graded:
        return UNGRADED
    if len(graded) == 1:
        return PARTIAL
    return COMPLETE


def recompute_module_grades(module) -> int:
    """Recalcule module_grade pour toutes les notes courantes du module (après changement de pondération)."""
    from academics.models import Grade

    updated = 0
    for grade in Grade.objects.filter(module=module).select_related("module"):
        previous = grade.module_grade
        grade.module = module
        grade.save(update_fields=["module_grade", "updated_at"])
        if grade.module_grade != previous:
            updated += 1
    return updated
