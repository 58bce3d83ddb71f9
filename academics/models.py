import re

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q, Value
from django.db.models.functions import Lower


DEGREE_LEVELS = {
    "BAC+3": {1, 2, 3},
    "BAC+5": {4, 5},
}

GRADE_VALIDATORS = [MinValueValidator(0), MaxValueValidator(20)]
LEVEL_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]

LEVEL_LABEL_RE = re.compile(r"^Level\s+(\d+)$")


def level_label(level) -> str:
    return f"Level {level}"


class Filiere(models.Model):
    FORMATION_CHOICES = [
        ("Management et Finance", "Management et Finance"),
        ("Ingénierie", "Ingénierie"),
    ]
    DEGREE_CHOICES = [("BAC+3", "BAC+3"), ("BAC+5", "BAC+5")]

    name = models.CharField(max_length=128)
    code = models.CharField(max_length=32, unique=True)
    formation = models.CharField(max_length=32, choices=FORMATION_CHOICES)
    degree = models.CharField(max_length=8, choices=DEGREE_CHOICES)
    levels = models.JSONField(default=list)

    class Meta:
        db_table = "filieres"
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(Lower("code"), name="filiere_code_ci_unique"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def max_level(self):
        return max(self.levels) if self.levels else None

    def clean(self):
        errors = {}
        levels = self.levels or []
        if not levels:
            errors["levels"] = "Une filière doit avoir au moins un niveau."
        elif any(not isinstance(lvl, int) for lvl in levels):
            errors["levels"] = "Les niveaux doivent être des entiers."
        else:
            allowed = DEGREE_LEVELS.get(self.degree, set())
            invalid = sorted(set(levels) - allowed)
            if invalid:
                errors["levels"] = f"Niveaux {invalid} incompatibles avec le diplôme {self.degree}."
        if self.code:
            clash = Filiere.objects.filter(code__iexact=self.code).exclude(pk=self.pk)
            if clash.exists():
                errors["code"] = f"Le code {self.code} existe déjà."
        if errors:
            raise ValidationError(errors)


class Administrator(models.Model):
    first_name = models.CharField(max_length=64)
    last_name = models.CharField(max_length=64)
    email = models.EmailField(unique=True)
    password_hash = models.CharField(max_length=256)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "admins"

    def __str__(self):
        return f"{self.first_name} {self.last_name}"


class Professor(models.Model):
    STATUS_CHOICES = [
        ("Active", "Active"),
        ("Inactive", "Inactive"),
        ("On Leave", "On Leave"),
    ]

    professor_id = models.CharField(max_length=32, unique=True)
    first_name = models.CharField(max_length=64)
    last_name = models.CharField(max_length=64)
    email = models.EmailField(unique=True)
    filieres = models.ManyToManyField(Filiere, related_name="professors", blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default="Active")
    specialization = models.CharField(max_length=128, blank=True)
    hire_date = models.DateField(null=True, blank=True)
    password_hash = models.CharField(max_length=256)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "professors"

    def __str__(self):
        return f"{self.first_name} {self.last_name} ({self.professor_id})"


class Student(models.Model):
    STATUS_CHOICES = [
        ("Active", "Active"),
        ("Inactive", "Inactive"),
        ("Graduated", "Graduated"),
    ]

    student_id = models.CharField(max_length=32, unique=True)
    first_name = models.CharField(max_length=64)
    last_name = models.CharField(max_length=64)
    email = models.EmailField(unique=True)
    filiere = models.ForeignKey(
        Filiere, on_delete=models.PROTECT, related_name="students", null=True, blank=True
    )
    level = models.PositiveSmallIntegerField(validators=LEVEL_VALIDATORS)
    semester = models.CharField(max_length=32, blank=True)
    gpa = models.DecimalField(max_digits=4, decimal_places=2, default=0)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default="Active")
    enrollment_date = models.DateField(null=True, blank=True)
    password_hash = models.CharField(max_length=256, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "students"
        ordering = ["last_name", "first_name"]

    def __str__(self):
        return f"{self.first_name} {self.last_name}"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def clean(self):
        if self.filiere_id and self.filiere.levels and self.level not in self.filiere.levels:
            raise ValidationError(
                {"level": f"Le niveau {self.level} n'existe pas dans la filière {self.filiere.code}."}
            )


class Module(models.Model):
    STATUS_CHOICES = [("active", "Active"), ("inactive", "Inactive")]

    code = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=128)
    description = models.TextField(blank=True)
    credits = models.PositiveSmallIntegerField(default=0)
    filiere = models.ForeignKey(Filiere, on_delete=models.CASCADE, related_name="modules")
    academic_level = models.CharField(max_length=16)
    semester = models.CharField(max_length=32)
    professor = models.ForeignKey(
        Professor, on_delete=models.SET_NULL, related_name="modules", null=True, blank=True
    )
    capacity = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(max_length=8, choices=STATUS_CHOICES, default="active")
    cc_percentage = models.PositiveSmallIntegerField(
        default=settings.DEFAULT_CC_PERCENTAGE, validators=[MaxValueValidator(100)]
    )
    exam_percentage = models.PositiveSmallIntegerField(
        default=settings.DEFAULT_EXAM_PERCENTAGE, validators=[MaxValueValidator(100)]
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "modules"
        ordering = ["code"]
        constraints = [
            models.CheckConstraint(
                condition=Q(cc_percentage=Value(100) - F("exam_percentage")),
                name="module_weights_sum_100",
            ),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def level_number(self):
        match = LEVEL_LABEL_RE.match(self.academic_level or "")
        return int(match.group(1)) if match else None

    @property
    def weights(self):
        from grades.services.weighting import GradeWeights

        return GradeWeights(cc=self.cc_percentage, exam=self.exam_percentage)

    def save(self, *args, **kwargs):
        from grades.services.weighting import validate_weights

        validate_weights(self.cc_percentage, self.exam_percentage)
        super().save(*args, **kwargs)


class GradeRecord(models.Model):
    """
    Colonnes communes aux notes courantes et archivées.
    module_grade est toujours dérivé de cc_grade/exam_grade et des pondérations du module.
    """

    cc_grade = models.DecimalField(
        max_digits=4, decimal_places=2, null=True, blank=True, validators=GRADE_VALIDATORS
    )
    exam_grade = models.DecimalField(
        max_digits=4, decimal_places=2, null=True, blank=True, validators=GRADE_VALIDATORS
    )
    module_grade = models.DecimalField(max_digits=3, decimal_places=1, default=0, validators=GRADE_VALIDATORS)
    academic_year = models.CharField(max_length=9, blank=True)

    class Meta:
        abstract = True

    def recompute(self):
        from grades.services.weighting import compute_module_grade

        self.module_grade = compute_module_grade(self.cc_grade, self.exam_grade, self.module.weights)
        return self.module_grade

    def save(self, *args, **kwargs):
        self.recompute()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "module_grade" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["module_grade"]
        super().save(*args, **kwargs)


class Grade(GradeRecord):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="grades")
    module = models.ForeignKey(Module, on_delete=models.CASCADE, related_name="grades")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "grades"
        constraints = [
            models.UniqueConstraint(fields=["student", "module"], name="grade_student_module_unique"),
        ]
        indexes = [
            models.Index(fields=["academic_year"], name="grade_academic_year_idx"),
        ]

    def __str__(self):
        return f"{self.student} - {self.module.code}: {self.module_grade}"


class GradeHistory(GradeRecord):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="grade_history")
    module = models.ForeignKey(Module, on_delete=models.CASCADE, related_name="grade_history")
    archived_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "grade_history"
        verbose_name_plural = "grade history"
        constraints = [
            models.UniqueConstraint(
                fields=["student", "module", "academic_year"], name="gradehistory_student_module_year_unique"
            ),
        ]
        indexes = [
            models.Index(fields=["academic_year", "student"], name="gradehistory_year_student_idx"),
        ]

    def __str__(self):
        return f"{self.student} - {self.module.code} ({self.academic_year}): {self.module_grade}"


class AcademicHistory(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="academic_history")
    from_level = models.PositiveSmallIntegerField()
    to_level = models.PositiveSmallIntegerField()
    from_filiere = models.CharField(max_length=32, blank=True)
    to_filiere = models.CharField(max_length=32, blank=True)
    academic_year = models.CharField(max_length=9)
    promoted_by = models.CharField(max_length=128)
    reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "academic_history"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.student}: {self.from_level} -> {self.to_level} ({self.academic_year})"


class Promotion(models.Model):
    OUTCOME_CHOICES = [("PROMOTED", "Promoted"), ("GRADUATED", "Graduated")]

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="promotions")
    from_level = models.PositiveSmallIntegerField()
    to_level = models.PositiveSmallIntegerField()
    filiere = models.CharField(max_length=32, blank=True)
    academic_year = models.CharField(max_length=9)
    promoted_by = models.CharField(max_length=128)
    outcome = models.CharField(max_length=10, choices=OUTCOME_CHOICES, default="PROMOTED")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "promotions"
        indexes = [
            models.Index(fields=["student", "academic_year"], name="promotion_student_year_idx"),
        ]

    def __str__(self):
        return f"{self.student} - {self.outcome} ({self.academic_year})"
