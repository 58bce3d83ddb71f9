from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.test import TestCase

from academics.models import Filiere, Grade, Module, Student
from grades.exceptions import InvalidWeightConfiguration
from grades.tests.fixtures import grade, make_filiere, make_module, make_student


class FiliereTests(TestCase):
    def test_levels_must_match_degree(self):
        filiere = Filiere(code="MGE3", name="MGE", formation="Management et Finance", degree="BAC+3", levels=[3, 4])
        with self.assertRaises(DjangoValidationError) as ctx:
            filiere.clean()
        self.assertIn("levels", ctx.exception.message_dict)

    def test_levels_required(self):
        filiere = Filiere(code="MRI5", name="MRI", formation="Management et Finance", degree="BAC+5", levels=[])
        with self.assertRaises(DjangoValidationError):
            filiere.clean()

    def test_code_unique_case_insensitive(self):
        make_filiere(code="IISI3")
        duplicate = Filiere(code="iisi3", name="Copie", formation="Ingénierie", degree="BAC+3", levels=[1, 2, 3])
        with self.assertRaises(DjangoValidationError) as ctx:
            duplicate.clean()
        self.assertIn("code", ctx.exception.message_dict)

    def test_max_level(self):
        self.assertEqual(make_filiere(code="IISI5", degree="BAC+5", levels=(4, 5)).max_level, 5)


class StudentTests(TestCase):
    def test_level_must_belong_to_filiere(self):
        filiere = make_filiere(code="FACG4", degree="BAC+5", levels=(4, 5), formation="Management et Finance")
        student = Student(
            student_id="STU900", first_name="A", last_name="B", email="a@b.ma", filiere=filiere, level=2
        )
        with self.assertRaises(DjangoValidationError):
            student.clean()


class ModuleWeightTests(TestCase):
    def setUp(self):
        self.filiere = make_filiere()

    def test_defaults_are_thirty_seventy(self):
        module = Module.objects.create(
            code="ALG1", name="Algo", filiere=self.filiere, academic_level="Level 1", semester="Semester 1"
        )
        self.assertEqual((module.cc_percentage, module.exam_percentage), (30, 70))
        self.assertEqual(module.level_number, 1)

    def test_weights_not_summing_to_100_are_rejected(self):
        with self.assertRaises(InvalidWeightConfiguration):
            make_module(self.filiere, "BAD1", cc=40, exam=50)
        self.assertFalse(Module.objects.filter(code="BAD1").exists())

    def test_update_with_invalid_weights_is_rejected(self):
        module = make_module(self.filiere, "DB1")
        module.cc_percentage = 50
        with self.assertRaises(InvalidWeightConfiguration):
            module.save()
        module.refresh_from_db()
        self.assertEqual(module.cc_percentage, 30)


class GradeComputationTests(TestCase):
    def setUp(self):
        filiere = make_filiere()
        self.student = make_student(filiere)
        self.module = make_module(filiere, "ALG1")

    def test_module_grade_computed_on_create(self):
        g = grade(self.student, self.module, cc=12, exam=14)
        g.refresh_from_db()
        self.assertEqual(g.module_grade, Decimal("13.4"))

    def test_module_grade_recomputed_on_update(self):
        g = grade(self.student, self.module, cc=12, exam=14)
        g.exam_grade = Decimal("10")
        g.save(update_fields=["exam_grade"])
        g.refresh_from_db()
        # 12 * 0.3 + 10 * 0.7
        self.assertEqual(g.module_grade, Decimal("10.6"))

    def test_ungraded_module_is_zero(self):
        g = grade(self.student, self.module)
        g.refresh_from_db()
        self.assertEqual(g.module_grade, Decimal("0.0"))
        self.assertEqual(Grade.objects.get(pk=g.pk).module_grade, Decimal("0"))
