from io import StringIO
from unittest.mock import patch

from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings

from academics.models import Grade, GradeHistory
from grades.tests.fixtures import grade, make_filiere, make_module, make_student


@override_settings(METRICS_ENABLED=False)
class AcademicYearCommandTests(TestCase):
    def setUp(self):
        self.isi = make_filiere(code="IISI3")
        mge = make_filiere(code="MGE3", name="MGE", formation="Management et Finance")
        algo = make_module(self.isi, "ALG1")
        eco = make_module(mge, "ECO1")
        self.s1 = make_student(self.isi, "STU001")
        self.s2 = make_student(mge, "STU002")
        grade(self.s1, algo, cc=12, exam=14, year="2023-2024")
        grade(self.s2, eco, cc=12, exam=14, year="2023-2024")

    def test_set_year_by_filiere(self):
        out = StringIO()
        call_command("set_academic_year", "--year", "2024-2025", "--filiere", "iisi3", stdout=out)
        self.assertEqual(Grade.objects.get(student=self.s1).academic_year, "2024-2025")
        self.assertEqual(Grade.objects.get(student=self.s2).academic_year, "2023-2024")
        self.assertIn("1 étudiants mis à jour", out.getvalue())

    def test_set_year_requires_selection(self):
        with self.assertRaises(CommandError):
            call_command("set_academic_year", "--year", "2024-2025", stdout=StringIO())

    def test_set_year_rejects_bad_year(self):
        with self.assertRaises(CommandError):
            call_command("set_academic_year", "--year", "2024", "--student-ids", str(self.s1.pk), stdout=StringIO())

    @patch("grades.management.commands.set_academic_year.bulk_set_academic_year_task.apply_async")
    def test_set_year_on_queue(self, mock_apply_async):
        call_command(
            "set_academic_year", "--year", "2024-2025", "--level", "1", "--queue", "grades_bulk", stdout=StringIO()
        )
        mock_apply_async.assert_called_once()
        self.assertEqual(mock_apply_async.call_args.kwargs["queue"], "grades_bulk")
        self.assertEqual(mock_apply_async.call_args.kwargs["args"], [[self.s1.pk, self.s2.pk], "2024-2025"])
        # rien n'est modifié avant l'exécution de la tâche
        self.assertEqual(Grade.objects.get(student=self.s1).academic_year, "2023-2024")

    def test_close_year_archives_grades(self):
        call_command("close_academic_year", "--year", "2023-2024", stdout=StringIO())
        self.assertEqual(GradeHistory.objects.filter(academic_year="2023-2024").count(), 2)


@override_settings(METRICS_ENABLED=False)
class PromoteStudentsCommandTests(TestCase):
    def setUp(self):
        self.filiere = make_filiere(code="IISI3")
        algo = make_module(self.filiere, "ALG1", level=1)
        self.good = make_student(self.filiere, "STU001")
        self.weak = make_student(self.filiere, "STU002")
        grade(self.good, algo, cc=14, exam=14)
        grade(self.weak, algo, cc=6, exam=8)

    def test_promotes_only_eligible_students(self):
        out = StringIO()
        call_command(
            "promote_students",
            "--filiere",
            "IISI3",
            "--level",
            "1",
            "--academic-year",
            "2024-2025",
            "--promoted-by",
            "John Smith",
            stdout=out,
        )
        self.good.refresh_from_db()
        self.weak.refresh_from_db()
        self.assertEqual((self.good.level, self.weak.level), (2, 1))
        self.assertIn("STU002: non éligible (ALG1)", out.getvalue())
        self.assertIn("Promus: 1, non éligibles: 1, erreurs: 0", out.getvalue())

    def test_unknown_filiere(self):
        with self.assertRaises(CommandError):
            call_command(
                "promote_students",
                "--filiere",
                "XXX",
                "--level",
                "1",
                "--academic-year",
                "2024-2025",
                "--promoted-by",
                "John Smith",
                stdout=StringIO(),
            )
