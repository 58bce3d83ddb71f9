from decimal import Decimal
from unittest.mock import patch

import redis
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from academics.models import Grade, GradeHistory
from grades.tests.fixtures import admin_token, grade, history, make_filiere, make_module, make_student, professor_token

PROMOTE_URL = "/api/students/promote/"
BULK_YEAR_URL = "/api/students/academic-year/"


@override_settings(METRICS_ENABLED=False)
class ApiTestBase(TestCase):
    def setUp(self):
        self.filiere = make_filiere(code="IISI3")
        self.algo = make_module(self.filiere, "ALG1", level=1)
        self.db = make_module(self.filiere, "DB1", level=1)
        make_module(self.filiere, "NET2", level=2)
        self.student = make_student(self.filiere, "STU001", level=1, first_name="Alice", last_name="Johnson")
        self.client = APIClient()

    def as_admin(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {admin_token()}")

    def as_professor(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {professor_token()}")

    def promotion_payload(self, **extra):
        payload = {"student_id": self.student.pk, "to_level": 2, "academic_year": "2024-2025"}
        payload.update(extra)
        return payload


class PromoteEndpointTests(ApiTestBase):
    def test_missing_authorization_header(self):
        resp = self.client.post(PROMOTE_URL, self.promotion_payload(), format="json")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Missing or invalid Authorization header"})

    def test_invalid_token(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")
        resp = self.client.post(PROMOTE_URL, self.promotion_payload(), format="json")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Invalid or expired token"})

    def test_professor_cannot_promote(self):
        self.as_professor()
        resp = self.client.post(PROMOTE_URL, self.promotion_payload(), format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertIn("error", resp.json())

    def test_unknown_student(self):
        self.as_admin()
        resp = self.client.post(PROMOTE_URL, self.promotion_payload(student_id=999999), format="json")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": "Student not found"})

    def test_promotion_succeeds(self):
        grade(self.student, self.algo, cc=12, exam=14)
        grade(self.student, self.db, cc=11, exam=13)
        self.as_admin()
        resp = self.client.post(PROMOTE_URL, self.promotion_payload(promotion_reason="Passage"), format="json")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual((body["from_level"], body["to_level"], body["outcome"]), (1, 2, "PROMOTED"))
        self.student.refresh_from_db()
        self.assertEqual(self.student.level, 2)
        # promoted_by vient de la session quand il est absent
        self.assertEqual(self.student.academic_history.get().promoted_by, "John Smith")

    def test_ineligible_student_lists_failing_modules(self):
        grade(self.student, self.algo, cc=8, exam=9)
        grade(self.student, self.db, cc=11, exam=13)
        self.as_admin()
        resp = self.client.post(PROMOTE_URL, self.promotion_payload(), format="json")
        self.assertEqual(resp.status_code, 422)
        body = resp.json()
        self.assertEqual(body["error"], "Student is not eligible for promotion")
        self.assertEqual([m["code"] for m in body["modules"]], ["ALG1"])
        self.student.refresh_from_db()
        self.assertEqual(self.student.level, 1)

    def test_missing_fields(self):
        self.as_admin()
        resp = self.client.post(PROMOTE_URL, {"student_id": self.student.pk}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("to_level", resp.json()["error"])

    def test_preflight_answered_without_auth(self):
        resp = self.client.options(PROMOTE_URL)
        self.assertEqual(resp.status_code, 204)
        self.assertEqual(resp["Access-Control-Allow-Origin"], "*")
        self.assertEqual(resp["Access-Control-Allow-Methods"], "POST, OPTIONS")
        self.assertEqual(resp["Access-Control-Allow-Headers"], "authorization, x-client-info, apikey, content-type")

    def test_cors_headers_on_errors(self):
        resp = self.client.post(PROMOTE_URL, self.promotion_payload(), format="json")
        self.assertEqual(resp["Access-Control-Allow-Origin"], "*")

    def test_eligibility_report(self):
        grade(self.student, self.algo, cc=15, exam=15)
        self.as_admin()
        resp = self.client.get(f"/api/students/{self.student.pk}/eligibility/")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertFalse(body["eligible"])
        self.assertEqual(body["required_modules"], ["ALG1", "DB1"])
        self.assertEqual([(m["code"], m["reason"]) for m in body["failing_modules"]], [("DB1", "UNGRADED")])


class BulkAcademicYearEndpointTests(ApiTestBase):
    def setUp(self):
        super().setUp()
        self.other = make_student(self.filiere, "STU002")
        grade(self.student, self.algo, cc=12, exam=14, year="2023-2024")
        history(self.student, self.db, cc=9, exam=9, year="2022-2023")
        grade(self.other, self.algo, cc=10, exam=10, year="2023-2024")
        self.as_admin()

    def test_updates_all_selected_students(self):
        resp = self.client.post(
            BULK_YEAR_URL, {"student_ids": [self.student.pk, self.other.pk], "academic_year": "2024-2025"}, format="json"
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["updated_count"], 2)
        self.assertEqual(set(Grade.objects.values_list("academic_year", flat=True)), {"2024-2025"})
        self.assertEqual(GradeHistory.objects.get().academic_year, "2024-2025")

    def test_empty_selection(self):
        resp = self.client.post(BULK_YEAR_URL, {"student_ids": [], "academic_year": "2024-2025"}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "No students selected"})

    def test_missing_year(self):
        resp = self.client.post(BULK_YEAR_URL, {"student_ids": [self.student.pk]}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(Grade.objects.get(student=self.student).academic_year, "2023-2024")

    def test_partial_failure_reports_failed_students(self):
        resp = self.client.post(
            BULK_YEAR_URL, {"student_ids": [self.student.pk, 999999], "academic_year": "2024-2025"}, format="json"
        )
        self.assertEqual(resp.status_code, 207)
        body = resp.json()
        self.assertEqual(body["updated_students"], [self.student.pk])
        self.assertEqual(body["failed"], [{"student_id": 999999, "error": "Student not found"}])

    def test_preflight_lists_post_only(self):
        resp = self.client.options(BULK_YEAR_URL)
        self.assertEqual(resp.status_code, 204)
        self.assertEqual(resp["Access-Control-Allow-Methods"], "POST, OPTIONS")


class ArchiveEndpointTests(ApiTestBase):
    def setUp(self):
        super().setUp()
        grade(self.student, self.algo, cc=12, exam=14)
        self.as_admin()

    @override_settings(CELERY_TASK_ALWAYS_EAGER=True)
    def test_eager_archive_runs_inline(self):
        resp = self.client.post("/api/academic-years/archive/", {"academic_year": "2024-2025"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["archived"], 1)
        self.assertTrue(GradeHistory.objects.filter(academic_year="2024-2025").exists())

    @patch("grades.api.archive_academic_year_task.delay")
    def test_archive_is_queued(self, mock_delay):
        mock_delay.return_value.id = "task-1"
        resp = self.client.post("/api/academic-years/archive/", {"academic_year": "2024-2025"}, format="json")
        self.assertEqual(resp.status_code, 202)
        self.assertEqual(resp.json(), {"academic_year": "2024-2025", "status": "PENDING", "task_id": "task-1"})
        mock_delay.assert_called_once_with("2024-2025", None)

    @patch("grades.api.archive_academic_year_task.delay")
    def test_empty_student_list_is_refused(self, mock_delay):
        resp = self.client.post(
            "/api/academic-years/archive/", {"academic_year": "2024-2025", "student_ids": []}, format="json"
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "No students selected"})
        mock_delay.assert_not_called()

    def test_invalid_year(self):
        resp = self.client.post("/api/academic-years/archive/", {"academic_year": "2024"}, format="json")
        self.assertEqual(resp.status_code, 400)


class GradeEndpointTests(ApiTestBase):
    def setUp(self):
        super().setUp()
        grade(self.student, self.algo, cc=12, exam=14)
        self.as_professor()

    def test_list_with_filters(self):
        resp = self.client.get("/api/grades/", {"filiere": "iisi3", "level": "1", "module": "all"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["filters"]["module"], None)
        self.assertEqual(len(body["grades"]), 1)
        self.assertEqual(body["grades"][0]["module_grade"], "13.4")
        self.assertEqual([s["student_id"] for s in body["students"]], ["STU001"])

    def test_create_computes_module_grade(self):
        resp = self.client.post(
            "/api/grades/",
            {"student": self.student.pk, "module": self.db.pk, "cc_grade": "15", "academic_year": "2024-2025"},
            format="json",
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["module_grade"], "4.5")
        self.assertEqual(resp.json()["completeness"], "PARTIAL")

    def test_student_role_is_refused(self):
        from academics.identity import STUDENT, SessionIdentity, issue_token

        token = issue_token(SessionIdentity(id=self.student.pk, role=STUDENT, display_name="Alice Johnson"))
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(self.client.get("/api/grades/").status_code, 403)


class ModuleEndpointTests(ApiTestBase):
    def setUp(self):
        super().setUp()
        self.grade = grade(self.student, self.algo, cc=12, exam=14)
        self.as_admin()

    def test_invalid_weights_rejected(self):
        resp = self.client.patch(f"/api/modules/{self.algo.pk}/", {"cc_percentage": 50}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "CC and exam percentages must add up to 100 (got 50 + 70)"})
        self.algo.refresh_from_db()
        self.assertEqual(self.algo.cc_percentage, 30)

    def test_weight_change_recomputes_grades(self):
        resp = self.client.patch(
            f"/api/modules/{self.algo.pk}/", {"cc_percentage": 40, "exam_percentage": 60}, format="json"
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["recomputed_grades"], 1)
        self.grade.refresh_from_db()
        # 12 * 0.4 + 14 * 0.6
        self.assertEqual(self.grade.module_grade, Decimal("13.2"))

    def test_level_must_exist_in_filiere(self):
        resp = self.client.post(
            "/api/modules/",
            {
                "code": "ADV4",
                "name": "Avancé",
                "filiere": "IISI3",
                "academic_level": "Level 4",
                "semester": "Semester 1",
            },
            format="json",
        )
        self.assertEqual(resp.status_code, 400)


class MetricsEndpointTests(ApiTestBase):
    def setUp(self):
        super().setUp()
        self.as_admin()

    @patch("grades.api.reset_metrics", side_effect=redis.ConnectionError("Connection refused"))
    def test_reset_with_redis_down(self, _):
        resp = self.client.post("/api/metrics/reset/")
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json(), {"error": "Metrics backend unavailable"})

    @patch("grades.api.reset_metrics")
    def test_reset(self, mock_reset):
        resp = self.client.post("/api/metrics/reset/")
        self.assertEqual(resp.status_code, 200)
        mock_reset.assert_called_once_with()

    @patch("grades.api.get_metrics", return_value=None)
    def test_metrics_with_redis_down(self, _):
        self.assertEqual(self.client.get("/api/metrics/").status_code, 503)
