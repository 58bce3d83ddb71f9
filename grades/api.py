import logging

import redis
from django.conf import settings
from rest_framework import serializers, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.views import exception_handler as drf_exception_handler

from academics.authentication import IsAdministrator, IsStaffMember
from academics.models import Grade, Student
from grades.exceptions import GradePortalError, NoStudentsSelected, NotFoundError, StudentNotFound
from grades.services.academic_year import bulk_set_academic_year, validate_academic_year
from grades.services.aggregation import GradeFilters, grade_view, student_roster
from grades.services.metrics import get_metrics, reset_metrics
from grades.services.promotion import evaluate_eligibility, promote_student
from grades.services.weighting import grade_completeness
from grades.tasks import archive_academic_year_task

logger = logging.getLogger(__name__)


def exception_handler(exc, context):
    """
    Toutes les erreurs sont rendues sous la forme {"error": ...}, avec le détail
    supplémentaire des erreurs métier (modules en échec, étudiants en échec).
    """
    response = drf_exception_handler(exc, context)
    if response is None:
        logger.exception("Unhandled API error", extra={"view": type(context.get("view")).__name__})
        return Response({"error": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    if isinstance(exc, GradePortalError):
        response.data = {"error": exc.message, **exc.extra}
    elif isinstance(response.data, dict) and set(response.data) == {"detail"}:
        response.data = {"error": response.data["detail"]}
    else:
        response.data = {"error": response.data}
    return response


# ============================
# Grades
# ============================


class GradeSerializer(serializers.ModelSerializer):
    completeness = serializers.SerializerMethodField()

    class Meta:
        model = Grade
        fields = ["id", "student", "module", "cc_grade", "exam_grade", "module_grade", "academic_year", "completeness"]
        read_only_fields = ["module_grade"]

    def get_completeness(self, obj):
        return grade_completeness(obj.cc_grade, obj.exam_grade)


class GradeListView(APIView):
    permission_classes = [IsAuthenticated, IsStaffMember]

    def get(self, request):
        filters = GradeFilters.from_params(request.query_params)
        rows = grade_view(filters)
        roster = student_roster(filters, rows)
        return Response(
            {
                "filters": {
                    "filiere": filters.filiere,
                    "level": filters.level,
                    "semester": filters.semester,
                    "module": filters.module,
                    "academic_year": filters.academic_year,
                },
                "grades": [row.as_dict() for row in rows],
                "students": [entry.as_dict() for entry in roster],
            }
        )

    def post(self, request):
        serializer = GradeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        grade = serializer.save()
        logger.info(
            "Grade recorded",
            extra={"student_id": grade.student_id, "module_id": grade.module_id, "module_grade": str(grade.module_grade)},
        )
        return Response(GradeSerializer(grade).data, status=status.HTTP_201_CREATED)


class GradeDetailView(APIView):
    permission_classes = [IsAuthenticated, IsStaffMember]

    def _get(self, pk):
        grade = Grade.objects.select_related("module").filter(pk=pk).first()
        if grade is None:
            raise NotFoundError("Grade not found")
        return grade

    def get(self, request, pk):
        return Response(GradeSerializer(self._get(pk)).data)

    def patch(self, request, pk):
        grade = self._get(pk)
        serializer = GradeSerializer(grade, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        grade = serializer.save()
        return Response(GradeSerializer(grade).data)

    def delete(self, request, pk):
        self._get(pk).delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# ============================
# Promotion
# ============================


class PromotionRequestSerializer(serializers.Serializer):
    student_id = serializers.IntegerField()
    to_level = serializers.IntegerField(min_value=1, max_value=6)
    academic_year = serializers.CharField()
    promoted_by = serializers.CharField(required=False, allow_blank=True)
    promotion_reason = serializers.CharField(required=False, allow_blank=True, default="")
    filiere = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class PromoteStudentView(APIView):
    permission_classes = [IsAuthenticated, IsAdministrator]

    def post(self, request):
        serializer = PromotionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = promote_student(
            data["student_id"],
            data["to_level"],
            data["academic_year"],
            data.get("promoted_by") or request.user.display_name,
            reason=data.get("promotion_reason", ""),
            filiere=data.get("filiere") or None,
        )
        return Response(result.as_dict(), status=status.HTTP_200_OK)


class EligibilityView(APIView):
    permission_classes = [IsAuthenticated, IsAdministrator]

    def get(self, request, pk):
        student = Student.objects.select_related("filiere").filter(pk=pk).first()
        if student is None:
            raise StudentNotFound()
        return Response(evaluate_eligibility(student).as_dict())


# ============================
# Academic year
# ============================


class BulkAcademicYearSerializer(serializers.Serializer):
    student_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=True, required=False, default=list)
    academic_year = serializers.CharField(allow_blank=True, required=False, default="")


class BulkAcademicYearView(APIView):
    permission_classes = [IsAuthenticated, IsAdministrator]

    def post(self, request):
        serializer = BulkAcademicYearSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = bulk_set_academic_year(
            serializer.validated_data["student_ids"], serializer.validated_data["academic_year"]
        )
        code = status.HTTP_207_MULTI_STATUS if result.partial else status.HTTP_200_OK
        return Response(result.as_dict(), status=code)


class ArchiveRequestSerializer(serializers.Serializer):
    academic_year = serializers.CharField()
    student_ids = serializers.ListField(child=serializers.IntegerField(), required=False, allow_empty=True)


class ArchiveAcademicYearView(APIView):
    permission_classes = [IsAuthenticated, IsAdministrator]

    def post(self, request):
        serializer = ArchiveRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        year = validate_academic_year(serializer.validated_data["academic_year"])
        student_ids = serializer.validated_data.get("student_ids")
        if student_ids is not None and not student_ids:
            raise NoStudentsSelected()

        if getattr(settings, "CELERY_TASK_ALWAYS_EAGER", False):
            res = archive_academic_year_task.apply(args=[year, student_ids])
            archived = res.get()
            return Response({"academic_year": year, "status": "DONE", "archived": archived}, status=status.HTTP_200_OK)
        task = archive_academic_year_task.delay(year, student_ids)
        return Response({"academic_year": year, "status": "PENDING", "task_id": task.id}, status=status.HTTP_202_ACCEPTED)


# ============================
# Metrics
# ============================


class MetricsView(APIView):
    permission_classes = [IsAuthenticated, IsAdministrator]

    def get(self, request):
        metrics = get_metrics()
        if metrics is None:
            return Response({"error": "Metrics backend unavailable"}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response(metrics)


class ResetMetricsView(APIView):
    permission_classes = [IsAuthenticated, IsAdministrator]

    def post(self, request):
        try:
            reset_metrics()
        except redis.RedisError as exc:
            logger.warning("Metrics reset failed: %s", exc)
            return Response({"error": "Metrics backend unavailable"}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response({"detail": "Métriques réinitialisées"}, status=status.HTTP_200_OK)
