from django.contrib import admin
from django.urls import path

from academics.api import FiliereListView, LoginView, MeView, ModuleDetailView, ModuleListView
from grades.api import (
    ArchiveAcademicYearView,
    BulkAcademicYearView,
    EligibilityView,
    GradeDetailView,
    GradeListView,
    MetricsView,
    PromoteStudentView,
    ResetMetricsView,
)


urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/login/", LoginView.as_view(), name="login"),
    path("api/auth/me/", MeView.as_view(), name="me"),
    path("api/filieres/", FiliereListView.as_view(), name="filiere-list"),
    path("api/modules/", ModuleListView.as_view(), name="module-list"),
    path("api/modules/<int:pk>/", ModuleDetailView.as_view(), name="module-detail"),
    path("api/grades/", GradeListView.as_view(), name="grade-list"),
    path("api/grades/<int:pk>/", GradeDetailView.as_view(), name="grade-detail"),
    path("api/students/promote/", PromoteStudentView.as_view(), name="promote-student"),
    path("api/students/<int:pk>/eligibility/", EligibilityView.as_view(), name="student-eligibility"),
    path("api/students/academic-year/", BulkAcademicYearView.as_view(), name="bulk-academic-year"),
    path("api/academic-years/archive/", ArchiveAcademicYearView.as_view(), name="archive-academic-year"),
    path("api/metrics/", MetricsView.as_view(), name="metrics"),
    path("api/metrics/reset/", ResetMetricsView.as_view(), name="reset-metrics"),
]
