from django.contrib import admin

from .models import (
    AcademicHistory,
    Administrator,
    Filiere,
    Grade,
    GradeHistory,
    Module,
    Professor,
    Promotion,
    Student,
)


@admin.register(Filiere)
class FiliereAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "formation", "degree", "levels")
    list_filter = ("formation", "degree")
    search_fields = ("code", "name")


@admin.register(Administrator)
class AdministratorAdmin(admin.ModelAdmin):
    list_display = ("first_name", "last_name", "email", "is_active")
    search_fields = ("first_name", "last_name", "email")
    exclude = ("password_hash",)


@admin.register(Professor)
class ProfessorAdmin(admin.ModelAdmin):
    list_display = ("professor_id", "first_name", "last_name", "status", "specialization")
    list_filter = ("status", "filieres")
    search_fields = ("professor_id", "first_name", "last_name", "email")
    exclude = ("password_hash",)


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("student_id", "first_name", "last_name", "filiere", "level", "semester", "status")
    list_filter = ("filiere", "level", "status")
    search_fields = ("student_id", "first_name", "last_name", "email")
    exclude = ("password_hash",)


@admin.register(Module)
class ModuleAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "filiere", "academic_level", "semester", "cc_percentage", "exam_percentage")
    list_filter = ("filiere", "academic_level", "semester", "status")
    search_fields = ("code", "name", "filiere__code")


@admin.register(Grade)
class GradeAdmin(admin.ModelAdmin):
    list_display = ("student", "module", "cc_grade", "exam_grade", "module_grade", "academic_year")
    list_filter = ("academic_year", "module__filiere")
    search_fields = ("student__first_name", "student__last_name", "student__student_id", "module__code")
    readonly_fields = ("module_grade",)


@admin.register(GradeHistory)
class GradeHistoryAdmin(admin.ModelAdmin):
    list_display = ("student", "module", "module_grade", "academic_year", "archived_at")
    list_filter = ("academic_year",)
    search_fields = ("student__student_id", "module__code")
    readonly_fields = ("module_grade",)


@admin.register(AcademicHistory)
class AcademicHistoryAdmin(admin.ModelAdmin):
    list_display = ("student", "from_level", "to_level", "academic_year", "promoted_by", "created_at")
    list_filter = ("academic_year",)
    search_fields = ("student__student_id", "promoted_by")


@admin.register(Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = ("student", "outcome", "from_level", "to_level", "filiere", "academic_year", "created_at")
    list_filter = ("outcome", "academic_year")
    search_fields = ("student__student_id",)
