import django.core.validators
import django.db.models.deletion
import django.db.models.functions.text
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Filiere",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=128)),
                ("code", models.CharField(max_length=32, unique=True)),
                ("formation", models.CharField(choices=[("Management et Finance", "Management et Finance"), ("Ingénierie", "Ingénierie")], max_length=32)),
                ("degree", models.CharField(choices=[("BAC+3", "BAC+3"), ("BAC+5", "BAC+5")], max_length=8)),
                ("levels", models.JSONField(default=list)),
            ],
            options={
                "db_table": "filieres",
                "ordering": ["code"],
                "constraints": [
                    models.UniqueConstraint(django.db.models.functions.text.Lower("code"), name="filiere_code_ci_unique"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Administrator",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("first_name", models.CharField(max_length=64)),
                ("last_name", models.CharField(max_length=64)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("password_hash", models.CharField(max_length=256)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"db_table": "admins"},
        ),
        migrations.CreateModel(
            name="Professor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("professor_id", models.CharField(max_length=32, unique=True)),
                ("first_name", models.CharField(max_length=64)),
                ("last_name", models.CharField(max_length=64)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("status", models.CharField(choices=[("Active", "Active"), ("Inactive", "Inactive"), ("On Leave", "On Leave")], default="Active", max_length=16)),
                ("specialization", models.CharField(blank=True, max_length=128)),
                ("hire_date", models.DateField(blank=True, null=True)),
                ("password_hash", models.CharField(max_length=256)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("filieres", models.ManyToManyField(blank=True, related_name="professors", to="academics.filiere")),
            ],
            options={"db_table": "professors"},
        ),
        migrations.CreateModel(
            name="Student",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("student_id", models.CharField(max_length=32, unique=True)),
                ("first_name", models.CharField(max_length=64)),
                ("last_name", models.CharField(max_length=64)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("level", models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ("semester", models.CharField(blank=True, max_length=32)),
                ("gpa", models.DecimalField(decimal_places=2, default=0, max_digits=4)),
                ("status", models.CharField(choices=[("Active", "Active"), ("Inactive", "Inactive"), ("Graduated", "Graduated")], default="Active", max_length=16)),
                ("enrollment_date", models.DateField(blank=True, null=True)),
                ("password_hash", models.CharField(blank=True, max_length=256)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("filiere", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="students", to="academics.filiere")),
            ],
            options={"db_table": "students", "ordering": ["last_name", "first_name"]},
        ),
        migrations.CreateModel(
            name="Module",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(max_length=128)),
                ("description", models.TextField(blank=True)),
                ("credits", models.PositiveSmallIntegerField(default=0)),
                ("academic_level", models.CharField(max_length=16)),
                ("semester", models.CharField(max_length=32)),
                ("capacity", models.PositiveIntegerField(blank=True, null=True)),
                ("status", models.CharField(choices=[("active", "Active"), ("inactive", "Inactive")], default="active", max_length=8)),
                ("cc_percentage", models.PositiveSmallIntegerField(default=30, validators=[django.core.validators.MaxValueValidator(100)])),
                ("exam_percentage", models.PositiveSmallIntegerField(default=70, validators=[django.core.validators.MaxValueValidator(100)])),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("filiere", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="modules", to="academics.filiere")),
                ("professor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="modules", to="academics.professor")),
            ],
            options={
                "db_table": "modules",
                "ordering": ["code"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("cc_percentage", models.Value(100) - models.F("exam_percentage"))),
                        name="module_weights_sum_100",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Grade",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("cc_grade", models.DecimalField(blank=True, decimal_places=2, max_digits=4, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(20)])),
                ("exam_grade", models.DecimalField(blank=True, decimal_places=2, max_digits=4, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(20)])),
                ("module_grade", models.DecimalField(decimal_places=1, default=0, max_digits=3, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(20)])),
                ("academic_year", models.CharField(blank=True, max_length=9)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("module", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="grades", to="academics.module")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="grades", to="academics.student")),
            ],
            options={
                "db_table": "grades",
                "indexes": [models.Index(fields=["academic_year"], name="grade_academic_year_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("student", "module"), name="grade_student_module_unique"),
                ],
            },
        ),
        migrations.CreateModel(
            name="GradeHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("cc_grade", models.DecimalField(blank=True, decimal_places=2, max_digits=4, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(20)])),
                ("exam_grade", models.DecimalField(blank=True, decimal_places=2, max_digits=4, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(20)])),
                ("module_grade", models.DecimalField(decimal_places=1, default=0, max_digits=3, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(20)])),
                ("academic_year", models.CharField(blank=True, max_length=9)),
                ("archived_at", models.DateTimeField(auto_now_add=True)),
                ("module", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="grade_history", to="academics.module")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="grade_history", to="academics.student")),
            ],
            options={
                "db_table": "grade_history",
                "verbose_name_plural": "grade history",
                "indexes": [models.Index(fields=["academic_year", "student"], name="gradehistory_year_student_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("student", "module", "academic_year"), name="gradehistory_student_module_year_unique"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AcademicHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_level", models.PositiveSmallIntegerField()),
                ("to_level", models.PositiveSmallIntegerField()),
                ("from_filiere", models.CharField(blank=True, max_length=32)),
                ("to_filiere", models.CharField(blank=True, max_length=32)),
                ("academic_year", models.CharField(max_length=9)),
                ("promoted_by", models.CharField(max_length=128)),
                ("reason", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="academic_history", to="academics.student")),
            ],
            options={"db_table": "academic_history", "ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="Promotion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_level", models.PositiveSmallIntegerField()),
                ("to_level", models.PositiveSmallIntegerField()),
                ("filiere", models.CharField(blank=True, max_length=32)),
                ("academic_year", models.CharField(max_length=9)),
                ("promoted_by", models.CharField(max_length=128)),
                ("outcome", models.CharField(choices=[("PROMOTED", "Promoted"), ("GRADUATED", "Graduated")], default="PROMOTED", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="promotions", to="academics.student")),
            ],
            options={
                "db_table": "promotions",
                "indexes": [models.Index(fields=["student", "academic_year"], name="promotion_student_year_idx")],
            },
        ),
    ]
