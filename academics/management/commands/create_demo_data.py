import random

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from academics.models import Administrator, Filiere, Grade, Module, Professor, Student, level_label

FILIERES = [
    ("MGE3", "MGE", "Management et Finance", "BAC+3", [1, 2, 3]),
    ("MDI3", "MDI", "Management et Finance", "BAC+3", [1, 2, 3]),
    ("FACG4", "FACG", "Management et Finance", "BAC+5", [4, 5]),
    ("MRI5", "MRI", "Management et Finance", "BAC+5", [4, 5]),
    ("IISI3", "IISI (BAC+3)", "Ingénierie", "BAC+3", [1, 2, 3]),
    ("IISI5", "IISI (BAC+5)", "Ingénierie", "BAC+5", [4, 5]),
    ("IISRT5", "IISRT", "Ingénierie", "BAC+5", [4, 5]),
]

MODULE_NAMES = ["Mathématiques", "Programmation", "Bases de données", "Économie", "Communication"]
SEMESTERS = ["Semester 1", "Semester 2"]


class Command(BaseCommand):
    help = "Crée des données de démonstration (filières, modules, professeur, étudiants, notes)."

    def add_arguments(self, parser):
        parser.add_argument("--students", type=int, default=10, help="Nombre d'étudiants par filière/niveau (défaut: 10)")
        parser.add_argument("--filiere", type=str, default="IISI3", help="Filière à peupler (défaut: IISI3)")
        parser.add_argument("--academic-year", type=str, default="2024-2025", help="Année académique des notes")
        parser.add_argument("--password", type=str, default="password123", help="Mot de passe des comptes créés")

    def handle(self, *args, **options):
        target_students = options["students"]
        year = options["academic_year"]
        password_hash = make_password(options["password"])

        for code, name, formation, degree, levels in FILIERES:
            Filiere.objects.get_or_create(
                code=code, defaults={"name": name, "formation": formation, "degree": degree, "levels": levels}
            )
        filiere = Filiere.objects.get(code__iexact=options["filiere"])

        Administrator.objects.get_or_create(
            email="admin@university.edu",
            defaults={"first_name": "John", "last_name": "Smith", "password_hash": password_hash},
        )
        professor, _ = Professor.objects.get_or_create(
            professor_id="PROF-001",
            defaults={
                "first_name": "Emily",
                "last_name": "Johnson",
                "email": "prof.johnson@university.edu",
                "specialization": "Informatique",
                "password_hash": password_hash,
            },
        )
        professor.filieres.add(filiere)

        created = 0
        for level in filiere.levels:
            modules = []
            for index, module_name in enumerate(MODULE_NAMES):
                module, _ = Module.objects.get_or_create(
                    code=f"{filiere.code}-L{level}-{index + 1:02d}",
                    defaults={
                        "name": f"{module_name} {level}",
                        "filiere": filiere,
                        "academic_level": level_label(level),
                        "semester": SEMESTERS[index % 2],
                        "professor": professor,
                        "credits": 4,
                        "capacity": 40,
                    },
                )
                modules.append(module)

            for i in range(target_students):
                code = f"STU{filiere.code}{level}{i + 1:03d}"
                student, was_created = Student.objects.get_or_create(
                    student_id=code,
                    defaults={
                        "first_name": f"Étudiant{i + 1}",
                        "last_name": filiere.name,
                        "email": f"{code.lower()}@supmti.ma",
                        "filiere": filiere,
                        "level": level,
                        "semester": SEMESTERS[0],
                        "password_hash": password_hash,
                    },
                )
                created += 1 if was_created else 0
                for module in modules:
                    Grade.objects.update_or_create(
                        student=student,
                        module=module,
                        defaults={
                            "cc_grade": random.randint(6, 18),
                            "exam_grade": random.randint(6, 18),
                            "academic_year": year,
                        },
                    )

        self.stdout.write(
            self.style.SUCCESS(f"Filière: {filiere.code}, niveaux {filiere.levels}, étudiants créés: {created}")
        )
