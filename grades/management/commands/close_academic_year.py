from django.core.management.base import BaseCommand, CommandError

from grades.exceptions import ValidationError
from grades.services.academic_year import archive_academic_year


class Command(BaseCommand):
    help = "Clôture une année académique: copie les notes courantes dans grade_history."

    def add_arguments(self, parser):
        parser.add_argument("--year", dest="year", required=True, help="Année académique (ex: 2024-2025).")
        parser.add_argument(
            "--student-ids",
            nargs="+",
            type=int,
            dest="student_ids",
            help="Limiter l'archivage à ces étudiants.",
        )

    def handle(self, *args, **options):
        try:
            archived = archive_academic_year(options["year"], options.get("student_ids"))
        except ValidationError as exc:
            raise CommandError(str(exc.detail))
        self.stdout.write(self.style.SUCCESS(f"Année {options['year']} clôturée. Notes archivées: {archived}."))
