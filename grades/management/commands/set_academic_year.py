from django.core.management.base import BaseCommand, CommandError

from academics.models import Student
from grades.exceptions import ValidationError
from grades.services.academic_year import bulk_set_academic_year
from grades.tasks import bulk_set_academic_year_task


class Command(BaseCommand):
    help = "Affecte une année académique à toutes les notes (courantes et archivées) d'un ensemble d'étudiants."

    def add_arguments(self, parser):
        parser.add_argument("--year", dest="year", required=True, help="Année académique (ex: 2024-2025).")
        parser.add_argument(
            "--student-ids",
            nargs="+",
            type=int,
            dest="student_ids",
            help="Liste d'IDs d'étudiants (sinon sélection par filière/niveau).",
        )
        parser.add_argument("--filiere", dest="filiere", help="Code de filière (insensible à la casse).")
        parser.add_argument("--level", dest="level", type=int, help="Niveau (1-5).")
        parser.add_argument(
            "--queue",
            dest="queue",
            default=None,
            help="Envoyer le traitement sur cette file Celery au lieu de l'exécuter directement.",
        )

    def handle(self, *args, **options):
        student_ids = options.get("student_ids")
        if not student_ids:
            qs = Student.objects.all()
            if options.get("filiere"):
                qs = qs.filter(filiere__code__iexact=options["filiere"])
            if options.get("level"):
                qs = qs.filter(level=options["level"])
            if not options.get("filiere") and not options.get("level"):
                raise CommandError("Indiquer --student-ids, --filiere ou --level.")
            student_ids = list(qs.order_by("id").values_list("id", flat=True))

        if not student_ids:
            self.stdout.write(self.style.WARNING("Aucun étudiant trouvé."))
            return

        if options.get("queue"):
            task = bulk_set_academic_year_task.apply_async(args=[student_ids, options["year"]], queue=options["queue"])
            self.stdout.write(f"Tâche {task.id} envoyée sur la file '{options['queue']}' pour {len(student_ids)} étudiants.")
            return

        try:
            result = bulk_set_academic_year(student_ids, options["year"])
        except ValidationError as exc:
            raise CommandError(str(exc.detail))

        for pk, error in result.failed.items():
            self.stdout.write(self.style.ERROR(f"Étudiant {pk}: {error}"))
        message = (
            f"Année {result.academic_year}: {result.updated_count} étudiants mis à jour "
            f"({result.grade_rows} notes, {result.history_rows} lignes d'historique), {len(result.failed)} échecs."
        )
        if result.partial:
            self.stdout.write(self.style.WARNING(message))
        else:
            self.stdout.write(self.style.SUCCESS(message))
