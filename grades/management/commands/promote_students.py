import logging

from django.core.management.base import BaseCommand, CommandError

from academics.models import Filiere, Student
from grades.exceptions import GradePortalError, IneligibleForPromotion
from grades.services.academic_year import validate_academic_year
from grades.services.promotion import promote_student

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Promeut au niveau suivant tous les étudiants éligibles d'une filière / d'un niveau."

    def add_arguments(self, parser):
        parser.add_argument("--filiere", dest="filiere", required=True, help="Code de la filière.")
        parser.add_argument("--level", dest="level", type=int, required=True, help="Niveau actuel des étudiants.")
        parser.add_argument("--academic-year", dest="academic_year", required=True, help="Année académique (ex: 2024-2025).")
        parser.add_argument("--promoted-by", dest="promoted_by", required=True, help="Auteur de la promotion.")
        parser.add_argument("--reason", dest="reason", default="Promotion annuelle", help="Motif enregistré dans l'historique.")
        parser.add_argument(
            "--to-filiere",
            dest="to_filiere",
            default=None,
            help="Filière cible (ex: passage BAC+3 -> BAC+5).",
        )

    def handle(self, *args, **options):
        filiere = Filiere.objects.filter(code__iexact=options["filiere"]).first()
        if filiere is None:
            raise CommandError(f"Filière inconnue: {options['filiere']}")
        try:
            year = validate_academic_year(options["academic_year"])
        except GradePortalError as exc:
            raise CommandError(str(exc.detail))

        level = options["level"]
        students = list(Student.objects.filter(filiere=filiere, level=level, status="Active").order_by("id"))
        if not students:
            self.stdout.write(self.style.WARNING("Aucun étudiant trouvé."))
            return

        promoted = refused = failed = 0
        for student in students:
            try:
                result = promote_student(
                    student.pk,
                    level + 1,
                    year,
                    options["promoted_by"],
                    reason=options["reason"],
                    filiere=options["to_filiere"],
                )
            except IneligibleForPromotion as exc:
                refused += 1
                codes = ", ".join(m.get("code", m.get("reason", "?")) for m in exc.extra.get("modules", []))
                self.stdout.write(f"{student.student_id}: non éligible ({codes})")
                continue
            except GradePortalError as exc:
                failed += 1
                self.stdout.write(self.style.ERROR(f"{student.student_id}: {exc.detail}"))
                continue
            promoted += 1
            self.stdout.write(f"{student.student_id}: {result.outcome} {result.from_level} -> {result.to_level}")

        self.stdout.write(
            self.style.SUCCESS(f"Terminé. Promus: {promoted}, non éligibles: {refused}, erreurs: {failed}.")
        )
