import redis
from django.core.management.base import BaseCommand, CommandError

from grades.services.metrics import reset_metrics


class Command(BaseCommand):
    help = "Réinitialise les compteurs Redis (promotions, années académiques, archivage)."

    def handle(self, *args, **options):
        try:
            reset_metrics()
        except redis.RedisError as exc:
            raise CommandError(f"Redis indisponible: {exc}")
        self.stdout.write(self.style.SUCCESS("Métriques réinitialisées."))
