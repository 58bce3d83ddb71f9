import logging

from celery import shared_task
from django.db import OperationalError

from grades.services.academic_year import archive_academic_year, bulk_set_academic_year

logger = logging.getLogger(__name__)


@shared_task(bind=True, autoretry_for=(OperationalError,), retry_backoff=5, max_retries=3)
def archive_academic_year_task(self, academic_year: str, student_ids=None):
    logger.info("Start archive_academic_year", extra={"academic_year": academic_year, "task_id": self.request.id})
    return archive_academic_year(academic_year, student_ids)


@shared_task(bind=True, autoretry_for=(OperationalError,), retry_backoff=5, max_retries=3)
def bulk_set_academic_year_task(self, student_ids, academic_year: str):
    result = bulk_set_academic_year(student_ids, academic_year)
    logger.info(
        "bulk_set_academic_year_task done",
        extra={"task_id": self.request.id, "updated": result.updated_count, "failed": len(result.failed)},
    )
    return result.as_dict()
