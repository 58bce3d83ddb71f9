import logging
import time
from typing import Optional

import redis
from django.conf import settings

logger = logging.getLogger(__name__)

PROMOTION_KEYS = {
    "succeeded": "metrics:promotions:succeeded",
    "rejected": "metrics:promotions:rejected",
    "failed": "metrics:promotions:failed",
}
BULK_UPDATED_KEY = "metrics:bulk_year:students_updated"
BULK_FAILED_KEY = "metrics:bulk_year:students_failed"
ARCHIVED_KEY = "metrics:archive:rows"
START_KEY = "metrics:start"

ALL_KEYS = list(PROMOTION_KEYS.values()) + [BULK_UPDATED_KEY, BULK_FAILED_KEY, ARCHIVED_KEY]


def _client():
    """
    Reuse the broker URL when no dedicated METRICS_REDIS_URL is configured.
    """
    url = getattr(settings, "METRICS_REDIS_URL", None) or getattr(settings, "CELERY_BROKER_URL", "redis://localhost:6379/0")
    return redis.Redis.from_url(url, socket_connect_timeout=1, socket_timeout=1)


def _enabled() -> bool:
    return getattr(settings, "METRICS_ENABLED", True)


def _safe_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _incr(key: str, amount: int = 1):
    # Les métriques ne doivent jamais faire échouer une promotion ou une mise à jour
    if not _enabled() or amount <= 0:
        return
    try:
        cli = _client()
        pipe = cli.pipeline()
        pipe.setnx(START_KEY, time.time())
        pipe.incrby(key, amount)
        pipe.execute()
    except redis.RedisError as exc:
        logger.warning("Metrics unavailable: %s", exc, extra={"metric": key})


def mark_promotion(outcome: str):
    _incr(PROMOTION_KEYS[outcome])


def mark_bulk_year(updated: int, failed: int):
    _incr(BULK_UPDATED_KEY, updated)
    _incr(BULK_FAILED_KEY, failed)


def mark_archived(rows: int):
    _incr(ARCHIVED_KEY, rows)


def reset_metrics():
    cli = _client()
    pipe = cli.pipeline()
    pipe.delete(*ALL_KEYS)
    pipe.set(START_KEY, time.time())
    pipe.execute()


def get_metrics() -> Optional[dict]:
    """
    Returns counters from Redis. If Redis is unreachable, returns None.
    """
    try:
        cli = _client()
        values = cli.mget(ALL_KEYS + [START_KEY])
    except redis.RedisError:
        return None
    counters = dict(zip(ALL_KEYS, values[:-1]))
    started_at = float(values[-1]) if values[-1] else None
    return {
        "promotions_succeeded": _safe_int(counters[PROMOTION_KEYS["succeeded"]]),
        "promotions_rejected": _safe_int(counters[PROMOTION_KEYS["rejected"]]),
        "promotions_failed": _safe_int(counters[PROMOTION_KEYS["failed"]]),
        "bulk_year_students_updated": _safe_int(counters[BULK_UPDATED_KEY]),
        "bulk_year_students_failed": _safe_int(counters[BULK_FAILED_KEY]),
        "archived_rows": _safe_int(counters[ARCHIVED_KEY]),
        "elapsed_seconds": round(time.time() - started_at, 2) if started_at else None,
    }
