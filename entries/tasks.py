"""
Celery tasks for scheduled entry maintenance.
"""
import logging
from datetime import timedelta

from celery import shared_task
from django.db import DatabaseError
from django.utils import timezone

from core.exceptions import InfrastructureError
from core.services.date_utils import DateRangeService
from core.utils.redis_lock import RedisLock
from .services import SubmissionService

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def auto_assign_rest_days_task(self, day=None):
    """
    Log approved rest days for members who missed ``day``.

    Args:
        day: YYYY-MM-DD string; defaults to yesterday in the configured timezone
    """
    target_day = DateRangeService.parse_date(day) if day else timezone.localdate() - timedelta(days=1)

    try:
        # One run per day across workers
        with RedisLock(f'auto-rest-day:{target_day.isoformat()}', ttl=600) as acquired:
            if not acquired:
                logger.info(f"Auto rest day run for {target_day} already in progress, skipping")
                return {'status': 'skipped', 'reason': 'in_progress'}

            result = SubmissionService.auto_assign_rest_days(target_day)
            return {'status': 'success', 'day': target_day.isoformat(), **result}
    except (DatabaseError, InfrastructureError) as e:
        logger.error(f"Storage error assigning rest days for {target_day}: {e}", exc_info=True)
        raise self.retry(exc=e, countdown=60)
