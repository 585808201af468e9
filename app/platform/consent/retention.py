"""
Retention Sweeper
Deletes consent log rows older than the configured retention window.
"""

import logging
from datetime import datetime
from typing import Optional

from django.db import DatabaseError
from django.utils import timezone

from app.core.utils.dates import subtract_months
from app.platform.gating.options import (
    MAX_RETENTION_MONTHS,
    MIN_RETENTION_MONTHS,
    get_banner_options,
)

from .exceptions import StorageUnavailable
from .models import ConsentLog
from .utils import invalidate_consent_log_count

logger = logging.getLogger(__name__)


def retention_cutoff(retention_months: int, now: Optional[datetime] = None) -> datetime:
    if not MIN_RETENTION_MONTHS <= retention_months <= MAX_RETENTION_MONTHS:
        raise ValueError(
            f"retention_months must be between {MIN_RETENTION_MONTHS} and {MAX_RETENTION_MONTHS}"
        )
    return subtract_months(now or timezone.now(), retention_months)


class RetentionSweeper:
    """
    Predicate delete on created_at.
    Safe to repeat and to run concurrently: the end state only depends on the cutoff.
    """

    def sweep(self, retention_months: Optional[int] = None, now: Optional[datetime] = None) -> int:
        if retention_months is None:
            retention_months = get_banner_options()["retention_months"]

        cutoff = retention_cutoff(int(retention_months), now)
        try:
            deleted, _ = ConsentLog.objects.older_than(cutoff).delete()
        except DatabaseError as exc:
            logger.exception(f"Consent log retention sweep failed: {exc}")
            raise StorageUnavailable() from exc

        if deleted:
            invalidate_consent_log_count()
        logger.info(
            f"Consent log sweep removed {deleted} rows older than {cutoff.isoformat()} "
            f"({retention_months} months)"
        )
        return deleted

    def purge_all(self) -> int:
        """Administrative purge of the whole consent log."""
        try:
            deleted, _ = ConsentLog.objects.all().delete()
        except DatabaseError as exc:
            logger.exception(f"Consent log purge failed: {exc}")
            raise StorageUnavailable() from exc

        invalidate_consent_log_count()
        logger.warning(f"Consent log purged, {deleted} rows removed")
        return deleted
