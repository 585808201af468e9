"""
Consent Utility Functions
Cached counters over the consent log
"""

from django.core.cache import cache

from .models import ConsentLog

CONSENT_LOG_COUNT_CACHE_KEY = "consent:log_count"
CONSENT_LOG_COUNT_TTL = 60 * 60


def get_consent_log_count() -> int:
    """Total number of consent log rows (cached until the table changes)."""
    count = cache.get(CONSENT_LOG_COUNT_CACHE_KEY)
    if count is None:
        count = ConsentLog.objects.count()
        cache.set(CONSENT_LOG_COUNT_CACHE_KEY, count, CONSENT_LOG_COUNT_TTL)
    return count


def invalidate_consent_log_count() -> None:
    cache.delete(CONSENT_LOG_COUNT_CACHE_KEY)
