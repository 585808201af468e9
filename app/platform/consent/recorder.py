"""
Consent Recorder
Validates a consent submission, hashes the identifier and appends one audit row.
"""

import logging
import re
from typing import Iterable, List, Optional

from django.db import DatabaseError

from app.core.constants import CONSENT_ID_PATTERN, ConsentCategory, ConsentSource

from .exceptions import InvalidIdentifier, InvalidSource, StorageUnavailable
from .hashing import ConsentHasher
from .models import ConsentLog
from .utils import invalidate_consent_log_count

logger = logging.getLogger(__name__)

CONSENT_ID_RE = re.compile(CONSENT_ID_PATTERN)
DEFAULT_VERSION_HASH = "1.0"
VERSION_HASH_MAX_LENGTH = 64


def is_valid_consent_id(value) -> bool:
    return isinstance(value, str) and CONSENT_ID_RE.fullmatch(value) is not None


def sanitize_categories(categories) -> List[str]:
    """Reduce client-declared categories to the known subset."""
    if not isinstance(categories, (list, tuple)):
        return []
    return [category.value for category in ConsentCategory.filter_known(categories)]


class ConsentRecorder:
    """
    Appends consent audit records.
    No upsert and no de-duplication: every call is a distinct audit event.
    """

    def __init__(self, hasher: Optional[ConsentHasher] = None):
        self.hasher = hasher or ConsentHasher()

    def record(
        self,
        consent_id: str,
        categories: Iterable[str],
        version_hash: Optional[str] = DEFAULT_VERSION_HASH,
        source: str = ConsentSource.ACCEPT,
    ) -> int:
        """
        Store one consent decision and return the new record id.

        Raises:
            InvalidIdentifier: consent_id is not 64 lowercase hex characters.
            InvalidSource: source is neither "accept" nor "change".
            MissingSecret: the hashing secret has not been provisioned.
            StorageUnavailable: the insert failed.
        """
        if not is_valid_consent_id(consent_id):
            raise InvalidIdentifier()

        if source not in ConsentSource.values:
            raise InvalidSource()

        granted = sanitize_categories(categories)
        version_hash = (version_hash or "").strip()[:VERSION_HASH_MAX_LENGTH]
        consent_hash = self.hasher.hash(consent_id)

        try:
            entry = ConsentLog.objects.create(
                consent_hash=consent_hash,
                categories=granted,
                version_hash=version_hash,
                source=source,
            )
        except DatabaseError as exc:
            logger.exception(f"Failed to write consent log entry: {exc}")
            raise StorageUnavailable() from exc

        invalidate_consent_log_count()
        logger.info(
            f"Consent recorded id={entry.pk} hash={consent_hash[:12]} "
            f"source={source} categories={','.join(granted) or '-'}"
        )
        return entry.pk
