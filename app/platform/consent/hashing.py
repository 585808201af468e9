"""
Consent identifier hashing and secret provisioning.

The browser sends a random 64-hex identifier; only an HMAC-SHA256 of it,
keyed with a server-held secret, is ever stored.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Callable, Optional, Union

from .exceptions import MissingSecret
from .models import ConsentOption

logger = logging.getLogger(__name__)

SECRET_OPTION_KEY = "consent_secret_salt"
SECRET_BYTES = 32


def hash_consent_id(consent_id: str, secret: Union[str, bytes, None]) -> str:
    """
    Keyed one-way transform of a consent identifier.

    Raises:
        MissingSecret: no secret provided. Never falls back to an unkeyed hash.
    """
    if not secret:
        raise MissingSecret()
    key = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)
    return hmac.new(key, consent_id.encode("utf-8"), hashlib.sha256).hexdigest()


def get_secret() -> Optional[str]:
    """Read the provisioned secret, or None if it does not exist yet."""
    value = (
        ConsentOption.objects.filter(key=SECRET_OPTION_KEY)
        .values_list("value", flat=True)
        .first()
    )
    return value or None


def ensure_secret() -> str:
    """
    Create the secret if absent and return the stored value.

    Concurrent callers converge on one value: the insert relies on the unique
    key, and get_or_create re-reads the winning row on IntegrityError.
    """
    option, created = ConsentOption.objects.get_or_create(
        key=SECRET_OPTION_KEY,
        defaults={"value": secrets.token_hex(SECRET_BYTES)},
    )
    if created:
        logger.info("Provisioned consent hashing secret")
        return option.value

    if not option.value:
        # Conditional update only fills an empty value; a racing writer wins.
        ConsentOption.objects.filter(key=SECRET_OPTION_KEY, value="").update(
            value=secrets.token_hex(SECRET_BYTES)
        )
        option.refresh_from_db(fields=["value"])
        logger.warning("Consent hashing secret was empty and has been regenerated")

    return option.value


class ConsentHasher:
    """Hashes consent identifiers with the secret from the option store."""

    def __init__(self, secret_loader: Callable[[], Optional[str]] = get_secret):
        self.secret_loader = secret_loader

    def hash(self, consent_id: str) -> str:
        return hash_consent_id(consent_id, self.secret_loader())
