"""
Consent Audit Models
Minimal, anonymized consent records plus the option store holding the
hashing secret.
"""

from django.db import models

from app.core.constants import ConsentSource
from app.core.models import AppendOnlyModel, TimestampedModel


class ConsentLog(AppendOnlyModel):
    """
    One row per consent submission.
    The browser identifier is stored only as a keyed hash; rows are never updated.
    """

    id = models.BigAutoField(primary_key=True)

    consent_hash = models.CharField(
        max_length=64,
        db_index=True,
        help_text="HMAC-SHA256 of the client consent identifier"
    )

    categories = models.JSONField(
        default=list,
        help_text="Granted category names, in submission order"
    )

    version_hash = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Policy / banner text version in effect"
    )

    source = models.CharField(
        max_length=10,
        choices=ConsentSource.choices,
        default=ConsentSource.ACCEPT,
    )

    class Meta:
        db_table = "consent_log"
        ordering = ["-created_at", "-id"]
        verbose_name = "consent log entry"
        verbose_name_plural = "consent log"

    def __str__(self):
        return f"{self.consent_hash[:16]}... {self.source} {self.categories_display}"

    @property
    def categories_display(self):
        return ",".join(self.categories or [])


class ConsentOption(TimestampedModel):
    """
    Key/value configuration store for values the operator never edits by hand
    (the hashing secret, schema markers).
    """

    key = models.CharField(max_length=191, unique=True)
    value = models.TextField(blank=True)

    class Meta:
        db_table = "consent_options"

    def __str__(self):
        return self.key
