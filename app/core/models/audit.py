"""Audit logging primitives for administrative actions."""
from django.conf import settings
from django.db import models
from datetime import timezone as dt_timezone

from .base import AppendOnlyModel


class AuditLog(AppendOnlyModel):
    """Tracks administrative actions taken on consent data (export, purge, sweep)."""

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="audit_logs",
    )

    action = models.CharField(max_length=64)
    description = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)

    class Meta:
        db_table = "core_audit_logs"
        indexes = [
            models.Index(fields=["action"], name="core_audit_action_idx"),
        ]
        ordering = ["-created_at"]

    def __str__(self):
        ts = self.created_at.astimezone(dt_timezone.utc) if self.created_at else ""
        actor = getattr(self.actor, "username", None) or "system"
        return f"[{ts}] {actor} -> {self.action}"
