"""Helper functions for writing audit logs."""
from typing import Optional, Mapping, Any

from app.core.models import AuditLog


def get_client_ip(request) -> Optional[str]:
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


def record_audit(*, actor=None, action: str, description: str = "", metadata: Optional[Mapping[str, Any]] = None, ip_address: Optional[str] = None, user_agent: str = "") -> AuditLog:
    metadata = dict(metadata or {})
    if actor is not None and not getattr(actor, "is_authenticated", False):
        actor = None
    return AuditLog.objects.create(
        actor=actor,
        action=action,
        description=description,
        metadata=metadata,
        ip_address=ip_address or None,
        user_agent=(user_agent or "")[:500],
    )


def record_request_audit(request, *, action: str, description: str = "", metadata: Optional[Mapping[str, Any]] = None) -> AuditLog:
    return record_audit(
        actor=getattr(request, "user", None),
        action=action,
        description=description,
        metadata=metadata,
        ip_address=get_client_ip(request),
        user_agent=request.META.get("HTTP_USER_AGENT", ""),
    )
