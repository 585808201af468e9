from .base import (  # noqa: F401
    AppendOnlyError,
    AppendOnlyModel,
    AppendOnlyQuerySet,
    TimestampedModel,
)
from .audit import AuditLog  # noqa: F401
