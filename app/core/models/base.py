"""Shared abstract models and mixins."""
from django.db import models
from django.utils import timezone


class TimestampedModel(models.Model):
    """Adds created/updated timestamps."""

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class AppendOnlyError(Exception):
    """Raised when code tries to modify a row of an append-only table."""


class AppendOnlyQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise AppendOnlyError(f"{self.model.__name__} rows cannot be updated")

    def older_than(self, cutoff):
        return self.filter(created_at__lt=cutoff)


class AppendOnlyModel(models.Model):
    """
    Insert-only rows with a creation timestamp.
    Rows may be deleted, never changed.
    """

    created_at = models.DateTimeField(default=timezone.now, editable=False, db_index=True)

    objects = AppendOnlyQuerySet.as_manager()

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AppendOnlyError(f"{self.__class__.__name__} rows cannot be updated")
        super().save(*args, **kwargs)

    class Meta:
        abstract = True
