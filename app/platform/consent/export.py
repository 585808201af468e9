"""CSV export of the consent log for operator review."""
import csv
from datetime import timezone as dt_timezone
from typing import Iterable, Iterator

from django.utils import timezone

from .models import ConsentLog

EXPORT_HEADER = ["ID", "Created At", "Consent Hash", "Categories", "Version Hash", "Source"]

# Leading characters a spreadsheet would evaluate as a formula
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


class Echo:
    """File-like object whose write() returns the value, for streaming csv output."""

    def write(self, value):
        return value


def neutralize_cell(value):
    """Quote client-supplied text so spreadsheets show it instead of evaluating it."""
    if isinstance(value, str) and value.startswith(FORMULA_PREFIXES):
        return f"'{value}"
    return value


def export_filename(now=None) -> str:
    now = now or timezone.now()
    return f"ccm-consent-log-{now.date().isoformat()}.csv"


def export_rows(queryset: Iterable[ConsentLog]) -> Iterator[list]:
    yield EXPORT_HEADER
    for entry in queryset:
        yield [
            entry.pk,
            entry.created_at.astimezone(dt_timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            entry.consent_hash,
            neutralize_cell(entry.categories_display),
            neutralize_cell(entry.version_hash),
            entry.source,
        ]


def iter_csv_lines(queryset=None) -> Iterator[str]:
    if queryset is None:
        queryset = ConsentLog.objects.order_by("-created_at", "-id").iterator()
    writer = csv.writer(Echo())
    for row in export_rows(queryset):
        yield writer.writerow(row)
