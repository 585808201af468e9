"""
Management command that applies the consent log retention window.
Schedule it daily (cron, systemd timer, Celery beat...):
    python manage.py cleanup_consent_logs
"""

from django.core.management.base import BaseCommand, CommandError

from app.platform.consent.exceptions import StorageError
from app.platform.consent.retention import RetentionSweeper


class Command(BaseCommand):
    help = 'Delete consent log entries older than the retention window'

    def add_arguments(self, parser):
        parser.add_argument(
            '--months',
            type=int,
            default=None,
            help='Override the configured retention window (1-120 months)',
        )

    def handle(self, *args, **options):
        months = options['months']
        try:
            deleted = RetentionSweeper().sweep(months)
        except ValueError as exc:
            raise CommandError(str(exc))
        except StorageError as exc:
            raise CommandError(f'Retention sweep failed: {exc}')

        self.stdout.write(self.style.SUCCESS(f'Deleted {deleted} consent log entries'))
