"""
Management command to create the consent hashing secret if it is missing.
Run: python manage.py provision_consent_secret
"""

from django.core.management.base import BaseCommand

from app.platform.consent.hashing import ensure_secret, get_secret


class Command(BaseCommand):
    help = 'Create the consent hashing secret if it does not exist yet'

    def handle(self, *args, **options):
        existed = get_secret() is not None
        ensure_secret()
        if existed:
            self.stdout.write('Consent hashing secret already provisioned')
        else:
            self.stdout.write(self.style.SUCCESS('Consent hashing secret created'))
