"""
Consent Audit App Config
"""

from django.apps import AppConfig
from django.db import DEFAULT_DB_ALIAS, connections
from django.db.models.signals import post_migrate


def provision_secret(sender, using=DEFAULT_DB_ALIAS, **kwargs):
    from app.platform.consent import hashing
    from app.platform.consent.models import ConsentOption

    # A partial migrate (e.g. only "core") fires the signal before consent_options exists
    if ConsentOption._meta.db_table not in connections[using].introspection.table_names():
        return
    hashing.ensure_secret()


class ConsentConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'app.platform.consent'
    verbose_name = 'Consent Audit'

    def ready(self):
        # First activation: create the hashing secret once the table exists
        post_migrate.connect(provision_secret, sender=self, dispatch_uid="consent_provision_secret")
