"""
Consent Script Gating App Config
"""

from django.apps import AppConfig


class GatingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'app.platform.gating'
    verbose_name = 'Consent Script Gating'
