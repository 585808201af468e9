from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from app.core.utils.dates import subtract_months
from app.platform.consent.hashing import get_secret
from app.platform.consent.models import ConsentLog, ConsentOption

pytestmark = pytest.mark.django_db


def run(*args, **kwargs):
    out = StringIO()
    call_command(*args, stdout=out, **kwargs)
    return out.getvalue()


class TestCleanupConsentLogs:
    def test_uses_configured_window(self):
        now = timezone.now()
        for months in (2, 14):
            ConsentLog.objects.create(consent_hash="c" * 64, categories=[], created_at=subtract_months(now, months))

        assert "Deleted 1 consent log entries" in run("cleanup_consent_logs")
        assert ConsentLog.objects.count() == 1

    def test_months_override(self):
        ConsentLog.objects.create(consent_hash="c" * 64, categories=[], created_at=subtract_months(timezone.now(), 2))

        assert "Deleted 1 consent log entries" in run("cleanup_consent_logs", months=1)

    def test_nothing_to_delete(self):
        assert "Deleted 0 consent log entries" in run("cleanup_consent_logs")

    @pytest.mark.parametrize("months", [0, 121])
    def test_invalid_window(self, months):
        with pytest.raises(CommandError):
            run("cleanup_consent_logs", months=months)


class TestProvisionConsentSecret:
    def test_existing_secret_is_kept(self):
        secret = get_secret()
        assert "already provisioned" in run("provision_consent_secret")
        assert get_secret() == secret

    def test_creates_missing_secret(self):
        ConsentOption.objects.all().delete()

        assert "created" in run("provision_consent_secret")
        assert get_secret() is not None
