"""Shared fixtures for the consent gate test suite."""

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from app.platform.gating.document import CookieJar, PageDocument
from app.platform.gating.gate import ScriptGate
from app.platform.gating.options import sanitize_options
from app.platform.gating.runtime import ConsentBroadcaster, RecordingExecutor, RuntimeConfig
from app.platform.gating.services import build_registry

CONSENT_URL = "/api/v1/consent"


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(
        username="operator",
        password="operator-pass-123",
        is_staff=True,
    )


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture
def consent_secret(db):
    from app.platform.consent.hashing import ensure_secret
    return ensure_secret()


@pytest.fixture
def banner_options():
    return sanitize_options({
        "ga4_id": "G-TEST123",
        "meta_pixel_id": "1234567890",
        "clarity_id": "clar1ty",
        "category_scripts": {"functionality": "window.chat = true;"},
        "cookies_to_erase": "_ga,_gid,_fbp",
    })


@pytest.fixture
def registry(banner_options):
    return build_registry(banner_options)


@pytest.fixture
def page_html(registry):
    return ScriptGate(registry).render()


@pytest.fixture
def cookies():
    return CookieJar()


@pytest.fixture
def document(page_html, cookies):
    return PageDocument.from_html(page_html, cookies)


@pytest.fixture
def executor():
    return RecordingExecutor()


@pytest.fixture
def broadcaster():
    return ConsentBroadcaster()


class FakeSubmitter:
    def __init__(self, error=None):
        self.payloads = []
        self.error = error

    def submit(self, payload):
        self.payloads.append(payload)
        if self.error:
            raise self.error


@pytest.fixture
def submitter():
    return FakeSubmitter()


@pytest.fixture
def runtime_config(banner_options):
    return RuntimeConfig(
        consent_url=CONSENT_URL,
        version="2024-01",
        category_scripts={"functionality": "window.chat = true;"},
        cookies_to_erase=["_ga", "_gid", "_fbp"],
    )
