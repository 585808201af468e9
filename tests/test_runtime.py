"""
Consent runtime: the only component allowed to turn inert placeholders into
running scripts.
"""

import re
from datetime import datetime, timezone

import pytest
import requests

from app.core.constants import ConsentCategory
from app.platform.gating.document import CookieJar, PageDocument
from app.platform.gating.runtime import (
    CONSENT_COOKIE,
    CONSENT_ID_COOKIE,
    CONSENT_ID_LIFETIME_DAYS,
    ConsentDecision,
    ConsentRuntime,
    ConsentState,
    HttpConsentSubmitter,
    RecordingExecutor,
    RuntimeConfig,
    consent_mode_vector,
    erase_pattern,
)
from app.platform.gating.runtime_config import build_runtime_config

from .conftest import FakeSubmitter

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

ANALYTICS_HANDLES = {
    "ccm-consent-ga4-loader",
    "ccm-consent-ga4-init",
    "ccm-consent-clarity",
    "ccm-consent-clarity-init",
}
MARKETING_HANDLES = {"ccm-consent-meta", "ccm-consent-meta-init"}


@pytest.fixture
def runtime(runtime_config, document, executor, broadcaster, submitter):
    return ConsentRuntime(
        runtime_config,
        document,
        executor,
        broadcaster=broadcaster,
        submitter=submitter,
        clock=lambda: NOW,
    )


def executed_handles(executor):
    return [tag.handle for tag in executor.executed]


class TestBeforeConsent:
    def test_nothing_runs_on_load(self, runtime, executor, submitter):
        assert runtime.load() == ConsentState.UNKNOWN
        assert executor.executed == []
        assert executor.inline_runs == []
        assert submitter.payloads == []

    def test_default_signal_denies_everything(self, runtime, broadcaster):
        runtime.load()
        command, vector = broadcaster.consent_calls[0]
        assert command == "default"
        assert vector["analytics_storage"] == "denied"
        assert vector["ad_storage"] == "denied"
        assert vector["security_storage"] == "granted"
        assert broadcaster.data_layer[0]["event"] == "cookie_consent_default"

    def test_show_preferences_does_not_decide(self, runtime, executor):
        runtime.load()
        assert runtime.show_preferences() == ConsentState.UNKNOWN
        assert executor.executed == []

    def test_only_necessary_is_granted(self, runtime):
        assert runtime.is_granted("necessary")
        assert not runtime.is_granted("analytics")
        assert not runtime.is_granted("bogus")


class TestFirstConsent:
    def test_activates_only_granted_categories(self, runtime, executor):
        runtime.load()
        assert runtime.accept(["analytics"]) == ConsentState.DECIDED

        assert set(executed_handles(executor)) == ANALYTICS_HANDLES
        assert len(executor.executed) == 4
        assert all(tag.activated for tag in executor.executed)

    def test_submits_once_with_accept_source(self, runtime, submitter, cookies):
        runtime.load()
        runtime.accept(["analytics", "bogus"])

        assert len(submitter.payloads) == 1
        payload = submitter.payloads[0]
        assert payload["categories"] == ["analytics"]
        assert payload["source"] == "accept"
        assert payload["version_hash"] == "2024-01"
        assert re.fullmatch(r"[a-f0-9]{64}", payload["consent_id"])
        assert cookies.get(CONSENT_ID_COOKIE) == payload["consent_id"]

    def test_decision_is_stored(self, runtime, cookies):
        runtime.load()
        runtime.accept(["marketing"])

        decision = ConsentDecision.from_cookie(cookies.get(CONSENT_COOKIE))
        assert decision.accepted == {ConsentCategory.NECESSARY, ConsentCategory.MARKETING}
        assert decision.timestamp == NOW

    def test_cookie_lifetimes(self, runtime, runtime_config, cookies):
        runtime.load()
        runtime.accept(["analytics"])

        assert cookies.max_age_days(CONSENT_COOKIE) == runtime_config.cookie_expiration_days
        assert cookies.max_age_days(CONSENT_ID_COOKIE) == CONSENT_ID_LIFETIME_DAYS == 365

    def test_broadcasts_consent_update(self, runtime, broadcaster):
        runtime.load()
        runtime.accept(["analytics"])

        command, vector = broadcaster.consent_calls[-1]
        assert command == "update"
        assert vector["analytics_storage"] == "granted"
        assert vector["ad_storage"] == "denied"
        assert broadcaster.data_layer[-1]["event"] == "cookie_consent_update"

    def test_accept_all_runs_category_scripts(self, runtime, executor, submitter):
        runtime.load()
        runtime.accept_all()

        assert set(executed_handles(executor)) == ANALYTICS_HANDLES | MARKETING_HANDLES
        assert executor.inline_runs == [(ConsentCategory.FUNCTIONALITY, "window.chat = true;")]
        assert submitter.payloads[0]["categories"] == ["analytics", "marketing", "functionality"]

    def test_accept_necessary_runs_nothing(self, runtime, executor, submitter):
        runtime.load()
        runtime.accept_necessary()

        assert executor.executed == []
        assert submitter.payloads[0]["categories"] == []

    def test_existing_consent_id_is_reused(self, runtime, cookies, submitter):
        cookies.set(CONSENT_ID_COOKIE, "b" * 64)
        runtime.load()
        runtime.accept(["analytics"])
        assert submitter.payloads[0]["consent_id"] == "b" * 64


class TestChangingConsent:
    def test_only_newly_granted_categories_activate(self, runtime, executor):
        runtime.load()
        runtime.accept(["analytics"])
        assert runtime.show_preferences() == ConsentState.REVISING
        runtime.accept(["analytics", "marketing"])

        handles = executed_handles(executor)
        assert len(handles) == 6
        assert len(set(handles)) == 6
        assert set(handles[4:]) == MARKETING_HANDLES

    def test_change_is_submitted_with_change_source(self, runtime, submitter):
        runtime.load()
        runtime.accept(["analytics"])
        runtime.show_preferences()
        runtime.accept(["analytics", "marketing"])

        assert [p["source"] for p in submitter.payloads] == ["accept", "change"]
        assert submitter.payloads[1]["categories"] == ["analytics", "marketing"]
        assert submitter.payloads[0]["consent_id"] == submitter.payloads[1]["consent_id"]

    def test_unchanged_decision_is_a_no_op(self, runtime, submitter, broadcaster):
        runtime.load()
        runtime.accept(["analytics"])
        calls = len(broadcaster.consent_calls)
        runtime.show_preferences()

        assert runtime.accept(["analytics"]) == ConsentState.DECIDED
        assert len(submitter.payloads) == 1
        assert len(broadcaster.consent_calls) == calls

    def test_close_preferences_returns_to_decided(self, runtime):
        runtime.load()
        runtime.accept(["analytics"])
        runtime.show_preferences()
        assert runtime.close_preferences() == ConsentState.DECIDED

    def test_revocation_erases_matching_cookies(self, runtime, cookies):
        runtime.load()
        runtime.accept_all()
        for name in ("_ga", "_ga_ABC123", "_fbp", "sessionid", "csrftoken"):
            cookies.set(name, "1")

        runtime.show_preferences()
        runtime.accept_necessary()

        assert "_ga" not in cookies
        assert "_ga_ABC123" not in cookies
        assert "_fbp" not in cookies
        assert "sessionid" in cookies
        assert "csrftoken" in cookies
        assert CONSENT_COOKIE in cookies
        assert CONSENT_ID_COOKIE in cookies

    def test_consent_cookies_survive_broad_patterns(self, document, executor, cookies):
        config = RuntimeConfig(cookies_to_erase=["c", "_ga"])
        runtime = ConsentRuntime(config, document, executor, submitter=FakeSubmitter(), clock=lambda: NOW)
        runtime.load()
        runtime.accept(["analytics"])
        cookies.set("custom", "1")

        runtime.accept_necessary()

        assert "custom" not in cookies
        assert CONSENT_COOKIE in cookies
        assert CONSENT_ID_COOKIE in cookies

    def test_granting_more_erases_nothing(self, runtime, cookies):
        runtime.load()
        runtime.accept(["analytics"])
        cookies.set("_ga", "1")

        runtime.accept(["analytics", "marketing"])
        assert "_ga" in cookies

    def test_revoked_scripts_stay_activated(self, runtime, executor, document):
        runtime.load()
        runtime.accept(["analytics"])
        runtime.accept_necessary()

        assert len(executor.executed) == 4
        assert all(tag.activated for tag in document.tags_for(ConsentCategory.ANALYTICS))
        assert not runtime.is_granted("analytics")

    def test_regranting_does_not_rerun_scripts(self, runtime, executor):
        runtime.load()
        runtime.accept(["analytics"])
        runtime.accept_necessary()
        runtime.accept(["analytics"])
        assert len(executor.executed) == 4


class TestStoredDecision:
    def stored_cookies(self, *categories):
        decision = ConsentDecision(
            accepted=frozenset({ConsentCategory.NECESSARY, *categories}),
            timestamp=NOW,
        )
        return CookieJar({CONSENT_COOKIE: decision.to_cookie()})

    def test_load_restores_and_activates(self, runtime_config, page_html, executor):
        cookies = self.stored_cookies(ConsentCategory.ANALYTICS)
        submitter = FakeSubmitter()
        runtime = ConsentRuntime(
            runtime_config, PageDocument.from_html(page_html, cookies), executor, submitter=submitter,
        )

        assert runtime.load() == ConsentState.DECIDED
        assert set(executed_handles(executor)) == ANALYTICS_HANDLES
        assert submitter.payloads == []

    def test_repeated_load_is_idempotent(self, runtime_config, page_html, executor):
        cookies = self.stored_cookies(ConsentCategory.ANALYTICS, ConsentCategory.FUNCTIONALITY)
        runtime = ConsentRuntime(runtime_config, PageDocument.from_html(page_html, cookies), executor)

        runtime.load()
        runtime.load()

        assert len(executor.executed) == 4
        assert len(executor.inline_runs) == 1

    def test_unreadable_cookie_is_ignored(self, runtime_config, page_html, executor):
        cookies = CookieJar({CONSENT_COOKIE: "not json"})
        runtime = ConsentRuntime(runtime_config, PageDocument.from_html(page_html, cookies), executor)

        assert runtime.load() == ConsentState.UNKNOWN
        assert executor.executed == []

    @pytest.mark.parametrize("value", [
        '{"timestamp": "2024-01-01T00:00:00", "categories": 5}',
        '{"timestamp": "2024-01-01T00:00:00", "categories": "analytics"}',
        '{"timestamp": "2024-01-01T00:00:00", "categories": null}',
        "true",
        "[1, 2]",
    ])
    def test_tampered_cookie_is_ignored(self, runtime_config, page_html, executor, value):
        assert ConsentDecision.from_cookie(value) is None

        cookies = CookieJar({CONSENT_COOKIE: value})
        runtime = ConsentRuntime(runtime_config, PageDocument.from_html(page_html, cookies), executor)

        assert runtime.load() == ConsentState.UNKNOWN
        assert executor.executed == []


class TestFailures:
    def test_submission_failure_does_not_block(self, runtime_config, document, executor):
        runtime = ConsentRuntime(
            runtime_config, document, executor, submitter=FakeSubmitter(error=RuntimeError("offline")),
        )
        runtime.load()

        assert runtime.accept(["analytics"]) == ConsentState.DECIDED
        assert len(executor.executed) == 4

    def test_failing_script_does_not_stop_the_rest(self, runtime_config, document):
        class FailingExecutor(RecordingExecutor):
            def execute(self, tag):
                if tag.handle == "ccm-consent-ga4-loader":
                    raise RuntimeError("blocked by extension")
                super().execute(tag)

        executor = FailingExecutor()
        runtime = ConsentRuntime(runtime_config, document, executor)
        runtime.load()
        runtime.accept(["analytics"])

        assert set(executed_handles(executor)) == ANALYTICS_HANDLES - {"ccm-consent-ga4-loader"}

    def test_without_submitter_nothing_is_sent(self, runtime_config, document, executor, cookies):
        runtime = ConsentRuntime(runtime_config, document, executor)
        runtime.load()
        runtime.accept(["analytics"])
        assert CONSENT_ID_COOKIE not in cookies


class TestGtmMode:
    def test_category_flags_are_pushed(self, document, executor, broadcaster):
        runtime = ConsentRuntime(RuntimeConfig(mode="gtm"), document, executor, broadcaster=broadcaster)
        runtime.load()
        runtime.accept(["marketing"])

        event = broadcaster.data_layer[-1]
        assert event == {
            "event": "cookie_consent_update",
            "analytics": False,
            "marketing": True,
            "functionality": False,
        }


class TestHelpers:
    def test_consent_mode_vector(self):
        vector = consent_mode_vector({ConsentCategory.NECESSARY, ConsentCategory.MARKETING})
        assert vector == {
            "ad_storage": "granted",
            "analytics_storage": "denied",
            "ad_user_data": "granted",
            "ad_personalization": "granted",
            "security_storage": "granted",
        }

    def test_erase_pattern(self):
        pattern = erase_pattern(["_ga", "_gcl_", ""])
        assert pattern.match("_ga_XYZ")
        assert pattern.match("_gcl_au")
        assert not pattern.match("x_ga")
        assert erase_pattern([]) is None

    def test_config_from_global(self, banner_options):
        config = RuntimeConfig.from_global(build_runtime_config(banner_options, "https://example.com/api/v1/consent"))

        assert config.consent_url == "https://example.com/api/v1/consent"
        assert config.version == "1.0"
        assert config.category_scripts == {"functionality": "window.chat = true;"}
        assert config.cookies_to_erase == ["_ga", "_gid", "_fbp"]
        assert config.cookie_expiration_days == 182

    def test_cookie_jar_from_header(self):
        jar = CookieJar.from_header("a=1; cc_cookie={\"x\":1}; broken")
        assert jar.get("a") == "1"
        assert jar.get("cc_cookie") == '{"x":1}'
        assert len(jar) == 2


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


class FakeSession:
    def __init__(self, status_code=200, error=None):
        self.calls = []
        self.status_code = status_code
        self.error = error

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.error:
            raise self.error
        return FakeResponse(self.status_code)


class TestHttpConsentSubmitter:
    PAYLOAD = {"consent_id": "a" * 64, "categories": ["analytics"], "version_hash": "1.0", "source": "accept"}

    def test_posts_json_on_background_thread(self):
        session = FakeSession()
        submitter = HttpConsentSubmitter("https://example.com/api/v1/consent", timeout=5, session=session)

        thread = submitter.submit(self.PAYLOAD)
        thread.join(timeout=5)

        assert thread.daemon
        assert session.calls == [("https://example.com/api/v1/consent", self.PAYLOAD, 5)]

    @pytest.mark.parametrize("session", [
        FakeSession(error=requests.ConnectionError("offline")),
        FakeSession(status_code=500),
    ])
    def test_failures_are_not_retried(self, session):
        submitter = HttpConsentSubmitter("https://example.com/api/v1/consent", session=session)

        thread = submitter.submit(self.PAYLOAD)
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert len(session.calls) == 1
