import json

from app.core.constants import ConsentCategory
from app.platform.gating.options import (
    DEFAULT_COOKIES_TO_ERASE,
    DEFAULT_RETENTION_MONTHS,
    clamp_int,
    parse_erase_patterns,
    sanitize_options,
)
from app.platform.gating.runtime_config import CONFIG_ELEMENT_ID, build_runtime_config
from app.platform.gating.services import build_registry, gtm_head_snippet, gtm_noscript


class TestBuildRegistry:
    def test_direct_mode_registers_configured_services(self, registry):
        handles = [descriptor.handle for descriptor in registry]
        assert handles == [
            "ccm-consent-ga4-loader",
            "ccm-consent-ga4-init",
            "ccm-consent-meta",
            "ccm-consent-meta-init",
            "ccm-consent-clarity",
            "ccm-consent-clarity-init",
        ]
        assert registry.category_for("ccm-consent-meta") is ConsentCategory.MARKETING
        assert registry.category_for("ccm-consent-clarity") is ConsentCategory.ANALYTICS

    def test_unconfigured_services_are_skipped(self):
        registry = build_registry(sanitize_options({"clarity_id": "abc"}))
        assert len(registry) == 2
        assert all(d.category is ConsentCategory.ANALYTICS for d in registry)

    def test_gtm_mode_registers_nothing(self):
        registry = build_registry(sanitize_options({"ga4_id": "G-1", "gtm_id": "GTM-ABC"}))
        assert len(registry) == 0

    def test_each_call_builds_a_fresh_registry(self, banner_options):
        assert build_registry(banner_options) is not build_registry(banner_options)

    def test_ids_are_json_encoded_in_init_code(self):
        measurement_id = 'G-1");alert(1);("'
        registry = build_registry(sanitize_options({"ga4_id": measurement_id}))
        init = registry.resolve("ccm-consent-ga4-init")
        assert json.dumps(measurement_id) in init.inline
        assert "%22" in registry.resolve("ccm-consent-ga4-loader").src


class TestGtm:
    def test_head_snippet_contains_container_id(self):
        html = gtm_head_snippet("GTM-ABC123")
        assert '"GTM-ABC123"' in html
        assert "googletagmanager.com/gtm.js" in html

    def test_head_snippet_cannot_break_out_of_script(self):
        html = gtm_head_snippet("</script><script>alert(1)")
        assert html.count("</script>") == 1

    def test_noscript_iframe(self):
        html = gtm_noscript("GTM-ABC123")
        assert "ns.html?id=GTM-ABC123" in html


class TestOptions:
    def test_defaults(self):
        options = sanitize_options({})
        assert options["mode"] == "direct"
        assert options["retention_months"] == DEFAULT_RETENTION_MONTHS
        assert options["cookies_to_erase"] == DEFAULT_COOKIES_TO_ERASE
        assert options["ui_layout"] == "box"

    def test_numbers_are_clamped(self):
        options = sanitize_options({"retention_months": 500, "cookie_expiration": 0})
        assert options["retention_months"] == 120
        assert options["cookie_expiration"] == 1

    def test_unknown_enum_values_fall_back(self):
        options = sanitize_options({"ui_layout": "popup", "ui_position": "center", "ui_transition": "spin"})
        assert options["ui_layout"] == "box"
        assert options["ui_position"] == "bottom-right"
        assert options["ui_transition"] == "slide"

    def test_plain_text_fields_are_stripped(self):
        options = sanitize_options({"texts": {"title": "<b>Cookies</b>"}, "ga4_id": "<i>G-1</i>"})
        assert options["texts"]["title"] == "Cookies"
        assert options["ga4_id"] == "G-1"

    def test_gtm_id_switches_mode(self):
        assert sanitize_options({"gtm_id": "GTM-1"})["mode"] == "gtm"

    def test_clamp_int_bad_input(self):
        assert clamp_int("abc", 1, 10, 5) == 5
        assert clamp_int("7", 1, 10, 5) == 7

    def test_parse_erase_patterns(self):
        assert parse_erase_patterns(" _ga, _fbp ,,\n_uet") == ["_ga", "_fbp", "_uet"]
        assert parse_erase_patterns(["_ga", " "]) == ["_ga"]
        assert parse_erase_patterns(None) == []


class TestRuntimeConfig:
    def test_shape(self, banner_options):
        config = build_runtime_config(banner_options, "https://example.com/api/v1/consent")

        assert config["consentUrl"] == "https://example.com/api/v1/consent"
        assert config["mode"] == "direct"
        assert config["categories"]["necessary"] == {"enabled": True, "readOnly": True}
        assert config["categoryScripts"]["functionality"] == "window.chat = true;"
        assert config["cookie"] == {"expiresAfterDays": 182}
        assert config["guiOptions"]["consentModal"]["position"] == "bottom right"

        translations = config["language"]["translations"]["en"]
        sections = translations["preferencesModal"]["sections"]
        assert [s["linkedCategory"] for s in sections] == ["necessary", "analytics", "marketing", "functionality"]

    def test_element_id(self):
        assert CONFIG_ELEMENT_ID == "ccm-config"
