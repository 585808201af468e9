"""
Client runtime global.

The one object handed from server-rendered configuration to the browser
consent controller. Rendered as inert JSON (json_script) and read once at
page load.
"""

from typing import Any, Dict

from app.core.constants import ConsentCategory

CONFIG_ELEMENT_ID = "ccm-config"


def build_translations(texts: Dict[str, str]) -> Dict[str, Any]:
    sections = [
        {
            "title": texts[f"{category.value}_title"],
            "description": texts[f"{category.value}_description"],
            "linkedCategory": category.value,
        }
        for category in ConsentCategory
    ]
    return {
        "consentModal": {
            "title": texts["title"],
            "description": texts["description"],
            "acceptAllBtn": texts["accept_all"],
            "acceptNecessaryBtn": texts["accept_necessary"],
            "showPreferencesBtn": texts["show_preferences"],
        },
        "preferencesModal": {
            "title": texts["preferences_title"],
            "acceptAllBtn": texts["accept_all"],
            "acceptNecessaryBtn": texts["accept_necessary"],
            "savePreferencesBtn": texts["save_preferences"],
            "sections": sections,
        },
    }


def build_runtime_config(options: Dict[str, Any], consent_url: str) -> Dict[str, Any]:
    language = options["language"]
    return {
        "consentUrl": consent_url,
        "version": options["version"],
        "mode": options["mode"],
        "categoryScripts": dict(options["category_scripts"]),
        "cookiesToErase": options["cookies_to_erase"],
        "categories": {
            ConsentCategory.NECESSARY.value: {"enabled": True, "readOnly": True},
            ConsentCategory.ANALYTICS.value: {},
            ConsentCategory.MARKETING.value: {},
            ConsentCategory.FUNCTIONALITY.value: {},
        },
        "language": {
            "default": language,
            "translations": {language: build_translations(options["texts"])},
        },
        "guiOptions": {
            "consentModal": {
                "layout": options["ui_layout"],
                "position": options["ui_position"].replace("-", " "),
                "transition": options["ui_transition"],
                "flipButtons": options["ui_flip_buttons"],
                "equalWeightButtons": options["ui_equal_weight_buttons"],
            },
        },
        "disablePageInteraction": options["force_consent"],
        "hideFromBots": options["hide_from_bots"],
        "cookie": {
            "expiresAfterDays": options["cookie_expiration"],
        },
    }
