"""
Banner options
Operator configuration for the consent banner, read from the CONSENT_BANNER
Django setting, merged with defaults and sanitized.
"""

import copy
import logging
from typing import Any, Dict, List

from django.conf import settings
from django.utils.html import strip_tags

logger = logging.getLogger(__name__)

MIN_RETENTION_MONTHS = 1
MAX_RETENTION_MONTHS = 120
DEFAULT_RETENTION_MONTHS = 12

MIN_COOKIE_EXPIRATION_DAYS = 1
MAX_COOKIE_EXPIRATION_DAYS = 3650
DEFAULT_COOKIE_EXPIRATION_DAYS = 182

DEFAULT_COOKIES_TO_ERASE = "_ga,_gid,_gat,_gcl_,__utm,_fbp,fr,_uet,_ttp,_pin_"

UI_LAYOUTS = ("box", "cloud", "bar")
UI_POSITIONS = ("bottom", "top", "middle", "bottom-left", "bottom-right", "top-left", "top-right")
UI_TRANSITIONS = ("slide", "fade", "zoom")

SERVICE_FIELDS = ("ga4_id", "meta_pixel_id", "clarity_id", "gtm_id")
SCRIPT_CATEGORIES = ("analytics", "marketing", "functionality")

# Text fields that may carry markup (links to the cookie policy)
RICH_TEXT_FIELDS = (
    "description",
    "necessary_description",
    "analytics_description",
    "marketing_description",
    "functionality_description",
)

DEFAULT_TEXTS = {
    "title": "We use cookies",
    "description": "This website uses cookies to improve your experience and to analyse traffic.",
    "accept_all": "Accept all",
    "accept_necessary": "Necessary only",
    "show_preferences": "Settings",
    "preferences_title": "Cookie settings",
    "save_preferences": "Save settings",
    "necessary_title": "Necessary cookies",
    "necessary_description": "These cookies are required for the website to work.",
    "analytics_title": "Analytics cookies",
    "analytics_description": "They help us understand how visitors use the website.",
    "marketing_title": "Marketing cookies",
    "marketing_description": "They are used to show relevant advertising.",
    "functionality_title": "Functional cookies",
    "functionality_description": "They enable enhanced website features.",
    "revisit": "Change cookie settings",
}

DEFAULTS: Dict[str, Any] = {
    "ga4_id": "",
    "meta_pixel_id": "",
    "clarity_id": "",
    "gtm_id": "",
    "version": "1.0",
    "language": "en",
    "texts": DEFAULT_TEXTS,
    "ui_layout": "box",
    "ui_position": "bottom-right",
    "ui_transition": "slide",
    "ui_flip_buttons": False,
    "ui_equal_weight_buttons": True,
    "custom_css": "",
    "category_scripts": {category: "" for category in SCRIPT_CATEGORIES},
    "force_consent": False,
    "hide_from_bots": True,
    "cookie_expiration": DEFAULT_COOKIE_EXPIRATION_DAYS,
    "retention_months": DEFAULT_RETENTION_MONTHS,
    "cookies_to_erase": DEFAULT_COOKIES_TO_ERASE,
}


def clamp_int(value, minimum: int, maximum: int, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, min(maximum, number))


def choice(value, allowed, default):
    return value if value in allowed else default


def parse_erase_patterns(raw) -> List[str]:
    """Comma (or newline) separated cookie name prefixes."""
    if isinstance(raw, (list, tuple)):
        items = raw
    else:
        items = str(raw or "").replace("\n", ",").split(",")
    return [item.strip() for item in items if str(item).strip()]


def sanitize_options(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge raw operator input over the defaults.
    Out-of-range numbers are clamped and unknown enum values fall back to the default.
    """
    raw = raw if isinstance(raw, dict) else {}
    options = copy.deepcopy(DEFAULTS)

    for field in SERVICE_FIELDS:
        options[field] = strip_tags(str(raw.get(field) or "")).strip()

    options["version"] = strip_tags(str(raw.get("version") or DEFAULTS["version"])).strip()[:64]
    options["language"] = strip_tags(str(raw.get("language") or DEFAULTS["language"])).strip()

    raw_texts = raw.get("texts") if isinstance(raw.get("texts"), dict) else {}
    for field, default_value in DEFAULT_TEXTS.items():
        value = str(raw_texts.get(field) or default_value)
        options["texts"][field] = value if field in RICH_TEXT_FIELDS else strip_tags(value).strip()

    options["ui_layout"] = choice(raw.get("ui_layout"), UI_LAYOUTS, DEFAULTS["ui_layout"])
    options["ui_position"] = choice(raw.get("ui_position"), UI_POSITIONS, DEFAULTS["ui_position"])
    options["ui_transition"] = choice(raw.get("ui_transition"), UI_TRANSITIONS, DEFAULTS["ui_transition"])
    options["ui_flip_buttons"] = bool(raw.get("ui_flip_buttons", DEFAULTS["ui_flip_buttons"]))
    options["ui_equal_weight_buttons"] = bool(raw.get("ui_equal_weight_buttons", DEFAULTS["ui_equal_weight_buttons"]))
    options["custom_css"] = strip_tags(str(raw.get("custom_css") or ""))

    raw_scripts = raw.get("category_scripts") if isinstance(raw.get("category_scripts"), dict) else {}
    options["category_scripts"] = {
        category: str(raw_scripts.get(category) or "") for category in SCRIPT_CATEGORIES
    }

    options["force_consent"] = bool(raw.get("force_consent", DEFAULTS["force_consent"]))
    options["hide_from_bots"] = bool(raw.get("hide_from_bots", DEFAULTS["hide_from_bots"]))
    options["cookie_expiration"] = clamp_int(
        raw.get("cookie_expiration"),
        MIN_COOKIE_EXPIRATION_DAYS, MAX_COOKIE_EXPIRATION_DAYS, DEFAULT_COOKIE_EXPIRATION_DAYS,
    )
    options["retention_months"] = clamp_int(
        raw.get("retention_months"),
        MIN_RETENTION_MONTHS, MAX_RETENTION_MONTHS, DEFAULT_RETENTION_MONTHS,
    )

    erase = raw.get("cookies_to_erase")
    options["cookies_to_erase"] = ",".join(parse_erase_patterns(erase)) if erase is not None else DEFAULT_COOKIES_TO_ERASE

    # GTM handles the tags itself; otherwise scripts are gated directly
    options["mode"] = "gtm" if options["gtm_id"] else "direct"
    return options


def get_banner_options() -> Dict[str, Any]:
    return sanitize_options(getattr(settings, "CONSENT_BANNER", {}))
