"""
Consent Runtime
Client-side consent controller: owns the visitor's decision and is the only
component that activates inert script placeholders.

State machine:
    UNKNOWN --accept--> DECIDED --show_preferences--> REVISING --accept--> DECIDED

Side effects go through three collaborators so the controller itself stays
single-threaded and synchronous:
    ScriptExecutor   turns an InertTag into a running script
    ConsentBroadcaster   gtag consent mode + dataLayer events
    ConsentSubmitter  fire-and-forget POST to the consent endpoint
"""

import json
import logging
import re
import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Set

import requests

from app.core.constants import OPTIONAL_CATEGORIES, ConsentCategory, ConsentSource

from .document import PageDocument
from .gate import InertTag
from .options import DEFAULT_COOKIE_EXPIRATION_DAYS, DEFAULT_COOKIES_TO_ERASE, parse_erase_patterns

logger = logging.getLogger(__name__)

CONSENT_COOKIE = "cc_cookie"
CONSENT_ID_COOKIE = "ccm_consent_id"
CONSENT_ID_LIFETIME_DAYS = 365
SUBMIT_TIMEOUT_SECONDS = 10


class ConsentState(str, Enum):
    UNKNOWN = "unknown"
    DECIDED = "decided"
    REVISING = "revising"


def generate_consent_id() -> str:
    return secrets.token_hex(32)


def granted_set(categories: Iterable) -> FrozenSet[ConsentCategory]:
    """Known categories plus necessary, which is always granted."""
    return frozenset(ConsentCategory.filter_known(categories)) | {ConsentCategory.NECESSARY}


# ─────────────────────────────────────────
# Consent mode vector
# ─────────────────────────────────────────
DEFAULT_CONSENT_MODE = {
    "ad_storage": "denied",
    "analytics_storage": "denied",
    "ad_user_data": "denied",
    "ad_personalization": "denied",
    "security_storage": "granted",
    "wait_for_update": 500,
}


def consent_mode_vector(granted: Iterable[ConsentCategory]) -> Dict[str, str]:
    granted = set(granted)

    def signal(category):
        return "granted" if category in granted else "denied"

    return {
        "ad_storage": signal(ConsentCategory.MARKETING),
        "analytics_storage": signal(ConsentCategory.ANALYTICS),
        "ad_user_data": signal(ConsentCategory.MARKETING),
        "ad_personalization": signal(ConsentCategory.MARKETING),
        "security_storage": "granted",
    }


def erase_pattern(prefixes: Iterable[str]) -> Optional["re.Pattern"]:
    prefixes = [prefix for prefix in prefixes if prefix]
    if not prefixes:
        return None
    return re.compile("^(" + "|".join(re.escape(prefix) for prefix in prefixes) + ")")


# ─────────────────────────────────────────
# Configuration (the injected client global)
# ─────────────────────────────────────────
@dataclass
class RuntimeConfig:
    consent_url: str = ""
    version: str = "1.0"
    mode: str = "direct"
    category_scripts: Dict[str, str] = field(default_factory=dict)
    cookies_to_erase: List[str] = field(default_factory=lambda: parse_erase_patterns(DEFAULT_COOKIES_TO_ERASE))
    cookie_expiration_days: int = DEFAULT_COOKIE_EXPIRATION_DAYS

    @classmethod
    def from_global(cls, config: Dict[str, Any]) -> "RuntimeConfig":
        config = config or {}
        return cls(
            consent_url=config.get("consentUrl", ""),
            version=config.get("version") or "1.0",
            mode=config.get("mode", "direct"),
            category_scripts={k: v for k, v in (config.get("categoryScripts") or {}).items() if v},
            cookies_to_erase=parse_erase_patterns(config.get("cookiesToErase", DEFAULT_COOKIES_TO_ERASE)),
            cookie_expiration_days=int((config.get("cookie") or {}).get("expiresAfterDays", DEFAULT_COOKIE_EXPIRATION_DAYS)),
        )


@dataclass(frozen=True)
class ConsentDecision:
    accepted: FrozenSet[ConsentCategory]
    timestamp: datetime

    def to_cookie(self) -> str:
        return json.dumps({
            "categories": sorted(category.value for category in self.accepted),
            "timestamp": self.timestamp.isoformat(),
        })

    @classmethod
    def from_cookie(cls, value: Optional[str]) -> Optional["ConsentDecision"]:
        if not value:
            return None
        try:
            data = json.loads(value)
            timestamp = datetime.fromisoformat(data["timestamp"])
            categories = data["categories"]
        except (ValueError, KeyError, TypeError):
            logger.debug("Ignoring unreadable consent cookie")
            return None
        if not isinstance(categories, list):
            logger.debug("Ignoring consent cookie without a category list")
            return None
        return cls(accepted=granted_set(categories), timestamp=timestamp)


# ─────────────────────────────────────────
# Collaborators
# ─────────────────────────────────────────
class ScriptExecutor:
    """Runs scripts in the page. The browser provides the real implementation."""

    def execute(self, tag: InertTag) -> None:
        raise NotImplementedError

    def run_inline(self, category: ConsentCategory, code: str) -> None:
        raise NotImplementedError


class RecordingExecutor(ScriptExecutor):
    """Records what would run; used for headless dry runs."""

    def __init__(self):
        self.executed: List[InertTag] = []
        self.inline_runs: List[tuple] = []

    def execute(self, tag: InertTag) -> None:
        self.executed.append(tag)

    def run_inline(self, category: ConsentCategory, code: str) -> None:
        self.inline_runs.append((category, code))


class ConsentBroadcaster:
    """gtag('consent', ...) plus dataLayer pushes, kept as a plain list."""

    def __init__(self):
        self.data_layer: List[Dict[str, Any]] = []
        self.consent_calls: List[tuple] = []

    def consent(self, command: str, vector: Dict[str, Any]) -> None:
        self.consent_calls.append((command, dict(vector)))

    def push(self, event: Dict[str, Any]) -> None:
        self.data_layer.append(dict(event))


class ConsentSubmitter:
    def submit(self, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class HttpConsentSubmitter(ConsentSubmitter):
    """
    Posts the decision on a detached daemon thread.
    At most once: no retry, no cancellation, failures are only logged.
    """

    def __init__(self, url: str, timeout: float = SUBMIT_TIMEOUT_SECONDS, session=None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests

    def _post(self, payload: Dict[str, Any]) -> None:
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
            if response.status_code >= 400:
                logger.warning(f"Consent submission rejected with HTTP {response.status_code}")
        except requests.RequestException as exc:
            logger.error(f"Error logging consent: {exc}")

    def submit(self, payload: Dict[str, Any]) -> threading.Thread:
        thread = threading.Thread(target=self._post, args=(dict(payload),), daemon=True)
        thread.start()
        return thread


# ─────────────────────────────────────────
# Controller
# ─────────────────────────────────────────
class ConsentRuntime:
    def __init__(
        self,
        config: RuntimeConfig,
        document: PageDocument,
        executor: ScriptExecutor,
        broadcaster: Optional[ConsentBroadcaster] = None,
        submitter: Optional[ConsentSubmitter] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.config = config
        self.document = document
        self.executor = executor
        self.broadcaster = broadcaster or ConsentBroadcaster()
        self.submitter = submitter
        self.clock = clock

        self.state = ConsentState.UNKNOWN
        self.granted: FrozenSet[ConsentCategory] = frozenset({ConsentCategory.NECESSARY})
        self._category_scripts_run: Set[ConsentCategory] = set()

    # --- queries -------------------------------------------------------
    def is_granted(self, category) -> bool:
        category = ConsentCategory.parse(category)
        return category is not None and category in self.granted

    @property
    def accepted_optional(self) -> List[str]:
        return [category.value for category in OPTIONAL_CATEGORIES if category in self.granted]

    # --- events --------------------------------------------------------
    def load(self) -> ConsentState:
        """Page load: deny everything, then restore a stored decision if there is one."""
        self.broadcaster.consent("default", DEFAULT_CONSENT_MODE)
        self.broadcaster.push({
            "event": "cookie_consent_default",
            **{k: v for k, v in DEFAULT_CONSENT_MODE.items() if k not in ("security_storage", "wait_for_update")},
        })

        decision = ConsentDecision.from_cookie(self.document.cookies.get(CONSENT_COOKIE))
        if decision is None:
            return self.state

        self.state = ConsentState.DECIDED
        self.granted = decision.accepted
        self._broadcast()
        self._activate(self.granted)
        return self.state

    def accept(self, categories: Iterable) -> ConsentState:
        granted = granted_set(categories)
        if self.state == ConsentState.UNKNOWN:
            self._first_consent(granted)
        else:
            self._change(granted)
        return self.state

    def accept_all(self) -> ConsentState:
        return self.accept(list(ConsentCategory))

    def accept_necessary(self) -> ConsentState:
        return self.accept([ConsentCategory.NECESSARY])

    def show_preferences(self) -> ConsentState:
        if self.state == ConsentState.DECIDED:
            self.state = ConsentState.REVISING
        return self.state

    def close_preferences(self) -> ConsentState:
        if self.state == ConsentState.REVISING:
            self.state = ConsentState.DECIDED
        return self.state

    # --- transitions ---------------------------------------------------
    def _first_consent(self, granted: FrozenSet[ConsentCategory]) -> None:
        self.state = ConsentState.DECIDED
        self.granted = granted
        self._store_decision()
        self._broadcast()
        self._activate(granted)
        self._submit(ConsentSource.ACCEPT)

    def _change(self, granted: FrozenSet[ConsentCategory]) -> None:
        previous = self.granted
        self.state = ConsentState.DECIDED
        if granted == previous:
            return

        self.granted = granted
        self._store_decision()
        self._broadcast()
        if previous - granted:
            self._erase_revoked_cookies()
        self._activate(granted - previous)
        self._submit(ConsentSource.CHANGE)

    # --- side effects --------------------------------------------------
    def _store_decision(self) -> None:
        decision = ConsentDecision(accepted=self.granted, timestamp=self.clock())
        self.document.cookies.set(
            CONSENT_COOKIE, decision.to_cookie(), max_age_days=self.config.cookie_expiration_days,
        )

    def _broadcast(self) -> None:
        vector = consent_mode_vector(self.granted)
        self.broadcaster.consent("update", vector)
        self.broadcaster.push({
            "event": "cookie_consent_update",
            **vector,
            "timestamp": int(self.clock().timestamp() * 1000),
        })
        if self.config.mode == "gtm":
            self.broadcaster.push({
                "event": "cookie_consent_update",
                **{category.value: category in self.granted for category in OPTIONAL_CATEGORIES},
            })

    def _activate(self, categories: Iterable[ConsentCategory]) -> None:
        categories = set(categories)
        for category in OPTIONAL_CATEGORIES:
            if category not in categories:
                continue
            for tag in self.document.tags_for(category):
                self._activate_tag(tag)
            self._run_category_script(category)

    def _activate_tag(self, tag: InertTag) -> None:
        if tag.activated or tag.category not in self.granted:
            return
        tag.activated = True
        try:
            self.executor.execute(tag)
        except Exception as exc:
            logger.exception(f"Error executing {tag.category.value} script {tag.handle}: {exc}")

    def _run_category_script(self, category: ConsentCategory) -> None:
        code = self.config.category_scripts.get(category.value)
        if not code or category in self._category_scripts_run:
            return
        self._category_scripts_run.add(category)
        try:
            self.executor.run_inline(category, code)
        except Exception as exc:
            logger.exception(f"Error executing {category.value} script: {exc}")

    def _erase_revoked_cookies(self) -> List[str]:
        pattern = erase_pattern(self.config.cookies_to_erase)
        if pattern is None:
            return []
        erased = self.document.cookies.erase_matching(pattern, keep=(CONSENT_COOKIE, CONSENT_ID_COOKIE))
        if erased:
            logger.info(f"Erased cookies after consent revocation: {', '.join(erased)}")
        return erased

    def _consent_id(self) -> str:
        consent_id = self.document.cookies.get(CONSENT_ID_COOKIE)
        if not consent_id:
            consent_id = generate_consent_id()
            self.document.cookies.set(CONSENT_ID_COOKIE, consent_id, max_age_days=CONSENT_ID_LIFETIME_DAYS)
        return consent_id

    def _submit(self, source: ConsentSource) -> None:
        if self.submitter is None:
            return
        payload = {
            "consent_id": self._consent_id(),
            "categories": self.accepted_optional,
            "version_hash": self.config.version or "1.0",
            "source": source.value,
        }
        try:
            self.submitter.submit(payload)
        except Exception as exc:
            logger.error(f"Error logging consent: {exc}")
