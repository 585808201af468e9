"""
Page model used by the consent runtime: inert script placeholders and the
visitor's cookie jar.
"""

import re
from html.parser import HTMLParser
from typing import Dict, Iterable, List, Optional

from app.core.constants import ConsentCategory, DEFAULT_GATED_CATEGORY

from .gate import INERT_SCRIPT_TYPE, InertTag


class CookieJar:
    """Name -> value view of document.cookie."""

    def __init__(self, cookies: Optional[Dict[str, str]] = None):
        self._cookies: Dict[str, str] = dict(cookies or {})
        self._max_age_days: Dict[str, int] = {}

    @classmethod
    def from_header(cls, header: str) -> "CookieJar":
        cookies = {}
        for part in (header or "").split(";"):
            name, sep, value = part.strip().partition("=")
            if sep and name:
                cookies[name] = value
        return cls(cookies)

    def get(self, name: str) -> Optional[str]:
        return self._cookies.get(name)

    def set(self, name: str, value: str, max_age_days: Optional[int] = None) -> None:
        self._cookies[name] = value
        if max_age_days is None:
            self._max_age_days.pop(name, None)
        else:
            self._max_age_days[name] = max_age_days

    def max_age_days(self, name: str) -> Optional[int]:
        """Lifetime the cookie was written with; None for a session cookie."""
        return self._max_age_days.get(name)

    def delete(self, name: str) -> None:
        self._cookies.pop(name, None)
        self._max_age_days.pop(name, None)

    def names(self) -> List[str]:
        return list(self._cookies)

    def erase_matching(self, pattern: "re.Pattern", keep: Iterable[str] = ()) -> List[str]:
        keep = set(keep)
        erased = [name for name in self._cookies if name not in keep and pattern.match(name)]
        for name in erased:
            self.delete(name)
        return erased

    def __contains__(self, name) -> bool:
        return name in self._cookies

    def __len__(self) -> int:
        return len(self._cookies)


class InertTagParser(HTMLParser):
    """Collects <script type="text/plain" data-category=...> placeholders."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.tags: List[InertTag] = []
        self._current: Optional[InertTag] = None
        self._body: List[str] = []

    def handle_starttag(self, tag, attrs):
        if tag != "script":
            return
        attributes = dict(attrs)
        if attributes.get("type") != INERT_SCRIPT_TYPE or "data-category" not in attributes:
            return
        category = ConsentCategory.parse(attributes.get("data-category")) or DEFAULT_GATED_CATEGORY
        self._current = InertTag(
            category=category,
            src=attributes.get("data-src") or "",
            handle=attributes.get("data-handle") or "",
        )
        self._body = []

    def handle_data(self, data):
        if self._current is not None:
            self._body.append(data)

    def handle_endtag(self, tag):
        if tag != "script" or self._current is None:
            return
        if not self._current.src:
            self._current.inline = "".join(self._body)
        self.tags.append(self._current)
        self._current = None


class PageDocument:
    def __init__(self, tags: Iterable[InertTag] = (), cookies: Optional[CookieJar] = None):
        self.tags: List[InertTag] = list(tags)
        self.cookies = cookies if cookies is not None else CookieJar()

    @classmethod
    def from_html(cls, html: str, cookies: Optional[CookieJar] = None) -> "PageDocument":
        parser = InertTagParser()
        parser.feed(html)
        parser.close()
        return cls(parser.tags, cookies)

    def tags_for(self, category: ConsentCategory) -> List[InertTag]:
        return [tag for tag in self.tags if tag.category == category]
