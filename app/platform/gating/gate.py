"""
Script Gate
Rewrites scripts into inert placeholders that a browser will not execute.
Only the consent runtime turns a placeholder back into a live script.
"""

import logging
import re
from dataclasses import dataclass
from html import unescape
from typing import Optional

from django.utils.html import format_html
from django.utils.safestring import SafeString, mark_safe

from app.core.constants import DEFAULT_GATED_CATEGORY, ConsentCategory

from .registry import CategoryRegistry, ScriptDescriptor

logger = logging.getLogger(__name__)

HANDLE_PREFIX = "ccm-consent-"
INERT_SCRIPT_TYPE = "text/plain"

# Anything that makes the browser fetch a resource (and so send a request without consent)
REMOTE_REFERENCE_RE = re.compile(r"\b(?:src|srcset|href|data|action|background|poster)\s*=|url\s*\(", re.IGNORECASE)
SCRIPT_SRC_RE = re.compile(r"""<script\b[^>]*?\bsrc\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""", re.IGNORECASE)
SCRIPT_BODY_RE = re.compile(r"<script\b[^>]*>(.*?)</script\s*>", re.IGNORECASE | re.DOTALL)


def escape_script_body(code: str) -> str:
    """Keep an inline body from closing its <script> element or opening a comment."""
    return code.replace("</", "<\\/").replace("<!--", "<\\!--")


@dataclass
class InertTag:
    """
    Placeholder for a gated script.
    `activated` is flipped only by ConsentRuntime.
    """
    category: ConsentCategory
    src: str = ""
    inline: str = ""
    handle: str = ""
    activated: bool = False

    def render(self) -> SafeString:
        if self.src:
            return format_html(
                '<script type="{}" data-category="{}" data-handle="{}" data-src="{}"></script>',
                INERT_SCRIPT_TYPE, self.category.value, self.handle, self.src,
            )
        return format_html(
            '<script type="{}" data-category="{}" data-handle="{}">{}</script>',
            INERT_SCRIPT_TYPE, self.category.value, self.handle,
            mark_safe(escape_script_body(self.inline)),
        )


def script_src(tag: str) -> str:
    match = SCRIPT_SRC_RE.search(tag)
    if not match:
        return ""
    return unescape(next(group for group in match.groups() if group is not None))


def script_body(tag: str) -> str:
    match = SCRIPT_BODY_RE.search(tag)
    return match.group(1) if match else ""


def is_static_fallback(html: str) -> bool:
    return not REMOTE_REFERENCE_RE.search(html)


def render_live_script(src: str = "", inline: str = "") -> SafeString:
    if src:
        return format_html('<script src="{}"></script>', src)
    return format_html("<script>{}</script>", mark_safe(escape_script_body(inline)))


class ScriptGate:
    """Turns registered scripts into InertTags for one render."""

    def __init__(self, registry: CategoryRegistry):
        self.registry = registry

    def gate(self, descriptor: ScriptDescriptor) -> Optional[InertTag]:
        """Return the inert placeholder, or None when there is nothing to gate."""
        if not descriptor.has_payload or not descriptor.is_gated:
            return None
        return InertTag(
            category=descriptor.category,
            src=descriptor.src,
            inline=descriptor.inline,
            handle=descriptor.handle,
        )

    def render_descriptor(self, descriptor: ScriptDescriptor) -> str:
        if not descriptor.has_payload:
            return ""
        tag = self.gate(descriptor)
        if tag is None:
            # necessary scripts are always granted
            return render_live_script(descriptor.src, descriptor.inline)
        return tag.render()

    def filter_tag(self, tag: str, handle: str, src: str = "") -> str:
        """
        Rewrite an already-built <script> tag for `handle`.

        Tags for handles this gate does not own pass through unchanged. An owned
        handle with no registered category is gated as analytics. A gated tag is
        never returned as-is: it becomes inert, or is dropped when it has no payload.
        """
        descriptor = self.registry.get(handle)
        if descriptor is None and not handle.startswith(HANDLE_PREFIX):
            return tag

        category = descriptor.category if descriptor else DEFAULT_GATED_CATEGORY
        if descriptor is None:
            logger.warning(f"No consent category for script handle {handle}, gating as {category.value}")
        if category == ConsentCategory.NECESSARY:
            return tag

        src = src or (descriptor.src if descriptor else "") or script_src(tag)
        if not src:
            inline = (descriptor.inline if descriptor else "") or script_body(tag)
            if not inline.strip():
                return ""
            return InertTag(category=category, inline=inline, handle=handle).render() + "\n"

        return InertTag(category=category, src=src, handle=handle).render() + "\n"

    def render(self) -> SafeString:
        parts = [self.render_descriptor(d) for d in self.registry]
        return mark_safe("\n".join(part for part in parts if part))

    def noscripts(self) -> SafeString:
        """Static fallbacks emitted in the footer. Fallbacks that load remote resources are dropped."""
        parts = []
        for descriptor in self.registry:
            if not descriptor.noscript:
                continue
            if not is_static_fallback(descriptor.noscript):
                logger.warning(f"Dropping noscript fallback for {descriptor.handle}: it references a remote resource")
                continue
            parts.append(descriptor.noscript)
        return mark_safe("\n".join(parts))
