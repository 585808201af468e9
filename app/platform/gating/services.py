"""
Built-in third-party services.

Each service is registered as consent-gated scripts: a remote loader plus an
inline init body. GTM mode is different: the container itself is emitted
ungated and receives the consent mode signal instead.
"""

import json
from typing import Any, Dict
from urllib.parse import quote

from django.utils.html import format_html
from django.utils.safestring import SafeString, mark_safe

from app.core.constants import ConsentCategory

from .gate import HANDLE_PREFIX, escape_script_body
from .registry import CategoryRegistry, ScriptDescriptor


def handle(name: str) -> str:
    return f"{HANDLE_PREFIX}{name}"


def js_string(value: str) -> str:
    return json.dumps(value)


def register_ga4(registry: CategoryRegistry, measurement_id: str) -> None:
    measurement_id = (measurement_id or "").strip()
    if not measurement_id:
        return

    registry.register(ScriptDescriptor(
        handle=handle("ga4-loader"),
        category=ConsentCategory.ANALYTICS,
        src=f"https://www.googletagmanager.com/gtag/js?id={quote(measurement_id, safe='')}",
    ))
    registry.register(ScriptDescriptor(
        handle=handle("ga4-init"),
        category=ConsentCategory.ANALYTICS,
        inline=(
            "window.dataLayer=window.dataLayer||[];function gtag(){dataLayer.push(arguments);}"
            'gtag("js",new Date());'
            f"gtag(\"config\",{js_string(measurement_id)},"
            "{anonymize_ip:true,allow_google_signals:false,allow_ad_personalization_signals:false});"
        ),
    ))


def register_meta_pixel(registry: CategoryRegistry, pixel_id: str) -> None:
    pixel_id = (pixel_id or "").strip()
    if not pixel_id:
        return

    registry.register(ScriptDescriptor(
        handle=handle("meta"),
        category=ConsentCategory.MARKETING,
        src="https://connect.facebook.net/en_US/fbevents.js",
    ))
    registry.register(ScriptDescriptor(
        handle=handle("meta-init"),
        category=ConsentCategory.MARKETING,
        inline=(
            "!(function(f,b,e,v,n,t,s){if(f.fbq)return;n=f.fbq=function(){n.callMethod?"
            "n.callMethod.apply(n,arguments):n.queue.push(arguments)};if(!f._fbq)f._fbq=n;"
            'n.push=n;n.loaded=!0;n.version="2.0";n.queue=[];t=b.createElement(e);t.async=!0;'
            "t.src=v;s=b.getElementsByTagName(e)[0];s.parentNode.insertBefore(t,s)})"
            '(window,document,"script","https://connect.facebook.net/en_US/fbevents.js");'
            f'fbq("init",{js_string(pixel_id)});fbq("track","PageView");'
        ),
        # The usual tracking-pixel <img> would fire without consent; keep the fallback static.
        noscript='<noscript data-category="marketing"></noscript>',
    ))


def register_clarity(registry: CategoryRegistry, project_id: str) -> None:
    project_id = (project_id or "").strip()
    if not project_id:
        return

    registry.register(ScriptDescriptor(
        handle=handle("clarity"),
        category=ConsentCategory.ANALYTICS,
        src=f"https://www.clarity.ms/tag/{quote(project_id, safe='')}",
    ))
    registry.register(ScriptDescriptor(
        handle=handle("clarity-init"),
        category=ConsentCategory.ANALYTICS,
        inline=(
            "(function(c,l,a,r,i,t,y){c[a]=c[a]||function(){(c[a].q=c[a].q||[]).push(arguments)};"
            't=l.createElement(r);t.async=1;t.src="https://www.clarity.ms/tag/"+i;'
            "y=l.getElementsByTagName(r)[0];y.parentNode.insertBefore(t,y);})"
            f'(window,document,"clarity","script",{js_string(project_id)});'
        ),
    ))


def build_registry(options: Dict[str, Any]) -> CategoryRegistry:
    """Fresh registry holding the configured services (direct mode only)."""
    registry = CategoryRegistry()
    if options.get("mode") != "direct":
        return registry
    register_ga4(registry, options.get("ga4_id", ""))
    register_meta_pixel(registry, options.get("meta_pixel_id", ""))
    register_clarity(registry, options.get("clarity_id", ""))
    return registry


def gtm_head_snippet(gtm_id: str) -> SafeString:
    return format_html(
        "<!-- Google Tag Manager -->\n<script>"
        "(function(w,d,s,l,i){{w[l]=w[l]||[];w[l].push({{'gtm.start':new Date().getTime(),event:'gtm.js'}});"
        "var f=d.getElementsByTagName(s)[0],j=d.createElement(s),dl=l!='dataLayer'?'&l='+l:'';"
        "j.async=true;j.src='https://www.googletagmanager.com/gtm.js?id='+i+dl;f.parentNode.insertBefore(j,f);"
        "}})(window,document,'script','dataLayer',{});</script>\n<!-- End Google Tag Manager -->",
        mark_safe(escape_script_body(js_string(gtm_id))),
    )


def gtm_noscript(gtm_id: str) -> SafeString:
    return format_html(
        '<!-- Google Tag Manager (noscript) -->\n<noscript><iframe src="https://www.googletagmanager.com/ns.html?id={}" '
        'height="0" width="0" style="display:none;visibility:hidden"></iframe></noscript>\n'
        "<!-- End Google Tag Manager (noscript) -->",
        quote(gtm_id, safe=""),
    )
