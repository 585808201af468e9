"""
Template tags for the consent banner.

    {% load consent_tags %}
    <head> ... {% consent_head %} </head>
    <body> {% consent_body_open %} ... {% consent_footer %} </body>

Site scripts that need consent are wrapped in a block:

    {% consent_script "ccm-consent-chat" %}<script src="https://chat.example.com/widget.js"></script>{% endconsent_script %}

The banner UI and the revisit button are driven by the vanilla-cookieconsent v3
browser bundle (cookieconsent.umd.js and cookieconsent.css), which the site
serves itself and initialises from the #ccm-config JSON. Nothing here ships it.
"""

from django import template
from django.urls import reverse
from django.utils.html import format_html, json_script
from django.utils.safestring import mark_safe

from app.platform.gating.gate import ScriptGate
from app.platform.gating.options import get_banner_options
from app.platform.gating.runtime_config import CONFIG_ELEMENT_ID, build_runtime_config
from app.platform.gating.services import build_registry, gtm_head_snippet, gtm_noscript

register = template.Library()


def _options(context):
    request = context.get("request")
    options = getattr(request, "consent_options", None)
    return options if options is not None else get_banner_options()


def _registry(context):
    request = context.get("request")
    registry = getattr(request, "consent_registry", None)
    if registry is None:
        registry = build_registry(_options(context))
        if request is not None:
            request.consent_registry = registry
    return registry


@register.simple_tag(takes_context=True)
def consent_config(context):
    request = context.get("request")
    consent_url = reverse("consent-submit")
    if request is not None:
        consent_url = request.build_absolute_uri(consent_url)
    return json_script(build_runtime_config(_options(context), consent_url), CONFIG_ELEMENT_ID)


@register.simple_tag(takes_context=True)
def consent_head(context):
    """Runtime config, custom CSS and either gated scripts (direct) or the GTM container."""
    options = _options(context)
    parts = [consent_config(context)]
    if options["custom_css"]:
        parts.append(format_html('<style id="ccm-custom-css">{}</style>', mark_safe(options["custom_css"])))
    if options["mode"] == "gtm":
        parts.append(gtm_head_snippet(options["gtm_id"]))
    else:
        parts.append(ScriptGate(_registry(context)).render())
    return mark_safe("\n".join(part for part in parts if part))


@register.simple_tag(takes_context=True)
def consent_body_open(context):
    options = _options(context)
    if options["mode"] == "gtm":
        return gtm_noscript(options["gtm_id"])
    return ""


@register.simple_tag(takes_context=True)
def consent_footer(context):
    options = _options(context)
    if options["mode"] != "direct":
        return ""
    return ScriptGate(_registry(context)).noscripts()


class ConsentScriptNode(template.Node):
    def __init__(self, handle, nodelist):
        self.handle = handle
        self.nodelist = nodelist

    def render(self, context):
        handle = str(self.handle.resolve(context) or "")
        tag = self.nodelist.render(context)
        return mark_safe(ScriptGate(_registry(context)).filter_tag(tag, handle))


@register.tag("consent_script")
def do_consent_script(parser, token):
    """Gate an inline or remote <script> under a handle; owned handles default to analytics."""
    bits = token.split_contents()
    if len(bits) != 2:
        raise template.TemplateSyntaxError(f"'{bits[0]}' takes exactly one argument: the script handle")
    nodelist = parser.parse(("endconsent_script",))
    parser.delete_first_token()
    return ConsentScriptNode(parser.compile_filter(bits[1]), nodelist)


@register.simple_tag(takes_context=True)
def consent_revisit_button(context, text=None, css_class="ccm-revisit-button"):
    """
    Reopen the preferences modal. `data-cc="show-preferencesModal"` is handled
    by the vanilla-cookieconsent v3 bundle, which must be loaded on the page.
    """
    text = text or _options(context)["texts"]["revisit"]
    return format_html('<button class="{}" data-cc="show-preferencesModal">{}</button>', css_class, text)
