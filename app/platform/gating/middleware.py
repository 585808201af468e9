"""
Per-request script registry.

Every request gets its own CategoryRegistry, built lazily from the banner
options the first time a template asks for it.
"""

from django.utils.functional import SimpleLazyObject

from .options import get_banner_options
from .services import build_registry


class ConsentScriptsMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.consent_options = SimpleLazyObject(get_banner_options)
        request.consent_registry = SimpleLazyObject(lambda: build_registry(request.consent_options))
        return self.get_response(request)
