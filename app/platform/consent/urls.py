"""
Consent Audit URLs
"""

from django.urls import path

from .views import ConsentLogViewSet, ConsentSubmitView

urlpatterns = [
    path("consent", ConsentSubmitView.as_view(), name="consent-submit"),
    path(
        "consent/logs",
        ConsentLogViewSet.as_view({"get": "list", "delete": "purge"}),
        name="consent-logs",
    ),
    path("consent/stats", ConsentLogViewSet.as_view({"get": "stats"}), name="consent-stats"),
    path("consent/export", ConsentLogViewSet.as_view({"get": "export"}), name="consent-export"),
    path("consent/sweep", ConsentLogViewSet.as_view({"post": "sweep"}), name="consent-sweep"),
]
