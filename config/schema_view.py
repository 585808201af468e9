"""
Custom schema view with error handling for drf-spectacular
"""
import logging
from drf_spectacular.views import SpectacularAPIView
from rest_framework import status, permissions
from app.utils.response import api_error

logger = logging.getLogger(__name__)


class CustomSpectacularAPIView(SpectacularAPIView):
    """
    Schema view that handles errors gracefully.
    Schema endpoint is public (no authentication required)
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request, *args, **kwargs):
        try:
            return super().get(request, *args, **kwargs)
        except Exception as e:
            logger.exception(f"Error generating OpenAPI schema: {e}")
            return api_error(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                error_code="schema_generation_error",
                error_message=f"Failed to generate API schema: {str(e)}. Check server logs for details.",
            )
