"""
Consent Audit API
Anonymous consent submission plus staff-only review, export and retention endpoints
"""

import logging

from django.http import StreamingHttpResponse
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.pagination import PageNumberPagination
from rest_framework.views import APIView

from app.core.services.audit import record_request_audit
from app.platform.gating.options import get_banner_options
from app.utils.response import api_response

from .export import export_filename, iter_csv_lines
from .models import ConsentLog
from .recorder import ConsentRecorder
from .retention import RetentionSweeper
from .serializers import (
    ConsentLogSerializer,
    ConsentStatsSerializer,
    ConsentSubmissionSerializer,
    SweepRequestSerializer,
)
from .utils import get_consent_log_count

logger = logging.getLogger(__name__)


@extend_schema(tags=["Consent"])
class ConsentSubmitView(APIView):
    """
    Records a visitor's consent decision.
    Intentionally anonymous: no session, no CSRF, no user binding.
    """
    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    @extend_schema(
        summary="Log consent decision",
        description="Stores an anonymized audit record of the visitor's cookie consent",
        request=ConsentSubmissionSerializer,
    )
    def post(self, request):
        serializer = ConsentSubmissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        ConsentRecorder().record(
            consent_id=data["consent_id"],
            categories=data["categories"],
            version_hash=data.get("version_hash"),
            source=data.get("source"),
        )
        return api_response(status.HTTP_200_OK, True, message="Consent logged successfully")


class ConsentLogPagination(PageNumberPagination):
    page_size = 25
    page_query_param = "paged"


@extend_schema(tags=["Consent"])
class ConsentLogViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Staff review of the consent log.
    """
    queryset = ConsentLog.objects.order_by("-created_at", "-id")
    serializer_class = ConsentLogSerializer
    pagination_class = ConsentLogPagination
    permission_classes = [permissions.IsAdminUser]

    @extend_schema(summary="Consent log statistics", responses=ConsentStatsSerializer)
    def stats(self, request):
        data = {
            "total": get_consent_log_count(),
            "retention_months": get_banner_options()["retention_months"],
        }
        return api_response(status.HTTP_200_OK, True, data=ConsentStatsSerializer(data).data)

    @extend_schema(summary="Export consent log as CSV", responses={(200, "text/csv"): str})
    def export(self, request):
        record_request_audit(request, action="consent_log.exported")
        response = StreamingHttpResponse(iter_csv_lines(), content_type="text/csv; charset=utf-8")
        response["Content-Disposition"] = f'attachment; filename="{export_filename()}"'
        logger.info(f"Consent log exported by {request.user}")
        return response

    @extend_schema(summary="Run retention sweep now", request=SweepRequestSerializer)
    def sweep(self, request):
        serializer = SweepRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        retention_months = serializer.validated_data.get("retention_months")

        deleted = RetentionSweeper().sweep(retention_months)
        record_request_audit(
            request,
            action="consent_log.swept",
            metadata={"deleted": deleted, "retention_months": retention_months},
        )
        return api_response(status.HTTP_200_OK, True, data={"deleted": deleted})

    @extend_schema(summary="Delete all consent log entries")
    def purge(self, request):
        deleted = RetentionSweeper().purge_all()
        record_request_audit(request, action="consent_log.purged", metadata={"deleted": deleted})
        return api_response(
            status.HTTP_200_OK, True,
            data={"deleted": deleted},
            message="All consent log entries were deleted",
        )
