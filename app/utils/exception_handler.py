import logging
from rest_framework.views import exception_handler
from rest_framework.exceptions import (
    APIException,
    ValidationError,
    NotAuthenticated,
    AuthenticationFailed,
    PermissionDenied,
    Throttled,
)
from rest_framework import exceptions, status
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework.serializers import ValidationError as SerializerValidationError

from app.platform.consent.exceptions import ConsentError
from app.utils.response import api_error

logger = logging.getLogger(__name__)


def format_validation_error(error_detail):
    """
    Convert DRF ValidationError detail into a readable error message.

    Handles:
    - Dict format: {'consent_id': [ErrorDetail(...)]} -> "Consent Id: Invalid consent identifier."
    - List format: [ErrorDetail(...)] -> "Invalid consent identifier."
    - String format: "error message" -> "error message"
    """
    if isinstance(error_detail, dict):
        messages = []
        for field, errors in error_detail.items():
            if not isinstance(errors, (list, tuple)):
                errors = [errors]
            error_strings = []
            for error in errors:
                if hasattr(error, 'string'):
                    error_strings.append(error.string)
                else:
                    error_strings.append(str(error))

            field_name = field.replace('_', ' ').title()
            messages.append(f"{field_name}: {', '.join(error_strings)}")

        return ". ".join(messages)

    elif isinstance(error_detail, list):
        messages = []
        for error in error_detail:
            if hasattr(error, 'string'):
                messages.append(error.string)
            else:
                messages.append(str(error))
        return ". ".join(messages)

    elif isinstance(error_detail, str):
        return error_detail

    else:
        return str(error_detail)


def custom_exception_handler(exc, context):
    """
    Global exception handler.
    Ensures ALL API errors use the api_error() format.
    """
    view = context.get('view', None)
    view_name = view.__class__.__name__ if view else 'UnknownView'

    # --- Consent domain errors carry their own code and status ---
    if isinstance(exc, ConsentError):
        logger.warning(f"[{view_name}] {exc.error_code}: {exc}")
        return api_error(
            status_code=exc.status_code,
            error_code=exc.error_code,
            error_message=exc.public_message,
        )

    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    # Let DRF handle built-in exceptions first (sets headers such as Retry-After)
    response = exception_handler(exc, context)
    logger.error(f"[{view_name}] Exception: {exc}")

    # --- Handle Auth Errors ---
    if isinstance(exc, (NotAuthenticated, AuthenticationFailed)):
        return api_error(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="auth_error",
            error_message="Authentication credentials were not provided or invalid.",
        )

    # --- Handle Permission Denied ---
    if isinstance(exc, PermissionDenied):
        return api_error(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="permission_denied",
            error_message="You do not have permission to perform this action.",
        )

    # --- Handle Validation Errors ---
    if isinstance(exc, (ValidationError, SerializerValidationError)):
        return api_error(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="validation_error",
            error_message=format_validation_error(exc.detail),
        )

    # --- Handle Throttling ---
    if isinstance(exc, Throttled):
        error = api_error(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_code="throttled",
            error_message=format_validation_error(exc.detail),
        )
        if response is not None and "Retry-After" in response:
            error["Retry-After"] = response["Retry-After"]
        return error

    # --- Handle other DRF API Exceptions (like NotFound, ParseError, etc.) ---
    if isinstance(exc, APIException):
        error_message = format_validation_error(exc.detail) if hasattr(exc, 'detail') else str(exc)
        return api_error(
            status_code=exc.status_code if hasattr(exc, 'status_code') else status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="api_exception",
            error_message=error_message,
        )

    # --- Handle Unexpected Server Errors ---
    logger.exception("Unhandled Exception", exc_info=exc)
    return api_error(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code="internal_server_error",
        error_message="An unexpected error occurred. Please try again later.",
    )
