# utils.py
from rest_framework.response import Response


def api_response(status_code=200, success=True, data=None, message=None, headers=None):
    """
    Standardized API success response
    """
    body = {"success": success}
    if message:
        body["message"] = message
    body.update(data or {})
    return Response(body, status=status_code, headers=headers)


def api_error(status_code=500, error_code="internal_server_error", error_message=None, data=None):
    """
    Standardized API error response
    """
    return Response(
        {
            "success": False,
            "code": error_code,
            "message": error_message or "",
            "data": dict(data or {}, status=status_code),
        },
        status=status_code,
    )
