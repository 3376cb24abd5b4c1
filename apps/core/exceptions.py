import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """
    Base class for errors raised by service layers
    Carries the HTTP status it maps to and any extra response fields
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def payload(self) -> dict:
        return {}


def flatten_errors(detail, prefix: str = ""):
    """
    Flatten DRF error detail into a list of {field, message} pairs

    Nested dicts (e.g. list child errors) are joined with dots: "image_urls.0"
    """
    field = prefix or "non_field_errors"

    if isinstance(detail, dict):
        errors = []
        for key, value in detail.items():
            errors.extend(flatten_errors(value, f"{prefix}.{key}" if prefix else str(key)))
        return errors

    if isinstance(detail, list):
        errors = []
        for item in detail:
            if isinstance(item, (dict, list)):
                errors.extend(flatten_errors(item, prefix))
            else:
                errors.append({"field": field, "message": str(item)})
        return errors

    return [{"field": field, "message": str(detail)}]


def api_exception_handler(exc, context):
    """
    Render every API error with the same envelope:
    {"success": false, "message": "...", "errors": [...]}
    """
    if isinstance(exc, ServiceError):
        if exc.status_code >= 500:
            logger.error(f"Service error in {context.get('view').__class__.__name__}: {exc}", exc_info=exc)
        return Response({"success": False, "message": str(exc), **exc.payload()}, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, dict) and "detail" in data:
        response.data = {"success": False, "message": str(data["detail"])}
    else:
        response.data = {"success": False, "message": "Validation failed", "errors": flatten_errors(data)}

    return response
