"""
Error taxonomy shared by every app.

Each domain error carries a stable machine code next to its message, and
``api_exception_handler`` renders all API errors as::

    {"error": "<message>", "code": "<code>"}
"""
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.views import exception_handler


class TaskTrackerError(exceptions.APIException):
    """Base class for expected, caller-correctable failures."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "The request could not be processed."
    default_code = "error"


class ValidationFailed(TaskTrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input."
    default_code = "validation_error"


class SelfReference(ValidationFailed):
    default_detail = "A task cannot depend on itself."
    default_code = "self_reference"


class CycleDetected(ValidationFailed):
    default_detail = "This dependency would create a circular chain."
    default_code = "cycle_detected"


class NotFound(TaskTrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class Forbidden(TaskTrackerError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action."
    default_code = "forbidden"


class Conflict(TaskTrackerError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The request conflicts with the current state."
    default_code = "conflict"


class DuplicateDependency(Conflict):
    default_detail = "This dependency already exists."
    default_code = "duplicate"


_FRAMEWORK_CODES = (
    (exceptions.NotAuthenticated, "not_authenticated"),
    (exceptions.AuthenticationFailed, "not_authenticated"),
    (exceptions.PermissionDenied, "forbidden"),
    (DjangoPermissionDenied, "forbidden"),
    (exceptions.NotFound, "not_found"),
    (Http404, "not_found"),
    (exceptions.ParseError, "validation_error"),
    (exceptions.MethodNotAllowed, "method_not_allowed"),
)


def error_code_for(exc):
    if isinstance(exc, TaskTrackerError):
        return getattr(exc.detail, "code", None) or exc.default_code
    for exc_class, code in _FRAMEWORK_CODES:
        if isinstance(exc, exc_class):
            return code
    return getattr(exc, "default_code", "error")


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        response.data = {
            "error": "Invalid input.",
            "code": "validation_error",
            "fields": response.data,
        }
        return response

    if isinstance(exc, TaskTrackerError):
        message = str(exc.detail)
    elif isinstance(response.data, dict):
        message = str(response.data.get("detail", ""))
    else:
        message = str(response.data)

    response.data = {"error": message, "code": error_code_for(exc)}
    return response
