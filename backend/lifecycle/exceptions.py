"""
Domain errors for the onboarding and mentorship lifecycle, plus the
project-wide DRF exception handler that renders them.
"""
import functools
import logging

from django.db import DatabaseError, IntegrityError
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class LifecycleError(drf_exceptions.APIException):
    """Base class for every error the lifecycle services raise."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The request could not be completed.'
    default_code = 'lifecycle_error'


class AuthenticationRequired(LifecycleError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Authentication credentials were not provided.'
    default_code = 'authentication_required'


class AuthorizationDenied(LifecycleError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'authorization_denied'


class ValidationFailed(LifecycleError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'validation_failed'


class DuplicateRequest(LifecycleError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This record already exists.'
    default_code = 'duplicate_request'


class NotFound(LifecycleError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class VersionConflict(LifecycleError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This roadmap was changed by someone else. Refresh and try again.'
    default_code = 'version_conflict'


class StoreUnavailable(LifecycleError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The service is temporarily unavailable. Please try again.'
    default_code = 'store_unavailable'


class AssignmentFailed(StoreUnavailable):
    default_detail = 'Role assignment failed. Please try again.'
    default_code = 'assignment_failed'


def translate_store_errors(func=None, *, error_class=StoreUnavailable):
    """Re-raise database failures from a service call as ``error_class``.

    IntegrityError is left alone so callers can map it to a duplicate.
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except IntegrityError:
                raise
            except DatabaseError as exc:
                logger.error("Store failure in %s: %s", fn.__name__, exc)
                raise error_class() from exc
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


def _collect_messages_from_response_data(response_data):
    """Build a list of human-readable messages from DRF error response data."""
    messages = []
    if isinstance(response_data, dict):
        # DRF returns {'field': ['msg']} or {'detail': 'msg'}
        if 'detail' in response_data and not isinstance(response_data.get('detail'), (dict, list)):
            messages.append(str(response_data['detail']))
        for field, value in response_data.items():
            if field == 'detail':
                continue
            if isinstance(value, (list, tuple)) and value:
                msg = str(value[0])
            else:
                msg = str(value)
            field_label = str(field).replace('_', ' ').capitalize()
            messages.append(f"{field_label}: {msg}")
    elif isinstance(response_data, (list, tuple)):
        for v in response_data:
            if v:
                messages.append(str(v))
    elif response_data:
        messages.append(str(response_data))
    return messages


def custom_exception_handler(exc, context):
    """
    Render every API error in one envelope.

    Returns:
        Response with format:
        {
            "error": {
                "code": "error_code",
                "message": "User-friendly error message",
                "messages": [...],
                "details": {...}  # Optional field-specific errors
            }
        }
    """
    # Deferred: rest_framework.views loads the authentication classes,
    # which import this module.
    from rest_framework.views import exception_handler

    response = exception_handler(exc, context)

    if response is None:
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return Response(
            {
                'error': {
                    'code': 'internal_server_error',
                    'message': 'An unexpected error occurred. Please try again later.',
                }
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    # Auth failures always return 401 so clients can re-auth.
    if isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
        response.status_code = status.HTTP_401_UNAUTHORIZED

    messages = _collect_messages_from_response_data(response.data)
    payload = {
        'error': {
            'code': get_error_code(exc, response.status_code),
            'message': messages[0] if messages else get_error_message(exc, response.data),
        }
    }
    if messages:
        payload['error']['messages'] = messages

    if isinstance(response.data, dict):
        details = {}
        for field, errors in response.data.items():
            if field == 'detail':
                continue
            if isinstance(errors, list):
                details[field] = errors[0] if errors else 'Invalid value'
            else:
                details[field] = str(errors)
        if details:
            payload['error']['details'] = details

    if isinstance(exc, LifecycleError):
        logger.info("%s: %s", exc.__class__.__name__, payload['error']['message'])

    response.data = payload
    return response


def get_error_code(exc, status_code):
    """Generate error code from exception."""
    if hasattr(exc, 'default_code'):
        return exc.default_code

    code_map = {
        400: 'bad_request',
        401: 'unauthorized',
        403: 'forbidden',
        404: 'not_found',
        405: 'method_not_allowed',
        409: 'conflict',
        429: 'too_many_requests',
        500: 'internal_server_error',
        503: 'service_unavailable',
    }
    return code_map.get(status_code, 'error')


def get_error_message(exc, response_data):
    """Extract user-friendly error message."""
    if hasattr(exc, 'detail'):
        detail = exc.detail
        if isinstance(detail, dict):
            for value in detail.values():
                if isinstance(value, list) and value:
                    return str(value[0])
                return str(value)
        return str(detail)

    if isinstance(response_data, dict) and 'detail' in response_data:
        return str(response_data['detail'])

    return 'An error occurred'
