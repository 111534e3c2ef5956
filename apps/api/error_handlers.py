"""
Error handling for the fleet API.

Domain code raises Django / domain exceptions; this module turns them into
JSON responses of the form {"error", "status_code", "detail"} and logs them.
"""

import logging

from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.http import JsonResponse
from django.views.decorators.cache import never_cache
from django.views.decorators.csrf import requires_csrf_token
from rest_framework import exceptions, status
from rest_framework.views import exception_handler

from apps.fleet.exceptions import DiagnosisUnavailable, UnknownItem

logger = logging.getLogger(__name__)

ERROR_TITLES = {
    400: 'Validation failed',
    401: 'Authentication required',
    403: 'Access forbidden',
    404: 'Resource not found',
    405: 'Method not allowed',
    429: 'Too many requests',
    502: 'External service unavailable',
    503: 'Could not save or load data',
}


class ServiceUnavailable(exceptions.APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The database could not complete the operation. Please try again.'
    default_code = 'persistence_error'


class BadGateway(exceptions.APIException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'The diagnosis service is unavailable.'
    default_code = 'external_service_error'


def _validation_detail(exc):
    if hasattr(exc, 'error_dict'):
        return exc.message_dict
    return {'non_field_errors': exc.messages}


def _translate(exc):
    """Map domain/Django exceptions onto DRF API exceptions."""
    if isinstance(exc, DjangoValidationError):
        return exceptions.ValidationError(detail=_validation_detail(exc))
    if isinstance(exc, UnknownItem):
        return exceptions.ValidationError(detail={'checklist_values': [f"Unknown checklist item: {exc}"]})
    if isinstance(exc, ObjectDoesNotExist):
        return exceptions.NotFound(detail=str(exc) or None)
    if isinstance(exc, DiagnosisUnavailable):
        return BadGateway(detail=str(exc) or None)
    if isinstance(exc, DatabaseError):
        logger.error("Persistence failure: %s", exc, exc_info=True)
        return ServiceUnavailable()
    return exc


def api_exception_handler(exc, context):
    exc = _translate(exc)
    response = exception_handler(exc, context)
    if response is None:
        return None

    request = context.get('request')
    path = getattr(request, 'path', '')
    if response.status_code >= 500:
        logger.error("API error %s on %s: %s", response.status_code, path, exc)
    else:
        logger.warning("API error %s on %s: %s", response.status_code, path, exc)

    response.data = {
        'error': ERROR_TITLES.get(response.status_code, 'Request failed'),
        'status_code': response.status_code,
        'detail': response.data,
    }
    return response


@never_cache
@requires_csrf_token
def handler404(request, exception=None):
    logger.warning(f"404 error for path: {request.path} from IP: {request.META.get('REMOTE_ADDR')}")
    return JsonResponse({
        'error': ERROR_TITLES[404],
        'status_code': 404,
        'detail': request.path,
    }, status=404)


@never_cache
@requires_csrf_token
def handler500(request):
    logger.error(f"500 error for path: {request.path} from IP: {request.META.get('REMOTE_ADDR')}")
    return JsonResponse({
        'error': 'Internal server error',
        'status_code': 500,
        'detail': 'An unexpected error occurred. Please try again later.',
    }, status=500)


@never_cache
@requires_csrf_token
def handler403(request, exception=None):
    logger.warning(f"403 error for path: {request.path} from IP: {request.META.get('REMOTE_ADDR')}")
    return JsonResponse({
        'error': ERROR_TITLES[403],
        'status_code': 403,
        'detail': 'You do not have permission to access this resource.',
    }, status=403)
