"""
Domain errors raised by the service layer, and the DRF exception handler
that turns them into responses.

Every error carries an HTTP status and a machine-readable code so the
client can show a distinct message per outcome.
"""

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class SigningError(Exception):
    """Base class for all signing workflow errors."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'error'
    default_message = 'Request failed'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        data = {'error': self.message, 'code': self.code}
        if self.details is not None:
            data['details'] = self.details
        return data


class NotFound(SigningError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'not_found'
    default_message = 'Not found'


class Unauthorized(SigningError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = 'unauthorized'
    default_message = 'Unauthorized'


class InvalidState(SigningError):
    status_code = status.HTTP_409_CONFLICT
    code = 'invalid_state'
    default_message = 'Operation not allowed in the current state'


class AlreadySigned(InvalidState):
    code = 'already_signed'
    default_message = 'Already signed'


class ValidationError(SigningError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'validation_error'
    default_message = 'Invalid input'


class DependencyFailure(SigningError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = 'dependency_failure'
    default_message = 'A backing service is unavailable, please retry'


def signing_exception_handler(exc, context):
    """
    REST_FRAMEWORK['EXCEPTION_HANDLER'] entry point.

    Domain errors and database failures get the {error, code} body;
    anything else is left to DRF's default handler.
    """
    if isinstance(exc, DatabaseError):
        logger.error("Database failure in %s: %s", context.get('view').__class__.__name__, exc)
        exc = DependencyFailure()

    if isinstance(exc, SigningError):
        return Response(exc.to_dict(), status=exc.status_code)

    return exception_handler(exc, context)
