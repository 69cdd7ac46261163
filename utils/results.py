"""
Result envelopes returned by the service layer.

Services never raise to their callers.  Every operation returns either::

    {'ok': True, 'data': {...}}

or::

    {'ok': False, 'error': {'code': 'NOT_FOUND', 'message': '...', 'details': None}}

Blueprints turn these into JSON responses with ``to_response``.
"""
from flask import jsonify

UNAUTHENTICATED = 'UNAUTHENTICATED'
VALIDATION_ERROR = 'VALIDATION_ERROR'
NOT_FOUND = 'NOT_FOUND'
CONFLICT = 'CONFLICT'
INTERNAL_ERROR = 'INTERNAL_ERROR'

HTTP_STATUS = {
    UNAUTHENTICATED: 401,
    VALIDATION_ERROR: 400,
    NOT_FOUND: 404,
    CONFLICT: 409,
    INTERNAL_ERROR: 500,
}


def success(data):
    return {'ok': True, 'data': data}


def failure(code, message, details=None):
    return {'ok': False, 'error': {'code': code, 'message': message, 'details': details}}


def unauthenticated(message='Not authenticated'):
    return failure(UNAUTHENTICATED, message)


def storage_failure(exc):
    """Wrap a SQLAlchemy exception as an INTERNAL_ERROR result."""
    return failure(INTERNAL_ERROR, 'Storage error', details=exc.__class__.__name__)


def error_code(result):
    """Return the error code of a failed result, or ``None`` on success."""
    if result['ok']:
        return None
    return result['error']['code']


def to_response(result, status=200):
    """Render a service result as a Flask JSON response."""
    if result['ok']:
        return jsonify(result), status
    return jsonify(result), HTTP_STATUS.get(result['error']['code'], 500)
