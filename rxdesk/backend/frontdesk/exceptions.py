"""
Unified exception hierarchy.

Every front-desk error inherits BaseAppException and carries:
- type:        error category (validation_error / fetch_error / save_error / not_found / warning)
- code:        machine-readable code (INCOMPLETE_ITEM / INVALID_DATE_RANGE / ...)
- message:     human-readable text shown to the user
- detail:      optional extra data (dict / list / None)
- http_status: status code used when a view reports the error

Components only raise; ExceptionHandlerMixin in views.py turns the exception
into the response body, so nothing escapes past the screen that caused it.
"""


class BaseAppException(Exception):
    """Base class for all front-desk errors."""

    type = 'error'
    code = 'UNKNOWN_ERROR'
    http_status = 500

    def __init__(self, message, code=None, detail=None, http_status=None):
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.detail = detail
        super().__init__(message)

    def to_dict(self):
        body = {
            'type': self.type,
            'code': self.code,
            'message': self.message,
        }
        if self.detail is not None:
            body['detail'] = self.detail
        return body


class ValidationError(BaseAppException):
    """A required field is missing before a local change. Never reaches the backend."""

    type = 'validation_error'
    code = 'VALIDATION_ERROR'
    http_status = 400


class FetchError(BaseAppException):
    """A read against the backend failed. Whatever was displayed stays displayed."""

    type = 'fetch_error'
    code = 'FETCH_FAILED'
    http_status = 502


class SaveError(BaseAppException):
    """A create / update / delete failed. Form and list state are kept for a retry."""

    type = 'save_error'
    code = 'SAVE_FAILED'
    http_status = 502


class NotFoundError(BaseAppException):
    """The referenced record does not exist. Rendered as a "not found" state."""

    type = 'not_found'
    code = 'NOT_FOUND'
    http_status = 404


class WarningError(BaseAppException):
    """
    The action needs an explicit user confirmation first.

    Not a failure but a pause: the browser asks the user and resubmits the
    same request with confirm=true. Used for deletions.
    """

    type = 'warning'
    code = 'CONFIRMATION_REQUIRED'
    http_status = 409
