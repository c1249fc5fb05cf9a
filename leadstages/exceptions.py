from django.utils.translation import gettext_lazy as _


class LeadStageError(Exception):
    """Base error for stage and lead transition failures.

    Carries the HTTP status and a short machine readable code so views can
    turn it into a JSON error envelope without inspecting the type.
    """

    status_code = 400
    code = 'error'
    default_message = _('Request failed')

    def __init__(self, message=None, **context):
        self.message = str(message or self.default_message)
        self.context = context
        super().__init__(self.message)

    def as_dict(self):
        payload = {
            'success': False,
            'error': self.message,
            'code': self.code,
        }
        payload.update(self.context)
        return payload


class NotFound(LeadStageError):
    status_code = 404
    code = 'not_found'
    default_message = _('Not found')


class Conflict(LeadStageError):
    status_code = 409
    code = 'conflict'
    default_message = _('Conflict')


class InvalidTransition(LeadStageError):
    status_code = 409
    code = 'invalid_transition'

    def __init__(self, current, attempted, message=None):
        self.current = current
        self.attempted = attempted
        if message is None:
            message = _('Illegal transition: %(current)s -> %(attempted)s') % {
                'current': current, 'attempted': attempted,
            }
        super().__init__(message, current=current, attempted=attempted)


class ValidationError(LeadStageError):
    status_code = 400
    code = 'validation_error'
    default_message = _('Invalid input')

    def __init__(self, message=None, errors=None):
        super().__init__(message, errors=errors or {})
        self.errors = errors or {}


class WriteConflict(LeadStageError):
    """Raised when a retried write still collides with a concurrent one."""

    status_code = 409
    code = 'write_conflict'
    default_message = _('Concurrent update detected, please retry')


class Forbidden(LeadStageError):
    status_code = 403
    code = 'forbidden'
    default_message = _('Forbidden')
