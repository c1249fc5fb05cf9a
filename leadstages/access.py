"""
Principal lookup and role checks.

Authentication itself belongs to the host project: its login flow stores the
user id and role in the session, and this module only reads them back.
"""
import uuid
from dataclasses import dataclass
from functools import wraps

from django.db.models import Q
from django.http import JsonResponse
from django.utils.translation import gettext_lazy as _

from .conf import get_setting
from .exceptions import Forbidden


@dataclass(frozen=True)
class Principal:
    user_id: uuid.UUID
    role: str

    @property
    def is_restricted(self):
        return self.role in get_setting('RESTRICTED_ROLES')

    @property
    def is_stage_admin(self):
        return self.role in get_setting('STAGE_ADMIN_ROLES')


def get_principal(request):
    """Return the Principal stored in the session, or None."""
    user_id = request.session.get('local_user_id')
    if not user_id:
        return None
    try:
        user_id = uuid.UUID(str(user_id))
    except ValueError:
        return None
    role = (request.session.get('user_role') or '').lower()
    return Principal(user_id=user_id, role=role)


def scope_leads(leads, principal):
    """Restrict a lead queryset to what ``principal`` is allowed to see."""
    if principal is not None and principal.is_restricted:
        leads = leads.filter(
            Q(created_by=principal.user_id) | Q(assigned_to=principal.user_id)
        )
    return leads


def login_required(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        principal = get_principal(request)
        if principal is None:
            return JsonResponse(
                {'success': False, 'error': str(_('Authentication required')), 'code': 'unauthorized'},
                status=401,
            )
        request.principal = principal
        return view_func(request, *args, **kwargs)
    return wrapper


def require_stage_admin(principal):
    """Raise Forbidden unless ``principal`` may change the stage set."""
    if principal is None or not principal.is_stage_admin:
        raise Forbidden(_('Only stage administrators can change stages'))
