"""
Lead Stages Views

JSON endpoints for the stage editor, the kanban board and lead moves.
Every response uses the same envelope:

    {"success": true, "message": "...", "data": ...}
    {"success": false, "error": "...", "code": "...", ...context}
"""
import json
from functools import wraps

from django.http import JsonResponse
from django.utils.translation import gettext_lazy as _
from django.views.decorators.http import require_http_methods

from . import board, services, transitions
from .access import login_required, require_stage_admin
from .exceptions import LeadStageError, ValidationError
from .forms import (
    LeadMoveForm, LeadStatusForm, StageAdjacentForm, StageDeleteForm,
    StageForm, StageReorderForm, StageUpdateForm,
)
from .models import ensure_default_stages


# ============================================================================
# Helpers
# ============================================================================

def api_view(view_func):
    """Turn LeadStageError into its JSON error envelope."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except LeadStageError as exc:
            return JsonResponse(exc.as_dict(), status=exc.status_code)
    return wrapper


def _ok(data, message, status=200):
    return JsonResponse({
        'success': True,
        'message': str(message),
        'data': data,
    }, status=status)


def _json_body(request):
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError(_('Request body must be valid JSON'))
    if not isinstance(payload, dict):
        raise ValidationError(_('Request body must be a JSON object'))
    return payload


def _validated(form_class, data):
    form = form_class(data)
    if not form.is_valid():
        errors = {
            field: [str(message) for message in messages]
            for field, messages in form.errors.items()
        }
        raise ValidationError(_('Invalid input'), errors=errors)
    return form


def _principal_id(request):
    return request.principal.user_id


# ============================================================================
# Stages
# ============================================================================

@require_http_methods(['GET', 'POST'])
@login_required
@api_view
def stages_collection(request):
    """List stages, or append a new one."""
    if request.method == 'GET':
        include_inactive = request.GET.get('includeInactive') == 'true'
        stages = services.list_stages(include_inactive=include_inactive)
        return _ok([stage.as_dict() for stage in stages], _('Stages fetched'))

    require_stage_admin(request.principal)
    form = _validated(StageForm, _json_body(request))
    stage = services.create_stage(
        name=form.cleaned_data['name'],
        color=form.cleaned_data['color'],
        is_default=form.cleaned_data['isDefault'],
        key=form.cleaned_data['key'] or None,
        created_by=_principal_id(request),
    )
    return _ok(stage.as_dict(), _('Stage created'), status=201)


@require_http_methods(['POST'])
@login_required
@api_view
def stage_adjacent(request):
    """Insert a stage right before or after a pivot stage."""
    require_stage_admin(request.principal)
    form = _validated(StageAdjacentForm, _json_body(request))
    stage = services.create_stage_adjacent(
        pivot_id=form.cleaned_data['pivotId'],
        where=form.cleaned_data['where'],
        name=form.cleaned_data['name'],
        color=form.cleaned_data['color'],
        created_by=_principal_id(request),
    )
    return _ok(stage.as_dict(), _('Stage created'), status=201)


@require_http_methods(['PATCH'])
@login_required
@api_view
def stage_reorder(request):
    """Apply a drag-and-drop reorder of the stage columns."""
    require_stage_admin(request.principal)
    form = _validated(StageReorderForm, _json_body(request))
    stages = services.reorder_stages(form.cleaned_data['orderIds'])
    return _ok([stage.as_dict() for stage in stages], _('Stages reordered'))


@require_http_methods(['GET', 'PATCH', 'DELETE'])
@login_required
@api_view
def stage_detail(request, stage_id):
    if request.method == 'GET':
        return _ok(services.get_stage(stage_id).as_dict(), _('Stage fetched'))

    require_stage_admin(request.principal)

    if request.method == 'PATCH':
        form = _validated(StageUpdateForm, _json_body(request))
        stage = services.update_stage(stage_id, form.patch())
        return _ok(stage.as_dict(), _('Stage updated'))

    # DELETE bodies are dropped by some clients, accept the query string too
    data = _json_body(request) or {'targetStageId': request.GET.get('targetStageId')}
    form = _validated(StageDeleteForm, data)
    result = services.delete_stage(stage_id, form.cleaned_data['targetStageId'])
    return _ok(result, _('Stage deleted'))


# ============================================================================
# Kanban
# ============================================================================

@require_http_methods(['GET'])
@login_required
@api_view
def kanban_board(request):
    """Per-stage lead columns, each paginated on its own."""
    ensure_default_stages()
    columns = board.get_board(request.GET, principal=request.principal)
    data = {
        stage_id: {
            'stage': column['stage'].as_dict(),
            'data': [lead.as_dict() for lead in column['data']],
            'pagination': column['pagination'],
        }
        for stage_id, column in columns.items()
    }
    return _ok(data, _('Kanban board fetched'))


@require_http_methods(['GET'])
@login_required
@api_view
def kanban_summary(request):
    """Lead counts per stage for reports and stats."""
    summary = board.stage_summary(request.GET, principal=request.principal)
    data = {
        'stages': [
            {**row['stage'].as_dict(), 'count': row['count']}
            for row in summary['stages']
        ],
        'total': summary['total'],
    }
    return _ok(data, _('Stage summary fetched'))


@require_http_methods(['PATCH'])
@login_required
@api_view
def lead_move(request, lead_id):
    """Move a lead onto another column (kanban drag-and-drop)."""
    form = _validated(LeadMoveForm, _json_body(request))
    lead = transitions.move_lead(
        lead_id, form.cleaned_data['toStageId'], principal=request.principal,
    )
    return _ok(lead.as_dict(), _('Lead moved'))


# ============================================================================
# Leads
# ============================================================================

@require_http_methods(['PATCH'])
@login_required
@api_view
def lead_status(request, lead_id):
    """Change a lead's status through the active transition policy."""
    form = _validated(LeadStatusForm, _json_body(request))
    lead = transitions.change_status(
        lead_id, form.cleaned_data['status'], principal=request.principal,
    )
    return _ok(lead.as_dict(), _('Lead status updated'))
