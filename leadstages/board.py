"""
Kanban board

One column per active stage, in stage order. Each column is paginated on
its own through ``<stageKey>Page`` / ``<stageKey>Limit`` query parameters,
so one column can sit on page 2 while the others stay on page 1.
"""
import logging
import uuid

from django.core.paginator import Paginator
from django.db.models import Count, Q
from django.utils.translation import gettext_lazy as _

from .access import scope_leads
from .conf import get_setting
from .exceptions import ValidationError
from .models import Lead
from .services import list_stages

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ['client_name', 'job_description', 'source', 'status']


def _positive_int(value, default):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _uuid_param(query, name):
    value = query.get(name)
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(
            _('Invalid id for %(name)s') % {'name': name},
            errors={name: [str(_('Enter a valid UUID.'))]},
        )


def lead_queryset(query, principal=None):
    """
    Leads matching the list filters, scoped to what ``principal`` may see.

    Shared by every board column and the stage summary so counts never leak
    leads the principal cannot open.
    """
    leads = Lead.objects.all()

    search = (query.get('search') or '').strip()
    if search:
        condition = Q()
        for field in SEARCH_FIELDS:
            condition |= Q(**{f'{field}__icontains': search})
        leads = leads.filter(condition)

    status = query.get('status')
    if status and status != 'all':
        leads = leads.filter(status=status)

    source = query.get('source')
    if source:
        leads = leads.filter(source=source)

    assigned_to = _uuid_param(query, 'assignedTo')
    if assigned_to:
        leads = leads.filter(assigned_to=assigned_to)

    created_by = _uuid_param(query, 'createdBy')
    if created_by:
        leads = leads.filter(created_by=created_by)

    return scope_leads(leads, principal)


def paginate(leads, page, limit):
    paginator = Paginator(leads, limit)
    page_obj = paginator.get_page(page)
    total = paginator.count
    return list(page_obj.object_list), {
        'page': page_obj.number,
        'limit': limit,
        'total': total,
        'pages': paginator.num_pages if total else 0,
        'hasNext': page_obj.has_next(),
        'hasPrev': page_obj.has_previous(),
    }


def get_board(query, principal=None):
    """
    Build the board as an ordered mapping of stage id to column.

    Each column is ``{'stage', 'data', 'pagination'}``.
    """
    leads = lead_queryset(query, principal)
    default_page = _positive_int(query.get('page'), 1)
    default_limit = _positive_int(query.get('limit'), get_setting('BOARD_PAGE_SIZE'))
    max_limit = get_setting('MAX_PAGE_SIZE')

    columns = {}
    for stage in list_stages():
        page = _positive_int(query.get(f'{stage.key}Page'), default_page)
        limit = min(_positive_int(query.get(f'{stage.key}Limit'), default_limit), max_limit)
        data, pagination = paginate(
            leads.filter(stage=stage).order_by('-created_at', '-id'), page, limit,
        )
        columns[str(stage.pk)] = {
            'stage': stage,
            'data': data,
            'pagination': pagination,
        }

    logger.debug('Assembled board with %d columns', len(columns))
    return columns


def stage_summary(query=None, principal=None):
    """Lead count per stage, in stage order, including inactive stages."""
    leads = lead_queryset(query or {}, principal)
    counts = {
        row['stage']: row['count']
        for row in leads.order_by().values('stage').annotate(count=Count('id'))
    }
    rows = [
        {'stage': stage, 'count': counts.get(stage.pk, 0)}
        for stage in list_stages(include_inactive=True)
    ]
    return {
        'stages': rows,
        'total': sum(row['count'] for row in rows),
    }
