"""
Lead transitions

A lead changes stage only through ``change_status`` or ``move_lead``. Which
moves are legal is decided by one TransitionPolicy, chosen per deployment
with ``LEADSTAGES['TRANSITION_POLICY']``:

fixed
    The legacy four-status pipeline with an explicit table of allowed next
    statuses. ``completed`` is terminal.
free
    User defined stages; a lead may move to any existing, active stage.

``Lead.stage`` is the source of truth for where a lead sits. ``Lead.status``
is rewritten to the stage key on every move and never set on its own.
"""
import logging

from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .access import scope_leads
from .conf import get_setting
from .exceptions import InvalidTransition, NotFound, ValidationError
from .models import Lead, LeadActivity, Stage

logger = logging.getLogger(__name__)


# ============================================================================
# Policies
# ============================================================================

class TransitionPolicy:
    name = None

    def allowed_next(self, current):
        raise NotImplementedError

    def check(self, current, attempted, target):
        """
        Raise if a lead on ``current`` may not go to ``attempted``.

        ``target`` is the Stage whose key is ``attempted``, or None when no
        such stage exists.
        """
        raise NotImplementedError


class FixedEnumPolicy(TransitionPolicy):
    name = 'fixed'

    TRANSITIONS = {
        'new': frozenset({'interview_scheduled'}),
        'interview_scheduled': frozenset({'test_assigned', 'new'}),
        'test_assigned': frozenset({'completed', 'interview_scheduled'}),
        'completed': frozenset(),
    }

    def __init__(self, transitions=None):
        self.transitions = transitions if transitions is not None else self.TRANSITIONS

    def allowed_next(self, current):
        return self.transitions.get(current, frozenset())

    def check(self, current, attempted, target):
        if attempted not in self.allowed_next(current):
            raise InvalidTransition(current, attempted)
        if target is None:
            raise NotFound(_('Stage not found'), key=attempted)
        if not target.active:
            raise InvalidTransition(
                current, attempted,
                message=_('Stage %(key)s is inactive') % {'key': attempted},
            )


class FreeStagePolicy(TransitionPolicy):
    name = 'free'

    def allowed_next(self, current):
        return frozenset(
            Stage.objects.filter(active=True).exclude(key=current).values_list('key', flat=True)
        )

    def check(self, current, attempted, target):
        if target is None:
            raise ValidationError(
                _('Unknown status: %(status)s') % {'status': attempted},
                errors={'status': [str(_('No stage with this key'))]},
            )
        if not target.active:
            raise InvalidTransition(
                current, attempted,
                message=_('Stage %(key)s is inactive') % {'key': attempted},
            )


POLICIES = {
    FixedEnumPolicy.name: FixedEnumPolicy,
    FreeStagePolicy.name: FreeStagePolicy,
}


def get_policy():
    name = get_setting('TRANSITION_POLICY')
    try:
        return POLICIES[name]()
    except KeyError:
        raise ImproperlyConfigured(
            f"LEADSTAGES['TRANSITION_POLICY'] must be one of {sorted(POLICIES)}, got {name!r}"
        )


# ============================================================================
# Lead moves
# ============================================================================

def _lock_lead(lead_id, principal):
    leads = scope_leads(Lead.objects.select_for_update(), principal)
    lead = leads.select_related('stage').filter(pk=lead_id).first()
    if lead is None:
        raise NotFound(_('Lead not found'), id=str(lead_id))
    return lead


def _apply_move(lead, target, activity_type, principal):
    old_stage = lead.stage
    lead.stage = target
    lead.status = target.key
    lead.stage_changed_at = timezone.now()
    lead.save(update_fields=['stage', 'status', 'stage_changed_at', 'updated_at'])
    LeadActivity.objects.create(
        lead=lead,
        activity_type=activity_type,
        description=str(_('Stage changed from %(old)s to %(new)s') % {
            'old': old_stage.name, 'new': target.name,
        }),
        metadata={
            'old_stage': str(old_stage.id),
            'old_stage_key': old_stage.key,
            'old_stage_name': old_stage.name,
            'new_stage': str(target.id),
            'new_stage_key': target.key,
            'new_stage_name': target.name,
        },
        actor=principal.user_id if principal else None,
    )
    logger.info('Lead %s moved %s -> %s', lead.pk, old_stage.key, target.key)
    return lead


def change_status(lead_id, new_status, principal=None, policy=None):
    """
    Move a lead to the stage whose key is ``new_status``.

    Fails with InvalidTransition, naming both values, when the active policy
    does not allow the move. Nothing is written on failure.
    """
    policy = policy or get_policy()
    with transaction.atomic():
        lead = _lock_lead(lead_id, principal)
        current = lead.stage.key
        target = Stage.objects.filter(key=new_status).first()
        policy.check(current, new_status, target)
        return _apply_move(lead, target, 'status_change', principal)


def move_lead(lead_id, to_stage_id, principal=None, policy=None):
    """Kanban drag and drop: move a lead onto the column ``to_stage_id``."""
    policy = policy or get_policy()
    with transaction.atomic():
        lead = _lock_lead(lead_id, principal)
        target = Stage.objects.filter(pk=to_stage_id).first()
        if target is None:
            raise NotFound(_('Target stage not found'), id=str(to_stage_id))
        if target.pk == lead.stage_id:
            return lead
        policy.check(lead.stage.key, target.key, target)
        return _apply_move(lead, target, 'stage_change', principal)
