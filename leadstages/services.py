"""
Stage lifecycle

Create, place, edit, reorder and delete pipeline stages. Every structural
change to the stage set goes through here so the ordering and the
"one default stage" rule hold, and no lead is ever left on a removed stage.
"""
import logging

from django.db import IntegrityError, OperationalError, transaction
from django.db.models import ProtectedError
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .conf import get_setting
from .exceptions import Conflict, NotFound, ValidationError, WriteConflict
from .models import DEFAULT_STAGE_COLOR, Lead, Stage, slugify_key
from .ordering import assign_positions, compute_adjacent_order, next_order
from .transitions import FixedEnumPolicy

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('name', 'color', 'active', 'is_default')


# ============================================================================
# Helpers
# ============================================================================

def _clean_name(name):
    name = (name or '').strip()
    if not name:
        raise ValidationError(
            _('Name is required'), errors={'name': [str(_('This field is required.'))]},
        )
    return name


def _clear_default(exclude_pk=None):
    stages = Stage.objects.filter(is_default=True)
    if exclude_pk is not None:
        stages = stages.exclude(pk=exclude_pk)
    stages.update(is_default=False, updated_at=timezone.now())


def _lock_stages():
    # Row locks over the whole set serialize writers of the order key space
    return list(Stage.objects.select_for_update().order_by('order').only('pk'))


def _with_retry(operation, description):
    """
    Run ``operation`` in a transaction, retrying once on a write collision.

    The retry starts from a fresh read, so a concurrent insert that grabbed
    the same order value is seen as the new neighbour.
    """
    for attempt in (1, 2):
        try:
            with transaction.atomic():
                return operation()
        except (IntegrityError, OperationalError) as exc:
            if attempt == 2:
                logger.error('%s failed after retry: %s', description, exc)
                raise WriteConflict() from exc
            logger.warning('%s collided with a concurrent write, retrying: %s', description, exc)


def _warn_if_unreachable(stage):
    if get_setting('TRANSITION_POLICY') != FixedEnumPolicy.name:
        return
    if stage.key not in FixedEnumPolicy.TRANSITIONS:
        logger.warning(
            'Stage %s (%s) is not in the fixed transition table; leads can only '
            'reach it with TRANSITION_POLICY set to "free"',
            stage.pk, stage.key,
        )


def unique_key(name):
    """Derive a key from ``name`` that no stage uses yet."""
    max_length = get_setting('KEY_MAX_LENGTH')
    base = slugify_key(name, max_length)
    key, suffix = base, 2
    while Stage.objects.filter(key=key).exists():
        tail = f'_{suffix}'
        key = base[:max_length - len(tail)] + tail
        suffix += 1
    return key


# ============================================================================
# Queries
# ============================================================================

def list_stages(include_inactive=False):
    stages = Stage.objects.order_by('order')
    if not include_inactive:
        stages = stages.filter(active=True)
    return list(stages)


def get_stage(stage_id):
    stage = Stage.objects.filter(pk=stage_id).first()
    if stage is None:
        raise NotFound(_('Stage not found'), id=str(stage_id))
    return stage


# ============================================================================
# Mutations
# ============================================================================

def create_stage(name, color=None, is_default=False, key=None, created_by=None):
    """Append a stage at the end of the pipeline."""
    name = _clean_name(name)
    if key:
        key = slugify_key(key, get_setting('KEY_MAX_LENGTH'))
        if Stage.objects.filter(key=key).exists():
            raise Conflict(_('Stage key already exists'), key=key)

    def insert():
        _lock_stages()
        if is_default:
            _clear_default()
        return Stage.objects.create(
            name=name,
            key=key or unique_key(name),
            color=color or DEFAULT_STAGE_COLOR,
            order=next_order(),
            is_default=bool(is_default),
            created_by=created_by,
        )

    stage = _with_retry(insert, 'Stage create')
    logger.info('Created stage %s (%s) at order %s', stage.pk, stage.key, stage.order)
    _warn_if_unreachable(stage)
    return stage


def create_stage_adjacent(pivot_id, where, name, color=None, created_by=None):
    """
    Insert a stage right before or after ``pivot_id`` without renumbering.

    The neighbour lookup and the insert happen under one lock, so two inserts
    beside the same pivot cannot land on the same order value.
    """
    name = _clean_name(name)

    def insert():
        _lock_stages()
        order = compute_adjacent_order(pivot_id, where)
        return Stage.objects.create(
            name=name,
            key=unique_key(name),
            color=color or DEFAULT_STAGE_COLOR,
            order=order,
            is_default=False,
            created_by=created_by,
        )

    stage = _with_retry(insert, 'Adjacent stage insert')
    logger.info(
        'Created stage %s (%s) %s %s at order %s',
        stage.pk, stage.key, where, pivot_id, stage.order,
    )
    _warn_if_unreachable(stage)
    return stage


def update_stage(stage_id, patch):
    """Rename, recolor, toggle active or make default."""
    unknown = sorted(set(patch) - set(UPDATABLE_FIELDS))
    if unknown:
        raise ValidationError(
            _('Fields cannot be updated: %(fields)s') % {'fields': ', '.join(unknown)},
            errors={field: [str(_('Not editable'))] for field in unknown},
        )
    if 'name' in patch:
        patch = dict(patch, name=_clean_name(patch['name']))

    try:
        with transaction.atomic():
            stage = Stage.objects.select_for_update().filter(pk=stage_id).first()
            if stage is None:
                raise NotFound(_('Stage not found'), id=str(stage_id))
            if patch.get('is_default'):
                _clear_default(exclude_pk=stage.pk)
            for field, value in patch.items():
                setattr(stage, field, value)
            stage.save(update_fields=[*patch, 'updated_at'])
    except IntegrityError as exc:
        raise Conflict(_('Another stage is already the default'), id=str(stage_id)) from exc
    return stage


def delete_stage(stage_id, target_stage_id=None):
    """
    Delete a stage, moving its leads to ``target_stage_id`` first.

    A stage that still holds leads is only deleted when a target is given;
    otherwise nothing is written and Conflict is raised.
    """
    try:
        with transaction.atomic():
            stage = Stage.objects.select_for_update().filter(pk=stage_id).first()
            if stage is None:
                raise NotFound(_('Stage not found'), id=str(stage_id))

            leads = Lead.all_objects.filter(stage=stage)
            lead_count = leads.count()
            reassigned = 0
            if lead_count:
                if not target_stage_id:
                    raise Conflict(
                        _('Stage has leads; provide a reassignment target'),
                        id=str(stage.pk), leads=lead_count,
                    )
                if str(target_stage_id) == str(stage.pk):
                    raise ValidationError(
                        _('Target stage must differ from the deleted stage'),
                        errors={'targetStageId': [str(_('Same as deleted stage'))]},
                    )
                target = Stage.objects.filter(pk=target_stage_id).first()
                if target is None:
                    raise NotFound(_('Target stage not found'), id=str(target_stage_id))
                if not target.active:
                    raise ValidationError(
                        _('Target stage is inactive'),
                        errors={'targetStageId': [str(_('Inactive stage'))]},
                    )
                now = timezone.now()
                reassigned = leads.update(
                    stage=target, status=target.key,
                    stage_changed_at=now, updated_at=now,
                )
            stage.delete()
    except ProtectedError as exc:
        raise Conflict(
            _('Stage received new leads while being deleted'), id=str(stage_id),
        ) from exc

    logger.info('Deleted stage %s, reassigned %d leads to %s', stage_id, reassigned, target_stage_id)
    return {'deleted': True, 'reassigned': reassigned}


def reorder_stages(ordered_ids):
    """
    Put the stages in ``ordered_ids`` at positions 1..n, all or nothing.

    Stages missing from the list keep their relative order after the listed
    ones, so a partial list (e.g. only active columns) is accepted.
    """
    ids = [str(pk) for pk in ordered_ids]
    if len(set(ids)) != len(ids):
        raise ValidationError(
            _('Duplicate stage ids'), errors={'orderIds': [str(_('Duplicate ids'))]},
        )
    if not ids:
        return list_stages(include_inactive=True)

    with transaction.atomic():
        stages = list(Stage.objects.select_for_update().order_by('order'))
        by_id = {str(stage.pk): stage for stage in stages}
        missing = [pk for pk in ids if pk not in by_id]
        if missing:
            raise NotFound(_('Stage not found'), ids=missing)

        listed = [by_id[pk] for pk in ids]
        rest = [stage for stage in stages if str(stage.pk) not in set(ids)]
        assign_positions(listed + rest)

    logger.info('Reordered %d stages', len(stages))
    return list_stages(include_inactive=True)
