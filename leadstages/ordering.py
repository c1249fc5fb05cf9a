"""
Stage ordering

Stages are sorted by a sparse float ``order`` key. New stages are placed
between two neighbours by taking the midpoint, so an adjacent insert never
touches another row. When two neighbours get too close for a float to fit in
between, the whole set is reindexed onto an evenly spaced grid.

Every write to ``Stage.order`` goes through this module.
"""
import logging

from django.db import transaction
from django.db.models import Min
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .conf import get_setting
from .exceptions import NotFound, ValidationError
from .models import Stage

logger = logging.getLogger(__name__)

BEFORE = 'before'
AFTER = 'after'
POSITIONS = (BEFORE, AFTER)


def midpoint(low, high):
    """Return a value strictly between low and high, or None if none fits."""
    mid = (low + high) / 2
    if low < mid < high:
        return mid
    return None


def _neighbor(pivot, where):
    if where == BEFORE:
        return Stage.objects.filter(order__lt=pivot.order).order_by('-order').first()
    return Stage.objects.filter(order__gt=pivot.order).order_by('order').first()


def _adjacent_order(pivot_id, where):
    pivot = Stage.objects.filter(pk=pivot_id).first()
    if pivot is None:
        raise NotFound(_('Pivot stage not found'), id=str(pivot_id))

    neighbor = _neighbor(pivot, where)
    if neighbor is None:
        order = pivot.order - 1 if where == BEFORE else pivot.order + 1
        # Past the edge of float precision pivot +/- 1 collapses onto pivot
        return None if order == pivot.order else order

    if where == BEFORE:
        return midpoint(neighbor.order, pivot.order)
    return midpoint(pivot.order, neighbor.order)


def compute_adjacent_order(pivot_id, where):
    """
    Compute the order key for a stage placed right before or after a pivot.

    Returns the midpoint between the pivot and its neighbour in the requested
    direction, or pivot -/+ 1 at the edges of the list. Reindexes all stages
    first when the gap cannot be split any further.
    """
    if where not in POSITIONS:
        raise ValidationError(
            _('Position must be "before" or "after"'),
            errors={'where': [str(_('Invalid choice'))]},
        )

    order = _adjacent_order(pivot_id, where)
    if order is None:
        logger.info('Order gap exhausted next to stage %s, reindexing', pivot_id)
        reindex_orders()
        order = _adjacent_order(pivot_id, where)
    return order


def assign_positions(stages, step=1):
    """
    Write ``(index + 1) * step`` as the order of each stage in ``stages``.

    ``stages`` must be the complete stage set in its target sequence. Rows are
    first parked on distinct values below every existing key so the unique
    constraint on ``order`` holds after each statement.
    """
    now = timezone.now()
    floor = Stage.objects.aggregate(low=Min('order'))['low'] or 0
    floor = min(floor, 0)

    for index, stage in enumerate(stages, start=1):
        Stage.objects.filter(pk=stage.pk).update(order=floor - index)

    for index, stage in enumerate(stages, start=1):
        stage.order = float(index * step)
        Stage.objects.filter(pk=stage.pk).update(order=stage.order, updated_at=now)
    return stages


def reindex_orders():
    """Respace every stage onto a grid of REINDEX_STEP, keeping the sequence."""
    step = get_setting('REINDEX_STEP')
    with transaction.atomic():
        stages = list(Stage.objects.select_for_update().order_by('order'))
        assign_positions(stages, step=step)
    logger.info('Reindexed %d stages with step %s', len(stages), step)
    return stages


def next_order():
    """Order key for a stage appended at the end of the list."""
    last = Stage.objects.order_by('-order').first()
    return last.order + 1 if last else 1.0
