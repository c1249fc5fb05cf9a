import re
import uuid

from django.db import models, transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


# ============================================================================
# Choices
# ============================================================================

SOURCE_CHOICES = [
    ('website', _('Website')),
    ('referral', _('Referral')),
    ('linkedin', _('LinkedIn')),
    ('job_board', _('Job Board')),
    ('other', _('Other')),
]

ACTIVITY_TYPE_CHOICES = [
    ('stage_change', _('Stage Change')),
    ('status_change', _('Status Change')),
]

DEFAULT_STAGE_COLOR = '#6B7280'

# Legacy fixed pipeline, seeded when no stage exists yet
LEGACY_STAGES = [
    {'key': 'new', 'name': 'New', 'color': '#3B82F6', 'order': 1, 'is_default': True},
    {'key': 'interview_scheduled', 'name': 'Interview Scheduled', 'color': '#F59E0B', 'order': 2},
    {'key': 'test_assigned', 'name': 'Test Assigned', 'color': '#8B5CF6', 'order': 3},
    {'key': 'completed', 'name': 'Completed', 'color': '#10B981', 'order': 4},
]


# ============================================================================
# Base
# ============================================================================

class BaseModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Created At'))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Updated At'))

    class Meta:
        abstract = True


class ActiveManager(models.Manager):
    """Default manager that hides soft-deleted rows."""

    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)


class SoftDeleteModel(BaseModel):
    is_deleted = models.BooleanField(default=False, verbose_name=_('Deleted'))
    deleted_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Deleted At'))

    objects = ActiveManager()
    all_objects = models.Manager()

    class Meta(BaseModel.Meta):
        abstract = True

    def soft_delete(self):
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.save(update_fields=['is_deleted', 'deleted_at', 'updated_at'])


# ============================================================================
# Stage
# ============================================================================

def slugify_key(name, max_length=40):
    """
    Derive a stage key from its display name.

    Lowercased, every run of non-alphanumeric characters collapsed to a
    single underscore, capped to ``max_length``.
    """
    key = re.sub(r'[^a-z0-9]+', '_', (name or '').lower()).strip('_')
    key = key[:max_length].rstrip('_')
    return key or 'stage'


class Stage(BaseModel):
    name = models.CharField(max_length=60, verbose_name=_('Name'))
    key = models.CharField(
        max_length=60, unique=True, verbose_name=_('Key'),
        help_text=_('Stable slug mirrored into the legacy lead status'),
    )
    color = models.CharField(
        max_length=20, default=DEFAULT_STAGE_COLOR, verbose_name=_('Color'),
    )
    # Sparse sort key. Written only through leadstages.ordering.
    order = models.FloatField(unique=True, verbose_name=_('Order'))
    is_default = models.BooleanField(default=False, verbose_name=_('Default Stage'))
    active = models.BooleanField(default=True, verbose_name=_('Active'))
    created_by = models.UUIDField(
        null=True, blank=True, verbose_name=_('Created By'),
        help_text=_('UUID of the user who created the stage'),
    )

    class Meta:
        db_table = 'leadstages_stage'
        ordering = ['order']
        constraints = [
            models.UniqueConstraint(
                fields=['is_default'],
                condition=Q(is_default=True),
                name='leadstages_single_default_stage',
            ),
        ]

    def __str__(self):
        return self.name

    @property
    def lead_count(self):
        return self.leads.count()

    def as_dict(self):
        return {
            'id': str(self.id),
            'key': self.key,
            'name': self.name,
            'color': self.color,
            'order': self.order,
            'isDefault': self.is_default,
            'active': self.active,
        }


# ============================================================================
# Lead
# ============================================================================

class Lead(SoftDeleteModel):
    client_name = models.CharField(max_length=255, verbose_name=_('Client Name'))
    job_description = models.TextField(verbose_name=_('Job Description'))
    source = models.CharField(
        max_length=20, choices=SOURCE_CHOICES,
        default='other', verbose_name=_('Source'),
    )
    notes = models.TextField(blank=True, verbose_name=_('Notes'))

    # Assignment
    created_by = models.UUIDField(
        verbose_name=_('Created By'),
        help_text=_('UUID of the user who created the lead'),
    )
    assigned_to = models.UUIDField(
        null=True, blank=True, verbose_name=_('Assigned To'),
        help_text=_('UUID of the assigned user'),
    )

    # Pipeline position. ``stage`` is the source of truth, ``status`` mirrors
    # its key for clients that still read the legacy status string.
    stage = models.ForeignKey(
        Stage, on_delete=models.PROTECT,
        related_name='leads', verbose_name=_('Stage'),
    )
    status = models.CharField(max_length=60, verbose_name=_('Status'))
    stage_changed_at = models.DateTimeField(
        default=timezone.now, verbose_name=_('Stage Changed At'),
    )

    class Meta(SoftDeleteModel.Meta):
        db_table = 'leadstages_lead'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['stage', 'is_deleted'], name='leadstages__stage_i_5b1c0e_idx'),
            models.Index(fields=['status'], name='leadstages__status_9d2f4a_idx'),
            models.Index(fields=['assigned_to'], name='leadstages__assigne_3e7a81_idx'),
            models.Index(fields=['created_by'], name='leadstages__created_c4b6d2_idx'),
        ]

    def __str__(self):
        return self.client_name

    def save(self, *args, **kwargs):
        if self.stage_id and not self.status:
            self.status = self.stage.key
        super().save(*args, **kwargs)

    @property
    def days_in_stage(self):
        if self.stage_changed_at:
            delta = timezone.now() - self.stage_changed_at
            return delta.days
        return 0

    def as_dict(self):
        return {
            'id': str(self.id),
            'clientName': self.client_name,
            'jobDescription': self.job_description,
            'source': self.source,
            'notes': self.notes,
            'status': self.status,
            'stage': str(self.stage_id),
            'createdBy': str(self.created_by),
            'assignedTo': str(self.assigned_to) if self.assigned_to else None,
            'daysInStage': self.days_in_stage,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


# ============================================================================
# Lead Activity
# ============================================================================

class LeadActivity(BaseModel):
    lead = models.ForeignKey(
        Lead, on_delete=models.CASCADE,
        related_name='activities', verbose_name=_('Lead'),
    )
    activity_type = models.CharField(
        max_length=20, choices=ACTIVITY_TYPE_CHOICES,
        verbose_name=_('Activity Type'),
    )
    description = models.TextField(verbose_name=_('Description'))
    metadata = models.JSONField(
        default=dict, blank=True, verbose_name=_('Metadata'),
    )
    actor = models.UUIDField(
        null=True, blank=True, verbose_name=_('Actor'),
        help_text=_('UUID of the user who triggered the change'),
    )

    class Meta:
        db_table = 'leadstages_leadactivity'
        ordering = ['-created_at']

    def __str__(self):
        return f'{self.get_activity_type_display()} - {self.lead.client_name}'


# ============================================================================
# Helper: Ensure default stages
# ============================================================================

def seed_legacy_stages():
    """
    Create whichever legacy stages are missing.

    Safe to run from concurrent requests: get_or_create falls back to a
    read when another request inserted the same key first.
    """
    with transaction.atomic():
        for stage_data in LEGACY_STAGES:
            data = dict(stage_data)
            Stage.objects.get_or_create(key=data.pop('key'), defaults=data)


def ensure_default_stages():
    """
    Create the legacy fixed pipeline if no stage exists yet.
    Returns the stages in order.
    """
    if not Stage.objects.exists():
        seed_legacy_stages()
    return list(Stage.objects.order_by('order'))
