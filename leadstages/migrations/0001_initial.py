import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Stage',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('name', models.CharField(max_length=60, verbose_name='Name')),
                ('key', models.CharField(help_text='Stable slug mirrored into the legacy lead status', max_length=60, unique=True, verbose_name='Key')),
                ('color', models.CharField(default='#6B7280', max_length=20, verbose_name='Color')),
                ('order', models.FloatField(unique=True, verbose_name='Order')),
                ('is_default', models.BooleanField(default=False, verbose_name='Default Stage')),
                ('active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_by', models.UUIDField(blank=True, help_text='UUID of the user who created the stage', null=True, verbose_name='Created By')),
            ],
            options={
                'db_table': 'leadstages_stage',
                'ordering': ['order'],
            },
        ),
        migrations.AddConstraint(
            model_name='stage',
            constraint=models.UniqueConstraint(condition=models.Q(('is_default', True)), fields=('is_default',), name='leadstages_single_default_stage'),
        ),
        migrations.CreateModel(
            name='Lead',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('is_deleted', models.BooleanField(default=False, verbose_name='Deleted')),
                ('deleted_at', models.DateTimeField(blank=True, null=True, verbose_name='Deleted At')),
                ('client_name', models.CharField(max_length=255, verbose_name='Client Name')),
                ('job_description', models.TextField(verbose_name='Job Description')),
                ('source', models.CharField(choices=[('website', 'Website'), ('referral', 'Referral'), ('linkedin', 'LinkedIn'), ('job_board', 'Job Board'), ('other', 'Other')], default='other', max_length=20, verbose_name='Source')),
                ('notes', models.TextField(blank=True, verbose_name='Notes')),
                ('created_by', models.UUIDField(help_text='UUID of the user who created the lead', verbose_name='Created By')),
                ('assigned_to', models.UUIDField(blank=True, help_text='UUID of the assigned user', null=True, verbose_name='Assigned To')),
                ('status', models.CharField(max_length=60, verbose_name='Status')),
                ('stage_changed_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Stage Changed At')),
                ('stage', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='leads', to='leadstages.stage', verbose_name='Stage')),
            ],
            options={
                'db_table': 'leadstages_lead',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.AddIndex(
            model_name='lead',
            index=models.Index(fields=['stage', 'is_deleted'], name='leadstages__stage_i_5b1c0e_idx'),
        ),
        migrations.AddIndex(
            model_name='lead',
            index=models.Index(fields=['status'], name='leadstages__status_9d2f4a_idx'),
        ),
        migrations.AddIndex(
            model_name='lead',
            index=models.Index(fields=['assigned_to'], name='leadstages__assigne_3e7a81_idx'),
        ),
        migrations.AddIndex(
            model_name='lead',
            index=models.Index(fields=['created_by'], name='leadstages__created_c4b6d2_idx'),
        ),
        migrations.CreateModel(
            name='LeadActivity',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('activity_type', models.CharField(choices=[('stage_change', 'Stage Change'), ('status_change', 'Status Change')], max_length=20, verbose_name='Activity Type')),
                ('description', models.TextField(verbose_name='Description')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('actor', models.UUIDField(blank=True, help_text='UUID of the user who triggered the change', null=True, verbose_name='Actor')),
                ('lead', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activities', to='leadstages.lead', verbose_name='Lead')),
            ],
            options={
                'db_table': 'leadstages_leadactivity',
                'ordering': ['-created_at'],
            },
        ),
    ]
