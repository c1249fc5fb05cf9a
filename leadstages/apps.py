from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class LeadStagesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'leadstages'
    label = 'leadstages'
    verbose_name = _('Lead Stages')
