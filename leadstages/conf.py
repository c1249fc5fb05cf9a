"""
Lead Stages settings

All options live in a single ``LEADSTAGES`` dict in the Django settings:

    LEADSTAGES = {
        'TRANSITION_POLICY': 'free',
        'RESTRICTED_ROLES': ['developer', 'intern'],
    }

Missing keys fall back to DEFAULTS.
"""
from django.conf import settings


DEFAULTS = {
    # 'fixed' enforces the legacy status table, 'free' allows any active stage.
    # Under 'fixed', stages added through the stage editor can hold leads only
    # by reassignment on delete; change_status and move_lead never reach them.
    'TRANSITION_POLICY': 'fixed',
    # Roles that only see leads they created or are assigned to
    'RESTRICTED_ROLES': ['developer'],
    # Roles allowed to create, edit, reorder and delete stages
    'STAGE_ADMIN_ROLES': ['admin'],
    'BOARD_PAGE_SIZE': 50,
    'MAX_PAGE_SIZE': 100,
    'REINDEX_STEP': 1024,
    'KEY_MAX_LENGTH': 40,
}


def get_setting(name):
    user_settings = getattr(settings, 'LEADSTAGES', None) or {}
    if name in user_settings:
        return user_settings[name]
    return DEFAULTS[name]
