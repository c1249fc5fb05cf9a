from django import forms
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from .ordering import AFTER, BEFORE


POSITION_CHOICES = [
    (BEFORE, _('Before')),
    (AFTER, _('After')),
]


class UUIDListField(forms.Field):
    """A JSON array of UUID strings."""

    default_error_messages = {
        'invalid_list': _('Enter a list of ids.'),
    }

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if not isinstance(value, (list, tuple)):
            raise ValidationError(self.error_messages['invalid_list'], code='invalid_list')
        uuid_field = forms.UUIDField()
        return [uuid_field.clean(item) for item in value]


class StageForm(forms.Form):
    """Payload for appending a stage."""

    name = forms.CharField(max_length=60)
    color = forms.CharField(max_length=20, required=False)
    isDefault = forms.BooleanField(required=False)
    key = forms.CharField(max_length=60, required=False)


class StageAdjacentForm(forms.Form):
    """Payload for inserting a stage next to a pivot stage."""

    pivotId = forms.UUIDField()
    where = forms.ChoiceField(choices=POSITION_CHOICES)
    name = forms.CharField(max_length=60)
    color = forms.CharField(max_length=20, required=False)


class StageUpdateForm(forms.Form):
    """
    Partial stage update. Only keys present in the payload are applied.

    ``order`` and ``key`` are rejected: the order key is owned by the
    allocator and the key stays stable across renames.
    """

    FIELD_MAP = {
        'name': 'name',
        'color': 'color',
        'active': 'active',
        'isDefault': 'is_default',
    }

    name = forms.CharField(max_length=60, required=False)
    color = forms.CharField(max_length=20, required=False)
    active = forms.NullBooleanField(required=False)
    isDefault = forms.NullBooleanField(required=False)

    def clean(self):
        cleaned_data = super().clean()
        for field in self.data:
            if field not in self.FIELD_MAP:
                self.add_error(None, _('Field "%(field)s" cannot be updated') % {'field': field})
        for field in ('active', 'isDefault'):
            if field in self.data and cleaned_data.get(field) is None:
                self.add_error(field, _('Enter true or false.'))
        return cleaned_data

    def patch(self):
        return {
            model_field: self.cleaned_data[field]
            for field, model_field in self.FIELD_MAP.items()
            if field in self.data
        }


class StageDeleteForm(forms.Form):
    targetStageId = forms.UUIDField(required=False)


class StageReorderForm(forms.Form):
    orderIds = UUIDListField()


class LeadStatusForm(forms.Form):
    status = forms.CharField(max_length=60)


class LeadMoveForm(forms.Form):
    toStageId = forms.UUIDField()
