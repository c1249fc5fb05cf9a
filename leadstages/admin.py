from django.contrib import admin

from .models import Stage, Lead, LeadActivity
from .ordering import next_order
from .services import unique_key


@admin.register(Stage)
class StageAdmin(admin.ModelAdmin):
    list_display = ('name', 'key', 'order', 'color', 'is_default', 'active')
    list_filter = ('is_default', 'active')
    search_fields = ('name', 'key')
    ordering = ('order',)
    # Order keys are owned by leadstages.ordering
    readonly_fields = ('key', 'order')

    def save_model(self, request, obj, form, change):
        if not change:
            obj.key = unique_key(obj.name)
            obj.order = next_order()
        if obj.is_default:
            Stage.objects.filter(is_default=True).exclude(pk=obj.pk).update(is_default=False)
        super().save_model(request, obj, form, change)


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display = ('client_name', 'stage', 'status', 'source', 'assigned_to', 'is_deleted', 'created_at')
    list_filter = ('status', 'source', 'stage', 'is_deleted')
    search_fields = ('client_name', 'job_description')

    def get_readonly_fields(self, request, obj=None):
        # Stage moves on existing leads go through leadstages.transitions
        if obj is not None:
            return ('stage', 'status', 'stage_changed_at')
        return ('status', 'stage_changed_at')

    def get_queryset(self, request):
        return Lead.all_objects.select_related('stage')


@admin.register(LeadActivity)
class LeadActivityAdmin(admin.ModelAdmin):
    list_display = ('lead', 'activity_type', 'actor', 'created_at')
    list_filter = ('activity_type',)
    search_fields = ('lead__client_name', 'description')
