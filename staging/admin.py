from django.contrib import admin
from .models import PublicationChecklist, ScheduledEvent


@admin.register(ScheduledEvent)
class ScheduledEventAdmin(admin.ModelAdmin):
    list_display = ('hook', 'argument', 'run_at', 'created_at')
    list_filter = ('hook',)
    readonly_fields = ('created_at',)


@admin.register(PublicationChecklist)
class PublicationChecklistAdmin(admin.ModelAdmin):
    list_display = ('id', 'enabled', 'updated_at')
    readonly_fields = ('updated_at',)
