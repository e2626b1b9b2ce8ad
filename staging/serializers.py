"""
Request serializers for the staged-revision API.
"""
from django.conf import settings
from django.utils.html import strip_tags
from rest_framework import serializers

from .models import StagedStatus


class StagedSaveSerializer(serializers.Serializer):
    """Body of POST /staged/{post_id}/. Omitted or null fields are left as they are."""
    title = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=500)
    content = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    excerpt = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_title(self, value):
        return None if value is None else strip_tags(value).strip()

    def validate_notes(self, value):
        return None if value is None else strip_tags(value).strip()

    def payload(self):
        data = self.validated_data
        return {key: data.get(key) for key in ('title', 'content', 'excerpt')}

    def meta(self):
        return {'notes': self.validated_data.get('notes')}


class ScheduleSerializer(serializers.Serializer):
    publish_date = serializers.CharField()


class StagedListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=StagedStatus.choices, required=False, allow_blank=True)
    page = serializers.IntegerField(min_value=1, default=1)
    per_page = serializers.IntegerField(
        min_value=1,
        max_value=getattr(settings, 'STAGING_LIST_MAX_PER_PAGE', 100),
        default=getattr(settings, 'STAGING_LIST_DEFAULT_PER_PAGE', 20),
    )


class ChecklistItemSerializer(serializers.Serializer):
    label = serializers.CharField(allow_blank=True, max_length=255)
    required = serializers.BooleanField(default=False)


class ChecklistSettingsSerializer(serializers.Serializer):
    enabled = serializers.BooleanField(required=False)
    items = ChecklistItemSerializer(many=True, required=False)

    def validate_items(self, items):
        cleaned = []
        for item in items:
            label = strip_tags(item['label']).strip()
            if label:
                cleaned.append({'label': label, 'required': bool(item.get('required'))})
        return cleaned

    def save_to(self, checklist):
        data = self.validated_data
        if 'enabled' in data:
            checklist.enabled = data['enabled']
        if 'items' in data:
            checklist.items = data['items']
        checklist.save()
        return checklist
