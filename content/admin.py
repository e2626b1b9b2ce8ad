from django.contrib import admin

from .apps import get_store
from .models import EntityMeta, Post, PostSnapshot


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ('title', 'post_type', 'status', 'author', 'updated_at')
    list_filter = ('status', 'post_type')
    search_fields = ('title', 'content')
    readonly_fields = ('created_at', 'updated_at')

    def save_model(self, request, obj, form, change):
        # Goes through the store so edits are snapshotted like any other save.
        get_store().save_post(obj, author=request.user)


@admin.register(PostSnapshot)
class PostSnapshotAdmin(admin.ModelAdmin):
    list_display = ('id', 'parent', 'title', 'author', 'modified_at')
    search_fields = ('title', 'parent__title')
    readonly_fields = ('created_at', 'modified_at')


@admin.register(EntityMeta)
class EntityMetaAdmin(admin.ModelAdmin):
    list_display = ('entity_kind', 'entity_id', 'meta_key', 'meta_value', 'updated_at')
    list_filter = ('entity_kind', 'meta_key')
    search_fields = ('meta_key', 'meta_value')
