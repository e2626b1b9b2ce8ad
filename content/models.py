"""
Content models: the host side of the staging workflow.

  Post           a content item with live fields (title, content, excerpt)
  PostSnapshot   a point-in-time copy of a post's editable fields
  EntityMeta     key/value metadata addressed by (entity kind, entity id)

Snapshots are not first-class posts, so their metadata cannot hang off a
Post relation; EntityMeta is keyed by kind to cover both.
"""
from django.conf import settings
from django.db import models


class Post(models.Model):
    STATUS_DRAFT = 'draft'
    STATUS_PENDING = 'pending'
    STATUS_PRIVATE = 'private'
    STATUS_PUBLISH = 'publish'

    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_PENDING, 'Pending Review'),
        (STATUS_PRIVATE, 'Private'),
        (STATUS_PUBLISH, 'Published'),
    ]

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='posts'
    )
    post_type = models.CharField(max_length=50, default='post',
        help_text="Content type: post, page, ...")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    title = models.CharField(max_length=500, blank=True)
    content = models.TextField(blank=True)
    excerpt = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'posts'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='posts_status_4d1c02_idx'),
            models.Index(fields=['post_type', 'status'], name='posts_post_ty_8f3a51_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.get_status_display()})"

    @property
    def is_published(self):
        return self.status == self.STATUS_PUBLISH


class PostSnapshot(models.Model):
    parent = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='snapshots')
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='post_snapshots'
    )
    title = models.CharField(max_length=500, blank=True)
    content = models.TextField(blank=True)
    excerpt = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'post_snapshots'
        ordering = ['-modified_at', '-id']
        indexes = [
            models.Index(fields=['parent', 'modified_at'], name='post_snapsh_parent__b7e2c9_idx'),
        ]

    def __str__(self):
        return f"Snapshot {self.pk} of post {self.parent_id}"


class EntityMeta(models.Model):
    KIND_POST = 'post'
    KIND_SNAPSHOT = 'snapshot'

    KIND_CHOICES = [
        (KIND_POST, 'Post'),
        (KIND_SNAPSHOT, 'Snapshot'),
    ]

    entity_kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    entity_id = models.PositiveBigIntegerField()
    meta_key = models.CharField(max_length=255)
    meta_value = models.TextField(blank=True, default='')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'entity_meta'
        constraints = [
            models.UniqueConstraint(
                fields=['entity_kind', 'entity_id', 'meta_key'],
                name='uniq_entity_meta_key',
            ),
        ]
        indexes = [
            models.Index(fields=['entity_kind', 'meta_key'], name='entity_meta_entity__5a9d13_idx'),
        ]

    def __str__(self):
        return f"{self.entity_kind}:{self.entity_id} {self.meta_key}={self.meta_value[:40]}"
