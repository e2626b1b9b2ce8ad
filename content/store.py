"""
Snapshot store: item accessor, snapshot persistence, kind-keyed metadata and
automatic snapshotting on save.

Automatic snapshotting compares the saved post with its most recent snapshot
and skips the write when nothing changed. The verdict runs through a chain
of change filters, ``fn(has_changed, last_snapshot, post) -> bool``, so other
apps can override it without re-implementing the snapshotting itself.
"""
import logging

from django.db import transaction

from .models import EntityMeta, Post, PostSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_FIELDS = ('title', 'content', 'excerpt')


class SnapshotStore:
    """Host-platform storage used by the staging engine."""

    def __init__(self):
        self._change_filters = []

    # ── Content items ────────────────────────────────────────

    def get_item(self, post_id, for_update=False):
        qs = Post.objects.all()
        if for_update:
            qs = qs.select_for_update()
        return qs.filter(pk=post_id).first()

    def update_item(self, post, **fields):
        """Write fields onto a post without recording a snapshot."""
        for key, value in fields.items():
            setattr(post, key, value)
        post.save()
        return post

    def save_post(self, post, author=None, **fields):
        """
        Save a post the way an editor's regular "update" does: write the
        live fields, then record a snapshot if the content changed.
        """
        with transaction.atomic():
            self.update_item(post, **fields)
            snapshot = self.record_snapshot(post, author=author)
        return post, snapshot

    # ── Automatic snapshotting ───────────────────────────────

    def add_change_filter(self, fn):
        if fn not in self._change_filters:
            self._change_filters.append(fn)

    def remove_change_filter(self, fn):
        if fn in self._change_filters:
            self._change_filters.remove(fn)

    def post_has_changed(self, last_snapshot, post):
        has_changed = any(
            getattr(last_snapshot, field) != getattr(post, field)
            for field in SNAPSHOT_FIELDS
        )
        for fn in self._change_filters:
            has_changed = bool(fn(has_changed, last_snapshot, post))
        return has_changed

    def record_snapshot(self, post, author=None):
        last = self.latest_snapshot(post.pk)
        if last is not None and not self.post_has_changed(last, post):
            logger.debug("Post %s unchanged since snapshot %s, skipping", post.pk, last.pk)
            return None
        return self.create_snapshot(
            post,
            author=author,
            **{field: getattr(post, field) for field in SNAPSHOT_FIELDS}
        )

    # ── Snapshots ────────────────────────────────────────────

    def create_snapshot(self, parent, author=None, **fields):
        return PostSnapshot.objects.create(parent=parent, author=author, **fields)

    def update_snapshot(self, snapshot, **fields):
        for key, value in fields.items():
            setattr(snapshot, key, value)
        snapshot.save()
        return snapshot

    def get_snapshot(self, snapshot_id):
        return PostSnapshot.objects.select_related('parent').filter(pk=snapshot_id).first()

    def list_snapshots(self, parent_id):
        """All snapshots of a post, most recent first."""
        return list(PostSnapshot.objects.filter(parent_id=parent_id).order_by('-modified_at', '-id'))

    def latest_snapshot(self, parent_id):
        return PostSnapshot.objects.filter(parent_id=parent_id).order_by('-modified_at', '-id').first()

    def delete_snapshot(self, snapshot_id):
        with transaction.atomic():
            deleted, _ = PostSnapshot.objects.filter(pk=snapshot_id).delete()
            EntityMeta.objects.filter(
                entity_kind=EntityMeta.KIND_SNAPSHOT, entity_id=snapshot_id
            ).delete()
        return deleted > 0

    def restore_snapshot(self, snapshot, author=None):
        """
        Copy a snapshot's payload onto its parent through the normal save
        path. Returns the parent post, or None when it no longer exists.
        """
        parent = self.get_item(snapshot.parent_id)
        if parent is None:
            logger.warning("Cannot restore snapshot %s: parent %s is gone", snapshot.pk, snapshot.parent_id)
            return None
        self.save_post(
            parent,
            author=author,
            **{field: getattr(snapshot, field) for field in SNAPSHOT_FIELDS}
        )
        return parent

    # ── Metadata ─────────────────────────────────────────────

    def get_meta(self, kind, entity_id, key, default=''):
        value = (
            EntityMeta.objects
            .filter(entity_kind=kind, entity_id=entity_id, meta_key=key)
            .values_list('meta_value', flat=True)
            .first()
        )
        return default if value is None else value

    def get_all_meta(self, kind, entity_id):
        return dict(
            EntityMeta.objects
            .filter(entity_kind=kind, entity_id=entity_id)
            .values_list('meta_key', 'meta_value')
        )

    def update_meta(self, kind, entity_id, key, value):
        EntityMeta.objects.update_or_create(
            entity_kind=kind,
            entity_id=entity_id,
            meta_key=key,
            defaults={'meta_value': '' if value is None else str(value)},
        )

    def delete_meta(self, kind, entity_id, key):
        deleted, _ = EntityMeta.objects.filter(
            entity_kind=kind, entity_id=entity_id, meta_key=key
        ).delete()
        return deleted > 0

    def purge_item_meta(self, post_id):
        """Drop metadata of a post and of all its snapshots."""
        snapshot_ids = list(
            PostSnapshot.objects.filter(parent_id=post_id).values_list('pk', flat=True)
        )
        with transaction.atomic():
            EntityMeta.objects.filter(
                entity_kind=EntityMeta.KIND_SNAPSHOT, entity_id__in=snapshot_ids
            ).delete()
            EntityMeta.objects.filter(
                entity_kind=EntityMeta.KIND_POST, entity_id=post_id
            ).delete()
