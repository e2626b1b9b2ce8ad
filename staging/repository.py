"""
Staged-revision repository.

A staged revision is an ordinary content snapshot carrying the
``_staged_revision`` marker in snapshot metadata. Workflow state lives next
to it under the other ``_staged_*`` keys; the parent post carries a cached
``_has_staged_revision`` pointer which is never treated as authoritative.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import OuterRef, Subquery

from content.models import EntityMeta, PostSnapshot
from content.store import SNAPSHOT_FIELDS

from .models import StagedStatus
from .results import NOT_PUBLISHED, StagingResult

logger = logging.getLogger(__name__)

KIND_SNAPSHOT = EntityMeta.KIND_SNAPSHOT
KIND_POST = EntityMeta.KIND_POST

META_STAGED = '_staged_revision'
META_STATUS = '_staged_status'
META_PUBLISH_DATE = '_staged_publish_date'
META_AUTHOR = '_staged_author'
META_NOTES = '_staged_notes'
WORKFLOW_META_KEYS = (META_STAGED, META_STATUS, META_PUBLISH_DATE, META_AUTHOR, META_NOTES)

PARENT_POINTER = '_has_staged_revision'

# Stored publish dates are UTC, 'Y-m-d H:i:s'.
PUBLISH_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


@dataclass
class StagedRevision:
    snapshot: PostSnapshot
    meta: dict

    @property
    def id(self):
        return self.snapshot.pk

    @property
    def parent_id(self):
        return self.snapshot.parent_id

    @property
    def status(self):
        return self.meta.get(META_STATUS) or StagedStatus.PENDING

    @property
    def scheduled_date(self):
        return self.meta.get(META_PUBLISH_DATE, '')

    @property
    def notes(self):
        return self.meta.get(META_NOTES, '')

    @property
    def author_id(self):
        value = self.meta.get(META_AUTHOR, '')
        return int(value) if value.isdigit() else 0


@dataclass
class RevisionSummary:
    revision_id: int
    post_id: int
    post_title: str
    post_type: str
    revision_title: str
    author_id: int
    author_name: str
    status: str
    scheduled_date: str
    notes: str
    modified: object


def _snapshot_meta(key):
    return Subquery(
        EntityMeta.objects.filter(
            entity_kind=KIND_SNAPSHOT,
            entity_id=OuterRef('pk'),
            meta_key=key,
        ).values('meta_value')[:1]
    )


class StagedRevisionRepository:

    def __init__(self, store):
        self.store = store

    def is_staged(self, snapshot_id):
        return bool(self.store.get_meta(KIND_SNAPSHOT, snapshot_id, META_STAGED))

    def _load(self, snapshot):
        return StagedRevision(snapshot=snapshot, meta=self.store.get_all_meta(KIND_SNAPSHOT, snapshot.pk))

    # ── Lookup ───────────────────────────────────────────────

    def find_for_parent(self, parent_id) -> Optional[StagedRevision]:
        """Scan a post's snapshots for the one carrying the staged marker."""
        for snapshot in self.store.list_snapshots(parent_id):
            if self.is_staged(snapshot.pk):
                return self._load(snapshot)
        return None

    def find_by_id(self, revision_id) -> Optional[StagedRevision]:
        """Only a snapshot that carries the staged marker qualifies."""
        snapshot = self.store.get_snapshot(revision_id)
        if snapshot is None or not self.is_staged(snapshot.pk):
            return None
        return self._load(snapshot)

    def resolve_for_parent(self, parent_id) -> Optional[StagedRevision]:
        """
        Cheap path through the parent's cached pointer, falling back to a
        full scan when the pointer is missing, stale or points elsewhere.
        """
        pointer = self.store.get_meta(KIND_POST, parent_id, PARENT_POINTER)
        if pointer.isdigit():
            revision = self.find_by_id(int(pointer))
            if revision is not None and revision.parent_id == parent_id:
                return revision
            logger.debug("Stale staged pointer %s on post %s, scanning", pointer, parent_id)
        return self.find_for_parent(parent_id)

    # ── Writes ───────────────────────────────────────────────

    def create(self, parent_id, payload=None, meta=None, actor=None) -> StagingResult:
        """
        Create the staged revision for a published post, or update the
        existing one in place. Payload fields left out (or None) keep their
        current value: the staged one on update, the live one on create.
        """
        payload = payload or {}
        meta = meta or {}
        fields = {key: payload[key] for key in SNAPSHOT_FIELDS if payload.get(key) is not None}
        author = actor if actor is not None and actor.is_authenticated else None

        with transaction.atomic():
            # Row lock serialises concurrent creates for the same post.
            parent = self.store.get_item(parent_id, for_update=True)
            if parent is None:
                return StagingResult.not_found('Post not found.')
            if not parent.is_published:
                return StagingResult.failure(NOT_PUBLISHED, 'Can only stage revisions for published posts.')

            existing = self.find_for_parent(parent.pk)
            if existing is not None:
                snapshot = self.store.update_snapshot(existing.snapshot, author=author, **fields)
                logger.info("Updated staged revision %s for post %s", snapshot.pk, parent.pk)
            else:
                initial = {key: getattr(parent, key) for key in SNAPSHOT_FIELDS}
                initial.update(fields)
                snapshot = self.store.create_snapshot(parent, author=author, **initial)
                self.store.update_meta(KIND_SNAPSHOT, snapshot.pk, META_STATUS, StagedStatus.PENDING.value)
                logger.info("Created staged revision %s for post %s", snapshot.pk, parent.pk)

            self.store.update_meta(KIND_SNAPSHOT, snapshot.pk, META_STAGED, '1')
            self.store.update_meta(KIND_SNAPSHOT, snapshot.pk, META_AUTHOR, author.pk if author else '')
            if meta.get('notes') is not None:
                self.store.update_meta(KIND_SNAPSHOT, snapshot.pk, META_NOTES, meta['notes'])
            self.store.update_meta(KIND_POST, parent.pk, PARENT_POINTER, snapshot.pk)

        return StagingResult.success(self._load(snapshot))

    def set_status(self, revision_id, status):
        self.store.update_meta(KIND_SNAPSHOT, revision_id, META_STATUS, status)

    def set_publish_date(self, revision_id, when):
        self.store.update_meta(KIND_SNAPSHOT, revision_id, META_PUBLISH_DATE, when.strftime(PUBLISH_DATE_FORMAT))

    def clear_publish_date(self, revision_id):
        self.store.delete_meta(KIND_SNAPSHOT, revision_id, META_PUBLISH_DATE)

    def strip_workflow_meta(self, revision_id):
        for key in WORKFLOW_META_KEYS:
            self.store.delete_meta(KIND_SNAPSHOT, revision_id, key)

    def clear_pointer(self, parent_id):
        self.store.delete_meta(KIND_POST, parent_id, PARENT_POINTER)

    # ── Listing ──────────────────────────────────────────────

    def _staged_queryset(self, status=None):
        qs = (
            PostSnapshot.objects
            .select_related('parent')
            .annotate(
                staged_marker=_snapshot_meta(META_STAGED),
                staged_status=_snapshot_meta(META_STATUS),
                staged_publish_date=_snapshot_meta(META_PUBLISH_DATE),
                staged_author=_snapshot_meta(META_AUTHOR),
                staged_notes=_snapshot_meta(META_NOTES),
            )
            .filter(staged_marker='1')
        )
        if status:
            qs = qs.filter(staged_status=status)
        return qs

    def list_all(self, status=None, page=1, per_page=20):
        """Staged revisions, most recently modified first. ``page`` is 1-based."""
        offset = (page - 1) * per_page
        rows = list(self._staged_queryset(status).order_by('-modified_at', '-id')[offset:offset + per_page])

        author_ids = {int(row.staged_author) for row in rows if (row.staged_author or '').isdigit()}
        authors = get_user_model().objects.in_bulk(author_ids)

        summaries = []
        for row in rows:
            author_id = int(row.staged_author) if (row.staged_author or '').isdigit() else 0
            author = authors.get(author_id)
            summaries.append(RevisionSummary(
                revision_id=row.pk,
                post_id=row.parent_id,
                post_title=row.parent.title,
                post_type=row.parent.post_type,
                revision_title=row.title,
                author_id=author_id,
                author_name=author.display_name if author else 'Unknown',
                status=row.staged_status or StagedStatus.PENDING.value,
                scheduled_date=row.staged_publish_date or '',
                notes=row.staged_notes or '',
                modified=row.modified_at,
            ))
        return summaries

    def count(self, status=None):
        return self._staged_queryset(status).count()

    def count_pending(self):
        return self.count(StagedStatus.PENDING.value)
