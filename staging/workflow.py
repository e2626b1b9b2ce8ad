"""
Staged-revision workflow: approve, reject, publish, discard, schedule.

States are pending, approved and rejected. Publish and discard are
terminal: both remove the staged marker for good, clear the parent pointer
and cancel any armed timer. Every operation returns a StagingResult and
sends its lifecycle signal once the change has committed.
"""
import logging
from datetime import datetime, time, timezone as dt_timezone

from django.db import DatabaseError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .models import StagedStatus
from .results import INVALID_DATE, INVALID_STATE, MERGE_FAILED, SCHEDULE_FAILED, StagingResult
from .signals import notify, staged_approved, staged_discarded, staged_published, staged_rejected

logger = logging.getLogger(__name__)


def parse_publish_date(value):
    """
    Parse an ISO 8601 / 'Y-m-d H:i:s' string (or pass a datetime through)
    into an aware UTC datetime. Naive values are taken as UTC. Returns None
    when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        value = (value or '').strip()
        if not value:
            return None
        try:
            parsed = parse_datetime(value)
            if parsed is None:
                day = parse_date(value)
                parsed = datetime.combine(day, time.min) if day else None
        except ValueError:
            return None
        if parsed is None:
            return None

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    try:
        return parsed.astimezone(dt_timezone.utc)
    except (ValueError, OverflowError):
        # Offsets can push dates at the calendar edge out of range.
        return None


class StagingWorkflow:

    def __init__(self, repository, scheduler):
        self.repository = repository
        self.scheduler = scheduler
        self.store = repository.store

    def _signal(self, signal, revision):
        notify(signal, sender=self.__class__, parent_id=revision.parent_id, revision_id=revision.id)

    def approve(self, revision_id):
        revision = self.repository.find_by_id(revision_id)
        if revision is None:
            return StagingResult.not_found()

        with transaction.atomic():
            self.repository.set_status(revision.id, StagedStatus.APPROVED.value)
            self._signal(staged_approved, revision)

        logger.info("Approved staged revision %s", revision.id)
        return StagingResult.success(self.repository.find_by_id(revision.id))

    def reject(self, revision_id):
        revision = self.repository.find_by_id(revision_id)
        if revision is None:
            return StagingResult.not_found()

        with transaction.atomic():
            self.repository.set_status(revision.id, StagedStatus.REJECTED.value)
            self.scheduler.disarm(revision.id)
            self.repository.clear_publish_date(revision.id)
            self._signal(staged_rejected, revision)

        logger.info("Rejected staged revision %s", revision.id)
        return StagingResult.success(self.repository.find_by_id(revision.id))

    def publish(self, revision_id, actor=None):
        """
        Merge the staged payload into the parent post. Returns the parent id.

        Status is not checked here: pending, approved and rejected revisions
        can all be published directly.
        """
        revision = self.repository.find_by_id(revision_id)
        if revision is None:
            return StagingResult.not_found()

        author = actor if actor is not None and actor.is_authenticated else None

        with transaction.atomic():
            try:
                with transaction.atomic():
                    parent = self.store.restore_snapshot(revision.snapshot, author=author)
            except DatabaseError:
                logger.exception("Restoring revision %s onto post %s failed", revision.id, revision.parent_id)
                parent = None

            if parent is None:
                return StagingResult.failure(MERGE_FAILED, 'Failed to publish staged revision.')

            self.repository.strip_workflow_meta(revision.id)
            self.repository.clear_pointer(revision.parent_id)
            self.scheduler.disarm(revision.id)
            self._signal(staged_published, revision)

        logger.info("Published staged revision %s into post %s", revision.id, parent.pk)
        return StagingResult.success(parent.pk)

    def discard(self, revision_id):
        revision = self.repository.find_by_id(revision_id)
        if revision is None:
            return StagingResult.not_found()

        with transaction.atomic():
            self.scheduler.disarm(revision.id)
            self.store.delete_snapshot(revision.id)
            self.repository.clear_pointer(revision.parent_id)
            self._signal(staged_discarded, revision)

        logger.info("Discarded staged revision %s of post %s", revision.id, revision.parent_id)
        return StagingResult.success(True)

    def schedule(self, revision_id, publish_date):
        revision = self.repository.find_by_id(revision_id)
        if revision is None:
            return StagingResult.not_found()

        when = parse_publish_date(publish_date)
        if when is None or when <= timezone.now():
            return StagingResult.failure(INVALID_DATE, 'Publish date must be in the future.')

        if revision.status == StagedStatus.REJECTED:
            return StagingResult.failure(INVALID_STATE, 'Rejected revisions cannot be scheduled.')

        with transaction.atomic():
            self.scheduler.disarm(revision.id)
            self.repository.set_publish_date(revision.id, when)
            try:
                with transaction.atomic():
                    self.scheduler.arm(revision.id, when)
            except DatabaseError:
                logger.exception("Arming scheduled publish for revision %s failed", revision.id)
                transaction.set_rollback(True)
                return StagingResult.failure(SCHEDULE_FAILED, 'Failed to schedule publishing.')

        logger.info("Scheduled staged revision %s for %s", revision.id, when.isoformat())
        return StagingResult.success(self.repository.find_by_id(revision.id))
