"""
Durable one-shot timers for scheduled publishing, and the callback that
runs when one comes due.
"""
import logging

from django.utils import timezone

from content.models import PostSnapshot

from .models import ScheduledEvent, StagedStatus
from .signals import notify, scheduled_publish_completed

logger = logging.getLogger(__name__)


class PublishScheduler:
    """
    One timer per (hook, revision id). Arming again replaces the run time;
    disarming something that is not armed is a no-op.
    """

    def __init__(self, hook):
        self.hook = hook

    def _events(self):
        return ScheduledEvent.objects.filter(hook=self.hook)

    def arm(self, revision_id, when):
        event, created = ScheduledEvent.objects.update_or_create(
            hook=self.hook,
            argument=revision_id,
            defaults={'run_at': when},
        )
        logger.info(
            "%s %s(%s) for %s", 'Armed' if created else 'Re-armed',
            self.hook, revision_id, when.isoformat(),
        )
        return event

    def disarm(self, revision_id):
        deleted, _ = self._events().filter(argument=revision_id).delete()
        if deleted:
            logger.info("Disarmed %s(%s)", self.hook, revision_id)
        return deleted > 0

    def disarm_for_parent(self, parent_id):
        """Cancel timers armed for any snapshot of a post."""
        snapshot_ids = PostSnapshot.objects.filter(parent_id=parent_id).values('pk')
        deleted, _ = self._events().filter(argument__in=snapshot_ids).delete()
        if deleted:
            logger.info("Disarmed %s %s timer(s) of deleted post %s", deleted, self.hook, parent_id)
        return deleted

    def next_run(self, revision_id):
        return self._events().filter(argument=revision_id).values_list('run_at', flat=True).first()

    def clear_all(self):
        """Cancel every pending timer for this hook regardless of argument."""
        deleted, _ = self._events().delete()
        logger.info("Cleared %s pending %s timer(s)", deleted, self.hook)
        return deleted

    def due(self, now=None):
        now = now or timezone.now()
        return list(self._events().filter(run_at__lte=now).order_by('run_at', 'id'))

    def run_due(self, callback, now=None):
        """
        Fire every timer that has come due. Each timer is deleted before its
        callback runs, so a failing callback is never retried. Returns the
        number of timers fired.
        """
        fired = 0
        for event in self.due(now):
            claimed, _ = ScheduledEvent.objects.filter(pk=event.pk).delete()
            if not claimed:
                # Another runner got there first.
                continue
            fired += 1
            try:
                callback(event.argument)
            except Exception:
                logger.exception("Scheduled %s(%s) raised", self.hook, event.argument)
        return fired


class ScheduledPublishHandler:
    """
    Runs a scheduled publish. The revision may have been published,
    discarded or rejected since the timer was armed, so its state is checked
    again before publishing. Nothing here raises: there is no caller to
    report to.
    """

    def __init__(self, repository, workflow):
        self.repository = repository
        self.workflow = workflow

    def __call__(self, revision_id):
        snapshot = self.repository.store.get_snapshot(revision_id)
        if snapshot is None:
            logger.info("Scheduled publish skipped: revision %s not found", revision_id)
            return False

        revision = self.repository.find_by_id(revision_id)
        if revision is None:
            logger.info("Scheduled publish skipped: revision %s is no longer staged", revision_id)
            return False

        if revision.status == StagedStatus.REJECTED:
            logger.warning("Scheduled publish skipped: revision %s was rejected", revision_id)
            return False

        result = self.workflow.publish(revision_id)
        if not result.ok:
            logger.error(
                "Scheduled publish of revision %s failed: %s (%s)",
                revision_id, result.error.message, result.error.code,
            )
            return False

        notify(scheduled_publish_completed, sender=self.__class__,
               parent_id=revision.parent_id, revision_id=revision.id)
        logger.info("Scheduled publish of revision %s into post %s completed", revision_id, revision.parent_id)
        return True
