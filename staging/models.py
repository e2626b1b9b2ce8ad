"""
Staging models.

Staged revisions themselves are content snapshots plus snapshot metadata
(see staging.repository); the tables here hold what the engine owns:
  ScheduledEvent         durable one-shot timers keyed by (hook, argument)
  PublicationChecklist   editor checklist shown before publishing in place
"""
from django.db import models


class StagedStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'


class ScheduledEvent(models.Model):
    hook = models.CharField(max_length=100)
    argument = models.PositiveBigIntegerField(help_text="Revision id the callback receives")
    run_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'scheduled_events'
        ordering = ['run_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['hook', 'argument'], name='uniq_scheduled_event_hook_arg'),
        ]
        indexes = [
            models.Index(fields=['hook', 'run_at'], name='scheduled_e_hook_2c61f0_idx'),
        ]

    def __str__(self):
        return f"{self.hook}({self.argument}) @ {self.run_at.isoformat()}"


def default_checklist_items():
    return [
        {'label': 'I have reviewed all changes', 'required': True},
        {'label': 'Content has been proofread for errors', 'required': True},
        {'label': 'Links have been verified', 'required': False},
    ]


class PublicationChecklist(models.Model):
    """Single-row settings table (pk=1)."""
    enabled = models.BooleanField(default=True)
    items = models.JSONField(default=default_checklist_items)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'publication_checklist'

    def __str__(self):
        return f"Publication checklist ({'on' if self.enabled else 'off'}, {len(self.items)} items)"

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj
