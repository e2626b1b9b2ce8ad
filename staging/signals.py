"""
Lifecycle notifications for staged revisions.

Every signal is sent with ``parent_id`` and ``revision_id`` keyword
arguments once the state change has committed. Receivers run synchronously
through ``send_robust``: an exception in one receiver is logged and neither
stops the others nor touches the committed change.
"""
import logging
from functools import partial

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

staged_published = Signal()
staged_discarded = Signal()
staged_approved = Signal()
staged_rejected = Signal()
scheduled_publish_completed = Signal()

EVENT_NAMES = {
    'staged.published': staged_published,
    'staged.discarded': staged_discarded,
    'staged.approved': staged_approved,
    'staged.rejected': staged_rejected,
    'staged.scheduled_publish_completed': scheduled_publish_completed,
}


def send_now(signal, sender, parent_id, revision_id):
    responses = signal.send_robust(sender=sender, parent_id=parent_id, revision_id=revision_id)
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.error(
                "Receiver %r failed for revision %s (post %s): %s",
                receiver, revision_id, parent_id, response,
                exc_info=(type(response), response, response.__traceback__),
            )
    return responses


def notify(signal, sender, parent_id, revision_id):
    """Send ``signal`` after the current transaction commits."""
    transaction.on_commit(partial(send_now, signal, sender, parent_id, revision_id))
