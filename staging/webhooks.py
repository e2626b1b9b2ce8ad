"""
Forward staged-revision lifecycle events to an external endpoint.

Enabled by setting STAGING_WEBHOOK_URL. Receivers are connected to every
lifecycle signal in StagingConfig.ready(); delivery failures are logged and
returned, never raised.
"""
import json
import logging

import requests
from django.conf import settings
from django.utils import timezone

from .signals import EVENT_NAMES

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 15  # seconds


def send_lifecycle_webhook(url, event_type: str, data: dict, timeout=None) -> dict:
    """
    POST a lifecycle event as JSON.

    Returns:
        dict with 'success' (bool), 'status_code' (int|None), 'error' (str|None)
        and 'response' (parsed JSON body, if any).
    """
    payload = {
        'event_type': event_type,
        'sent_at': timezone.now().isoformat(),
        'data': data,
    }
    headers = {
        'Content-Type': 'application/json',
        'X-Rewrites-Event': event_type,
    }

    try:
        resp = requests.post(url, data=json.dumps(payload), headers=headers, timeout=timeout or WEBHOOK_TIMEOUT)
    except requests.RequestException as exc:
        logger.error("Webhook %s to %s error: %s", event_type, url, exc)
        return {'success': False, 'status_code': None, 'response': None, 'error': str(exc)}

    try:
        resp_data = resp.json()
    except ValueError:
        resp_data = None

    if resp.status_code < 300:
        logger.info("Webhook %s sent to %s (HTTP %s)", event_type, url, resp.status_code)
        return {'success': True, 'status_code': resp.status_code, 'response': resp_data, 'error': None}

    logger.warning(
        "Webhook %s to %s failed, HTTP %s: %s",
        event_type, url, resp.status_code, resp.text[:500],
    )
    return {
        'success': False,
        'status_code': resp.status_code,
        'response': resp_data,
        'error': f"HTTP {resp.status_code}",
    }


def _make_receiver(event_type):
    def receiver(sender, parent_id, revision_id, **kwargs):
        logger.info("Lifecycle event %s: revision %s of post %s", event_type, revision_id, parent_id)
        url = getattr(settings, 'STAGING_WEBHOOK_URL', '')
        if not url:
            return None
        return send_lifecycle_webhook(
            url,
            event_type,
            {'post_id': parent_id, 'revision_id': revision_id},
            timeout=getattr(settings, 'STAGING_WEBHOOK_TIMEOUT', WEBHOOK_TIMEOUT),
        )
    receiver.__name__ = f"forward_{event_type.replace('.', '_')}"
    return receiver


def connect_receivers():
    for event_type, signal in EVENT_NAMES.items():
        signal.connect(
            _make_receiver(event_type),
            weak=False,
            dispatch_uid=f'staging-webhook-{event_type}',
        )
