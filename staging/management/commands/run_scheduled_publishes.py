"""
Management command to fire scheduled publishes that have come due.
Usage: python manage.py run_scheduled_publishes [--loop --interval 60]
"""
import logging
import time

from django.core.management.base import BaseCommand

from staging.services import get_services

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Publish staged revisions whose scheduled time has passed'

    def add_arguments(self, parser):
        parser.add_argument('--loop', action='store_true', help='Keep running, polling every --interval seconds')
        parser.add_argument('--interval', type=int, default=60, help='Seconds between polls with --loop (default 60)')

    def handle(self, *args, **options):
        services = get_services()

        while True:
            fired = services.scheduler.run_due(services.fire_handler)
            if fired:
                self.stdout.write(f'Fired {fired} scheduled publish(es).')
            if not options['loop']:
                break
            time.sleep(max(1, options['interval']))

        self.stdout.write(self.style.SUCCESS('Done.'))
