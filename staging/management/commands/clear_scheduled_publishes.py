"""
Management command to cancel every pending scheduled publish, e.g. before
taking the staging workflow out of service.
Usage: python manage.py clear_scheduled_publishes
"""
from django.core.management.base import BaseCommand

from staging.services import get_services


class Command(BaseCommand):
    help = 'Cancel all pending scheduled publishes'

    def handle(self, *args, **options):
        scheduler = get_services().scheduler
        cleared = scheduler.clear_all()
        self.stdout.write(self.style.SUCCESS(f'Cleared {cleared} scheduled publish(es) for {scheduler.hook}.'))
