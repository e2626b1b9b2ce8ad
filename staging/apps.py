from django.apps import AppConfig
from django.conf import settings
from django.db.models.signals import pre_delete


def disarm_deleted_post(sender, instance, **kwargs):
    from .services import get_services
    get_services().scheduler.disarm_for_parent(instance.pk)


class StagingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'staging'

    def ready(self):
        from content.apps import get_store
        from .services import build_services
        from .webhooks import connect_receivers

        self.services = build_services(
            get_store(),
            getattr(settings, 'STAGING_SCHEDULER_HOOK', 'rewrites_publish_staged'),
        )
        self.services.store.add_change_filter(self.services.guard)
        connect_receivers()
        pre_delete.connect(disarm_deleted_post, sender='content.Post', dispatch_uid='staging-disarm-deleted-post')
