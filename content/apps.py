from django.apps import AppConfig
from django.db.models.signals import pre_delete


def purge_post_meta(sender, instance, **kwargs):
    # Snapshot rows cascade with the post; their metadata is keyed loosely.
    get_store().purge_item_meta(instance.pk)


class ContentConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'content'

    def ready(self):
        from .store import SnapshotStore
        # One store per process; other apps register change filters on it.
        self.store = SnapshotStore()
        pre_delete.connect(purge_post_meta, sender='content.Post', dispatch_uid='content-purge-post-meta')


def get_store():
    from django.apps import apps
    return apps.get_app_config('content').store
