"""
Change filter registered on the content store.

When the most recent snapshot of a post is its staged revision, the store
must record a fresh snapshot instead of deciding "nothing changed" against
the staged payload.
"""


class StagedSnapshotGuard:

    def __init__(self, repository):
        self.repository = repository

    def __call__(self, has_changed, last_snapshot, post):
        if last_snapshot is not None and self.repository.is_staged(last_snapshot.pk):
            return True
        return has_changed
