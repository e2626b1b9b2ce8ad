"""
Tests for the content store: snapshots, metadata and automatic snapshotting.
"""
import pytest
from django.contrib.auth import get_user_model

from content.models import EntityMeta, Post, PostSnapshot
from content.store import SnapshotStore


@pytest.fixture
def store():
    return SnapshotStore()


@pytest.fixture
def user():
    return get_user_model().objects.create_user(
        email='writer@example.com', username='writer', password='testpass123', role='author'
    )


@pytest.fixture
def post(user):
    return Post.objects.create(author=user, status=Post.STATUS_PUBLISH, title='A', content='Body', excerpt='Sum')


@pytest.mark.django_db
class TestSnapshots:

    def test_save_post_records_snapshot(self, store, post, user):
        _, snapshot = store.save_post(post, author=user, title='B')
        post.refresh_from_db()
        assert post.title == 'B'
        assert snapshot.title == 'B'
        assert snapshot.parent_id == post.pk

    def test_unchanged_save_skips_snapshot(self, store, post):
        store.save_post(post, title='B')
        _, snapshot = store.save_post(post, title='B')
        assert snapshot is None
        assert PostSnapshot.objects.filter(parent=post).count() == 1

    def test_change_filter_overrides_verdict(self, store, post):
        store.save_post(post, title='B')
        calls = []

        def always_changed(has_changed, last, item):
            calls.append((has_changed, last.pk, item.pk))
            return True

        store.add_change_filter(always_changed)
        _, snapshot = store.save_post(post, title='B')
        assert snapshot is not None
        assert calls and calls[0][0] is False

        store.remove_change_filter(always_changed)
        _, snapshot = store.save_post(post, title='B')
        assert snapshot is None

    def test_latest_snapshot_and_listing(self, store, post):
        first = store.create_snapshot(post, title='one')
        second = store.create_snapshot(post, title='two')
        store.update_snapshot(first, title='one again')

        assert store.latest_snapshot(post.pk).pk == first.pk
        assert [s.pk for s in store.list_snapshots(post.pk)] == [first.pk, second.pk]

    def test_delete_snapshot_removes_its_meta(self, store, post):
        snapshot = store.create_snapshot(post, title='x')
        store.update_meta(EntityMeta.KIND_SNAPSHOT, snapshot.pk, 'k', 'v')

        assert store.delete_snapshot(snapshot.pk) is True
        assert store.get_snapshot(snapshot.pk) is None
        assert store.get_meta(EntityMeta.KIND_SNAPSHOT, snapshot.pk, 'k') == ''
        assert store.delete_snapshot(snapshot.pk) is False

    def test_restore_snapshot_overwrites_parent(self, store, post):
        snapshot = store.create_snapshot(post, title='Restored', content='New body', excerpt='New sum')
        parent = store.restore_snapshot(snapshot)

        post.refresh_from_db()
        assert parent.pk == post.pk
        assert (post.title, post.content, post.excerpt) == ('Restored', 'New body', 'New sum')
        assert post.status == Post.STATUS_PUBLISH


@pytest.mark.django_db
class TestMetadata:

    def test_meta_is_keyed_by_kind(self, store, post):
        store.update_meta(EntityMeta.KIND_POST, post.pk, 'flag', 1)
        assert store.get_meta(EntityMeta.KIND_POST, post.pk, 'flag') == '1'
        assert store.get_meta(EntityMeta.KIND_SNAPSHOT, post.pk, 'flag') == ''
        assert store.get_meta(EntityMeta.KIND_SNAPSHOT, post.pk, 'flag', default=None) is None

    def test_update_overwrites_and_delete_is_idempotent(self, store, post):
        store.update_meta(EntityMeta.KIND_POST, post.pk, 'k', 'a')
        store.update_meta(EntityMeta.KIND_POST, post.pk, 'k', 'b')
        assert store.get_all_meta(EntityMeta.KIND_POST, post.pk) == {'k': 'b'}

        assert store.delete_meta(EntityMeta.KIND_POST, post.pk, 'k') is True
        assert store.delete_meta(EntityMeta.KIND_POST, post.pk, 'k') is False

    def test_deleting_post_purges_meta(self, store, post):
        snapshot = store.create_snapshot(post, title='x')
        store.update_meta(EntityMeta.KIND_SNAPSHOT, snapshot.pk, 'k', 'v')
        store.update_meta(EntityMeta.KIND_POST, post.pk, 'flag', '1')
        other = Post.objects.create(title='Other')
        store.update_meta(EntityMeta.KIND_POST, other.pk, 'flag', '1')

        post.delete()

        assert not PostSnapshot.objects.filter(pk=snapshot.pk).exists()
        assert store.get_all_meta(EntityMeta.KIND_SNAPSHOT, snapshot.pk) == {}
        assert list(EntityMeta.objects.values_list('entity_id', flat=True)) == [other.pk]
