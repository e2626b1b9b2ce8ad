"""
Tests for the staging engine: repository, workflow, scheduler, guard,
lifecycle signals, webhooks and management commands.
"""
from datetime import timedelta, timezone as dt_timezone

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.utils import timezone

from content.models import EntityMeta, Post, PostSnapshot
from staging import results
from staging.models import ScheduledEvent, StagedStatus
from staging.repository import META_STAGED, PARENT_POINTER
from staging.services import get_services
from staging.signals import EVENT_NAMES, send_now, staged_approved
from staging.workflow import parse_publish_date


@pytest.fixture
def services():
    return get_services()


@pytest.fixture
def create_user():
    def _create_user(email='author@example.com', role='author', **extra):
        return get_user_model().objects.create_user(
            email=email, username=email, password='testpass123', role=role, **extra
        )
    return _create_user


@pytest.fixture
def author(create_user):
    return create_user(first_name='Ada', last_name='Author')


@pytest.fixture
def create_post(author):
    def _create_post(title='A', status=Post.STATUS_PUBLISH, **fields):
        return Post.objects.create(author=author, title=title, status=status, **fields)
    return _create_post


@pytest.fixture
def post(create_post):
    return create_post(title='A', content='Original body', excerpt='Original summary')


@pytest.fixture
def stage(services, author):
    def _stage(post, actor=None, notes=None, **payload):
        result = services.repository.create(post.pk, payload, {'notes': notes}, actor=actor or author)
        assert result.ok, result.error
        return result.value
    return _stage


@pytest.fixture
def received():
    events = []

    def make(name):
        def receiver(sender, parent_id, revision_id, **kwargs):
            events.append((name, parent_id, revision_id))
        return receiver

    receivers = {name: make(name) for name in EVENT_NAMES}
    for name, signal in EVENT_NAMES.items():
        signal.connect(receivers[name])
    yield events
    for name, signal in EVENT_NAMES.items():
        signal.disconnect(receivers[name])


def staged_count(post):
    return EntityMeta.objects.filter(
        entity_kind=EntityMeta.KIND_SNAPSHOT,
        meta_key=META_STAGED,
        entity_id__in=PostSnapshot.objects.filter(parent=post).values('pk'),
    ).count()


def in_an_hour():
    return timezone.now() + timedelta(hours=1)


@pytest.mark.django_db
class TestRepository:

    def test_create_copies_parent_fields(self, services, post, stage, author):
        revision = stage(post, title='B')
        assert revision.snapshot.title == 'B'
        assert revision.snapshot.content == 'Original body'
        assert revision.snapshot.excerpt == 'Original summary'
        assert revision.status == StagedStatus.PENDING
        assert revision.author_id == author.pk
        assert services.store.get_meta(EntityMeta.KIND_POST, post.pk, PARENT_POINTER) == str(revision.id)

    def test_create_twice_keeps_one_staged_revision(self, services, post, stage, create_user):
        first = stage(post, title='B', notes='first pass')
        editor = create_user(email='editor@example.com', role='editor')
        second = stage(post, actor=editor, content='Edited body', notes='second pass')

        assert second.id == first.id
        assert staged_count(post) == 1
        assert second.snapshot.title == 'B'
        assert second.snapshot.content == 'Edited body'
        assert second.notes == 'second pass'
        assert second.author_id == editor.pk
        assert second.snapshot.modified_at >= first.snapshot.modified_at

    def test_update_leaves_status_alone(self, services, post, stage):
        revision = stage(post, title='B')
        services.workflow.approve(revision.id)
        updated = stage(post, title='C')
        assert updated.status == StagedStatus.APPROVED

    def test_create_on_unpublished_post_fails(self, services, create_post):
        draft = create_post(status=Post.STATUS_DRAFT)
        result = services.repository.create(draft.pk, {'title': 'B'})
        assert not result.ok
        assert result.error.code == results.NOT_PUBLISHED
        assert result.error.http_status == 400
        assert staged_count(draft) == 0
        assert not PostSnapshot.objects.filter(parent=draft).exists()

    def test_create_on_missing_post_fails(self, services):
        result = services.repository.create(987654, {'title': 'B'})
        assert not result.ok
        assert result.error.code == results.NOT_FOUND

    def test_find_by_id_ignores_ordinary_snapshots(self, services, post, stage):
        ordinary = services.store.create_snapshot(post, title='history')
        revision = stage(post, title='B')

        assert services.repository.find_by_id(ordinary.pk) is None
        assert services.repository.find_by_id(revision.id).id == revision.id
        assert services.repository.find_by_id(999999) is None

    def test_find_for_parent_skips_ordinary_snapshots(self, services, post, stage):
        revision = stage(post, title='B')
        services.store.create_snapshot(post, title='later history')
        services.store.create_snapshot(post, title='even later')

        found = services.repository.find_for_parent(post.pk)
        assert found.id == revision.id
        assert services.repository.find_for_parent(post.pk + 1000) is None

    def test_resolve_falls_back_when_pointer_is_stale(self, services, post, stage):
        revision = stage(post, title='B')
        ordinary = services.store.create_snapshot(post, title='history')
        services.store.update_meta(EntityMeta.KIND_POST, post.pk, PARENT_POINTER, ordinary.pk)

        assert services.repository.resolve_for_parent(post.pk).id == revision.id

        services.repository.clear_pointer(post.pk)
        assert services.repository.resolve_for_parent(post.pk).id == revision.id

    def test_list_all_orders_filters_and_paginates(self, services, create_post, stage, author):
        first_post = create_post(title='First')
        second_post = create_post(title='Second', post_type='page')
        first = stage(first_post, title='First v2', notes='check links')
        second = stage(second_post, title='Second v2')

        rows = services.repository.list_all()
        assert [row.revision_id for row in rows] == [second.id, first.id]
        assert rows[0].post_type == 'page'
        assert rows[0].post_title == 'Second'
        assert rows[0].revision_title == 'Second v2'
        assert rows[1].notes == 'check links'
        assert rows[1].author_name == 'Ada Author'

        # Editing moves a revision to the top.
        stage(first_post, title='First v3')
        assert services.repository.list_all()[0].revision_id == first.id

        services.workflow.approve(second.id)
        approved = services.repository.list_all(status='approved')
        assert [row.revision_id for row in approved] == [second.id]
        assert services.repository.count_pending() == 1

        assert len(services.repository.list_all(page=1, per_page=1)) == 1
        assert services.repository.list_all(page=2, per_page=1)[0].revision_id == second.id
        assert services.repository.list_all(page=3, per_page=1) == []

    def test_list_unknown_author(self, services, post, stage, create_user):
        stranger = create_user(email='gone@example.com', role='editor')
        stage(post, actor=stranger, title='B')
        stranger.delete()

        row = services.repository.list_all()[0]
        assert row.author_name == 'Unknown'


@pytest.mark.django_db
class TestWorkflow:

    def test_stage_approve_publish(self, services, create_post, stage, received, django_capture_on_commit_callbacks):
        post = create_post(title='A')
        revision = stage(post, title='B')
        assert revision.status == StagedStatus.PENDING

        with django_capture_on_commit_callbacks(execute=True):
            approved = services.workflow.approve(revision.id)
        assert approved.ok
        assert approved.value.status == StagedStatus.APPROVED

        with django_capture_on_commit_callbacks(execute=True):
            published = services.workflow.publish(revision.id)
        assert published.ok
        assert published.value == post.pk

        post.refresh_from_db()
        assert post.title == 'B'
        assert post.status == Post.STATUS_PUBLISH
        assert services.repository.find_by_id(revision.id) is None
        assert services.store.get_all_meta(EntityMeta.KIND_SNAPSHOT, revision.id) == {}
        assert services.store.get_meta(EntityMeta.KIND_POST, post.pk, PARENT_POINTER) == ''
        assert received == [
            ('staged.approved', post.pk, revision.id),
            ('staged.published', post.pk, revision.id),
        ]

    def test_publish_twice_fails_not_found(self, services, post, stage):
        revision = stage(post, title='B')
        assert services.workflow.publish(revision.id).ok

        post.title = 'Edited live'
        post.save()
        second = services.workflow.publish(revision.id)
        assert not second.ok
        assert second.error.code == results.NOT_FOUND
        post.refresh_from_db()
        assert post.title == 'Edited live'

    def test_publish_rejected_revision_directly(self, services, post, stage):
        revision = stage(post, title='B')
        services.workflow.reject(revision.id)
        assert services.workflow.publish(revision.id).ok
        post.refresh_from_db()
        assert post.title == 'B'

    def test_publish_cancels_armed_timer(self, services, post, stage):
        revision = stage(post, title='B')
        services.workflow.schedule(revision.id, in_an_hour())
        services.workflow.publish(revision.id)
        assert services.scheduler.next_run(revision.id) is None

    def test_publish_merge_failure(self, services, post, stage, monkeypatch):
        revision = stage(post, title='B')
        monkeypatch.setattr(services.store, 'restore_snapshot', lambda *args, **kwargs: None)

        result = services.workflow.publish(revision.id)
        assert not result.ok
        assert result.error.code == results.MERGE_FAILED
        assert result.error.http_status == 500
        assert services.repository.find_by_id(revision.id) is not None
        post.refresh_from_db()
        assert post.title == 'A'

    def test_discard(self, services, post, stage, received, django_capture_on_commit_callbacks):
        revision = stage(post, title='B')
        services.workflow.schedule(revision.id, in_an_hour())

        with django_capture_on_commit_callbacks(execute=True):
            result = services.workflow.discard(revision.id)
        assert result.ok
        assert services.repository.find_by_id(revision.id) is None
        assert not PostSnapshot.objects.filter(pk=revision.id).exists()
        assert services.store.get_meta(EntityMeta.KIND_POST, post.pk, PARENT_POINTER) == ''
        assert services.scheduler.next_run(revision.id) is None
        assert received == [('staged.discarded', post.pk, revision.id)]

        post.refresh_from_db()
        assert post.title == 'A'
        assert services.workflow.discard(revision.id).error.code == results.NOT_FOUND

    def test_unknown_revision_is_not_found(self, services):
        for result in (
            services.workflow.approve(123456),
            services.workflow.reject(123456),
            services.workflow.publish(123456),
            services.workflow.discard(123456),
            services.workflow.schedule(123456, in_an_hour()),
        ):
            assert not result.ok
            assert result.error.code == results.NOT_FOUND

    def test_schedule_twice_keeps_one_timer(self, services, post, stage):
        revision = stage(post, title='B')
        t1 = in_an_hour()
        t2 = t1 + timedelta(days=1)

        assert services.workflow.schedule(revision.id, t1).ok
        result = services.workflow.schedule(revision.id, t2)
        assert result.ok

        events = ScheduledEvent.objects.filter(argument=revision.id)
        assert events.count() == 1
        assert events.get().run_at == t2
        assert result.value.scheduled_date == t2.astimezone(dt_timezone.utc).strftime('%Y-%m-%d %H:%M:%S')

    def test_schedule_accepts_strings(self, services, post, stage):
        revision = stage(post, title='B')
        result = services.workflow.schedule(revision.id, '2999-01-02 03:04:05')
        assert result.ok
        assert result.value.scheduled_date == '2999-01-02 03:04:05'

    @pytest.mark.parametrize('value', [
        '',
        'not a date',
        '2000-01-01 00:00:00',
        '2999-13-45 00:00:00',
        '9999-12-31T23:00:00-05:00',
    ])
    def test_schedule_rejects_bad_dates(self, services, post, stage, value):
        revision = stage(post, title='B')
        result = services.workflow.schedule(revision.id, value)
        assert not result.ok
        assert result.error.code == results.INVALID_DATE
        assert services.scheduler.next_run(revision.id) is None

    def test_schedule_rejected_revision_is_invalid(self, services, post, stage):
        revision = stage(post, title='B')
        services.workflow.reject(revision.id)
        result = services.workflow.schedule(revision.id, in_an_hour())
        assert not result.ok
        assert result.error.code == results.INVALID_STATE
        assert result.error.http_status == 409
        assert services.scheduler.next_run(revision.id) is None

    def test_reject_cancels_schedule(self, services, post, stage, received, django_capture_on_commit_callbacks):
        revision = stage(post, title='B')
        services.workflow.schedule(revision.id, in_an_hour())
        assert services.scheduler.next_run(revision.id) is not None

        with django_capture_on_commit_callbacks(execute=True):
            rejected = services.workflow.reject(revision.id)
        assert rejected.value.status == StagedStatus.REJECTED
        assert rejected.value.scheduled_date == ''
        assert services.scheduler.next_run(revision.id) is None
        assert received == [('staged.rejected', post.pk, revision.id)]

        # The old timer firing anyway is a no-op.
        assert services.fire_handler(revision.id) is False
        post.refresh_from_db()
        assert post.title == 'A'

    def test_parse_publish_date(self):
        assert parse_publish_date('2030-05-06T07:08:09+02:00').hour == 5
        assert parse_publish_date('2030-05-06').hour == 0
        assert parse_publish_date('yesterday') is None


@pytest.mark.django_db
class TestScheduler:

    def test_arm_replaces_and_disarm_is_idempotent(self, services):
        scheduler = services.scheduler
        scheduler.arm(1, in_an_hour())
        scheduler.arm(1, in_an_hour() + timedelta(hours=2))
        assert ScheduledEvent.objects.filter(hook=scheduler.hook, argument=1).count() == 1

        assert scheduler.disarm(1) is True
        assert scheduler.disarm(1) is False
        assert scheduler.disarm(424242) is False

    def test_clear_all(self, services):
        scheduler = services.scheduler
        scheduler.arm(1, in_an_hour())
        scheduler.arm(2, in_an_hour())
        ScheduledEvent.objects.create(hook='other_hook', argument=1, run_at=in_an_hour())

        assert scheduler.clear_all() == 2
        assert not ScheduledEvent.objects.filter(hook=scheduler.hook).exists()
        assert ScheduledEvent.objects.filter(hook='other_hook').exists()

    def test_run_due_publishes_and_notifies(self, services, post, stage, received, django_capture_on_commit_callbacks):
        revision = stage(post, title='B')
        later = stage(Post.objects.create(title='X', status=Post.STATUS_PUBLISH), title='Y')
        services.workflow.schedule(revision.id, in_an_hour())
        services.workflow.schedule(later.id, in_an_hour() + timedelta(days=1))

        with django_capture_on_commit_callbacks(execute=True):
            fired = services.scheduler.run_due(services.fire_handler, now=in_an_hour() + timedelta(minutes=5))

        assert fired == 1
        post.refresh_from_db()
        assert post.title == 'B'
        assert services.scheduler.next_run(revision.id) is None
        assert services.scheduler.next_run(later.id) is not None
        assert received == [
            ('staged.published', post.pk, revision.id),
            ('staged.scheduled_publish_completed', post.pk, revision.id),
        ]

    def test_failing_callback_is_not_retried(self, services):
        services.scheduler.arm(7, timezone.now() - timedelta(minutes=1))

        def explode(revision_id):
            raise RuntimeError('boom')

        assert services.scheduler.run_due(explode) == 1
        assert services.scheduler.run_due(explode) == 0

    def test_handler_skips_missing_and_unstaged(self, services, post, stage):
        assert services.fire_handler(999999) is False

        ordinary = services.store.create_snapshot(post, title='history')
        assert services.fire_handler(ordinary.pk) is False

        revision = stage(post, title='B')
        services.workflow.publish(revision.id)
        assert services.fire_handler(revision.id) is False

    def test_deleting_post_disarms_and_purges(self, services, post, stage):
        revision = stage(post, title='B')
        services.workflow.schedule(revision.id, in_an_hour())
        other = stage(Post.objects.create(title='X', status=Post.STATUS_PUBLISH), title='Y')
        services.workflow.schedule(other.id, in_an_hour())

        post.delete()

        assert services.scheduler.next_run(revision.id) is None
        assert services.scheduler.next_run(other.id) is not None
        assert not EntityMeta.objects.filter(entity_kind=EntityMeta.KIND_SNAPSHOT, entity_id=revision.id).exists()

    def test_handler_logs_publish_failure(self, services, post, stage, monkeypatch, caplog):
        revision = stage(post, title='B')
        monkeypatch.setattr(services.store, 'restore_snapshot', lambda *args, **kwargs: None)

        with caplog.at_level('ERROR', logger='staging.scheduler'):
            assert services.fire_handler(revision.id) is False
        assert 'merge_failed' in caplog.text


@pytest.mark.django_db
class TestGuard:

    def test_staged_snapshot_forces_changed(self, services, post, stage):
        revision = stage(post, title='B')
        assert services.guard(False, revision.snapshot, post) is True
        assert services.guard(True, revision.snapshot, post) is True

    def test_ordinary_snapshot_keeps_verdict(self, services, post):
        ordinary = services.store.create_snapshot(post, title='history')
        assert services.guard(False, ordinary, post) is False
        assert services.guard(True, ordinary, post) is True
        assert services.guard(False, None, post) is False

    def test_live_edit_does_not_touch_staged_payload(self, services, post, stage):
        revision = stage(post, title='B')
        # Matching the staged payload would read as "unchanged" without the guard.
        _, snapshot = services.store.save_post(post, title='B')

        assert snapshot is not None
        assert snapshot.pk != revision.id
        assert services.repository.find_for_parent(post.pk).id == revision.id

    def test_admin_edit_records_ordinary_snapshot(self, services, post, stage, author, rf):
        from django.contrib import admin

        revision = stage(post, title='B')
        post.title = 'B'
        request = rf.post(f'/admin/content/post/{post.pk}/change/')
        request.user = author
        admin.site._registry[Post].save_model(request, post, form=None, change=True)

        snapshots = list(PostSnapshot.objects.filter(parent=post).order_by('id'))
        assert snapshots[0].pk == revision.id
        assert len(snapshots) == 2
        assert snapshots[1].title == 'B'
        assert services.repository.find_by_id(snapshots[1].pk) is None

        staged = services.repository.find_for_parent(post.pk)
        assert staged.id == revision.id
        assert staged.snapshot.content == 'Original body'
        post.refresh_from_db()
        assert post.title == 'B'


@pytest.mark.django_db
class TestSignals:

    def test_failing_receiver_is_isolated(self, services, post, stage, received, caplog, django_capture_on_commit_callbacks):
        revision = stage(post, title='B')

        def broken(sender, **kwargs):
            raise RuntimeError('listener down')

        staged_approved.connect(broken)
        try:
            with caplog.at_level('ERROR', logger='staging.signals'):
                with django_capture_on_commit_callbacks(execute=True):
                    result = services.workflow.approve(revision.id)
        finally:
            staged_approved.disconnect(broken)

        assert result.ok
        assert services.repository.find_by_id(revision.id).status == StagedStatus.APPROVED
        assert ('staged.approved', post.pk, revision.id) in received
        assert 'listener down' in caplog.text

    def test_send_now_returns_responses(self, received):
        responses = send_now(staged_approved, sender=None, parent_id=1, revision_id=2)
        assert received == [('staged.approved', 1, 2)]
        assert all(not isinstance(response, Exception) for _, response in responses)


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body
        self.text = '' if body is None else str(body)

    def json(self):
        if self._body is None:
            raise ValueError('no body')
        return self._body


@pytest.mark.django_db
class TestWebhooks:

    def test_lifecycle_events_are_forwarded(self, services, post, stage, settings, monkeypatch, django_capture_on_commit_callbacks):
        import requests
        settings.STAGING_WEBHOOK_URL = 'https://hooks.example.com/rewrites'
        calls = []

        def fake_post(url, data=None, headers=None, timeout=None):
            calls.append((url, data, headers))
            return FakeResponse(200, {'ok': True})

        monkeypatch.setattr(requests, 'post', fake_post)
        revision = stage(post, title='B')

        with django_capture_on_commit_callbacks(execute=True):
            services.workflow.approve(revision.id)

        assert len(calls) == 1
        url, data, headers = calls[0]
        assert url == 'https://hooks.example.com/rewrites'
        assert headers['X-Rewrites-Event'] == 'staged.approved'
        assert f'"revision_id": {revision.id}' in data

    def test_no_url_means_no_request(self, services, post, stage, settings, monkeypatch, django_capture_on_commit_callbacks):
        import requests
        settings.STAGING_WEBHOOK_URL = ''

        def fail_post(*args, **kwargs):
            raise AssertionError('should not be called')

        monkeypatch.setattr(requests, 'post', fail_post)
        revision = stage(post, title='B')
        with django_capture_on_commit_callbacks(execute=True):
            assert services.workflow.discard(revision.id).ok

    def test_delivery_errors_are_returned(self, monkeypatch):
        import requests
        from staging.webhooks import send_lifecycle_webhook

        def refuse(*args, **kwargs):
            raise requests.ConnectionError('refused')

        monkeypatch.setattr(requests, 'post', refuse)
        outcome = send_lifecycle_webhook('https://hooks.example.com', 'staged.published', {})
        assert outcome['success'] is False
        assert outcome['status_code'] is None

        monkeypatch.setattr(requests, 'post', lambda *args, **kwargs: FakeResponse(502))
        outcome = send_lifecycle_webhook('https://hooks.example.com', 'staged.published', {})
        assert outcome == {'success': False, 'status_code': 502, 'response': None, 'error': 'HTTP 502'}


@pytest.mark.django_db
class TestCommands:

    def test_run_scheduled_publishes(self, services, post, stage, capsys):
        revision = stage(post, title='B')
        services.scheduler.arm(revision.id, timezone.now() - timedelta(seconds=1))

        call_command('run_scheduled_publishes')

        post.refresh_from_db()
        assert post.title == 'B'
        assert 'Fired 1' in capsys.readouterr().out

    def test_clear_scheduled_publishes(self, services, post, stage, capsys):
        revision = stage(post, title='B')
        services.workflow.schedule(revision.id, in_an_hour())

        call_command('clear_scheduled_publishes')

        assert services.scheduler.next_run(revision.id) is None
        assert 'Cleared 1' in capsys.readouterr().out
