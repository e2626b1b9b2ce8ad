"""
Tests for the staged-revision REST endpoints.
"""
from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from content.models import Post
from staging.models import PublicationChecklist
from staging.services import get_services


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def create_user():
    def _create_user(email, role):
        return get_user_model().objects.create_user(
            email=email, username=email, password='testpass123', role=role
        )
    return _create_user


@pytest.fixture
def client_for():
    def _client_for(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {str(refresh.access_token)}')
        return client
    return _client_for


@pytest.fixture
def author(create_user):
    return create_user('author@example.com', 'author')


@pytest.fixture
def editor(create_user):
    return create_user('editor@example.com', 'editor')


@pytest.fixture
def contributor(create_user):
    return create_user('contrib@example.com', 'contributor')


@pytest.fixture
def administrator(create_user):
    return create_user('admin@example.com', 'administrator')


@pytest.fixture
def post(author):
    return Post.objects.create(author=author, status=Post.STATUS_PUBLISH, title='Live title', content='Live body')


@pytest.fixture
def staged(post, author):
    result = get_services().repository.create(post.pk, {'title': 'Staged title'}, {'notes': 'please review'}, actor=author)
    assert result.ok
    return result.value


def future(hours=2):
    return (timezone.now() + timedelta(hours=hours)).strftime('%Y-%m-%d %H:%M:%S')


@pytest.mark.django_db
class TestStagedSave:

    def test_requires_authentication(self, api_client, post):
        response = api_client.get(f'/api/v1/staged/{post.pk}/')
        assert response.status_code == 401

    def test_get_without_staged_revision(self, client_for, author, post):
        response = client_for(author).get(f'/api/v1/staged/{post.pk}/')
        assert response.status_code == 404
        assert response.data['error']['code'] == 'NOT_FOUND'

    def test_create_and_fetch(self, client_for, author, post):
        client = client_for(author)
        response = client.post(f'/api/v1/staged/{post.pk}/', {
            'title': '<b>New</b> title',
            'content': '<p>New body</p>',
            'notes': 'Ready for review',
        })
        assert response.status_code == 200
        assert response.data['post_id'] == post.pk
        assert response.data['title'] == 'New title'
        assert response.data['content'] == '<p>New body</p>'
        assert response.data['excerpt'] == ''
        assert response.data['status'] == 'pending'
        assert response.data['author'] == author.pk
        assert response.data['notes'] == 'Ready for review'
        assert response.data['scheduled_date'] == ''
        assert response.data['modified_gmt']

        fetched = client.get(f'/api/v1/staged/{post.pk}/')
        assert fetched.status_code == 200
        assert fetched.data['id'] == response.data['id']

        post.refresh_from_db()
        assert post.title == 'Live title'

    def test_second_save_updates_in_place(self, client_for, author, post):
        client = client_for(author)
        first = client.post(f'/api/v1/staged/{post.pk}/', {'title': 'One'})
        second = client.post(f'/api/v1/staged/{post.pk}/', {'content': 'Two'})
        assert second.data['id'] == first.data['id']
        assert second.data['title'] == 'One'
        assert second.data['content'] == 'Two'

    def test_unpublished_post(self, client_for, author):
        draft = Post.objects.create(author=author, status=Post.STATUS_DRAFT, title='Draft')
        response = client_for(author).post(f'/api/v1/staged/{draft.pk}/', {'title': 'x'})
        assert response.status_code == 400
        assert response.data['error']['code'] == 'NOT_PUBLISHED'

    def test_unknown_post(self, client_for, editor):
        response = client_for(editor).post('/api/v1/staged/987654/', {'title': 'x'})
        assert response.status_code == 404

    def test_contributor_cannot_stage_published_post(self, client_for, contributor):
        theirs = Post.objects.create(author=contributor, status=Post.STATUS_PUBLISH, title='Mine')
        response = client_for(contributor).post(f'/api/v1/staged/{theirs.pk}/', {'title': 'x'})
        assert response.status_code == 403
        assert response.data['error']['code'] == 'FORBIDDEN'

    def test_author_cannot_stage_someone_elses_post(self, client_for, create_user, editor):
        other = Post.objects.create(author=editor, status=Post.STATUS_PUBLISH, title='Not yours')
        someone = create_user('someone@example.com', 'author')
        response = client_for(someone).post(f'/api/v1/staged/{other.pk}/', {'title': 'x'})
        assert response.status_code == 403


@pytest.mark.django_db
class TestStagedList:

    def test_requires_edit_others_posts(self, client_for, author):
        response = client_for(author).get('/api/v1/staged/')
        assert response.status_code == 403

    def test_list(self, client_for, editor, staged, post):
        response = client_for(editor).get('/api/v1/staged/')
        assert response.status_code == 200
        assert response.data['meta']['total'] == 1
        assert response.data['meta']['total_pages'] == 1
        assert response.data['meta']['per_page'] == 20
        row = response.data['data'][0]
        assert row['revision_id'] == staged.id
        assert row['post_id'] == post.pk
        assert row['post_title'] == 'Live title'
        assert row['revision_title'] == 'Staged title'
        assert row['author_name'] == 'author@example.com'
        assert row['status'] == 'pending'
        assert row['notes'] == 'please review'

    def test_list_filter_and_empty_page(self, client_for, editor, staged):
        client = client_for(editor)
        assert client.get('/api/v1/staged/?status=approved').data['data'] == []
        assert len(client.get('/api/v1/staged/?status=pending').data['data']) == 1
        assert client.get('/api/v1/staged/?page=2').data['data'] == []

    def test_list_rejects_bad_paging(self, client_for, editor):
        client = client_for(editor)
        assert client.get('/api/v1/staged/?per_page=101').status_code == 400
        assert client.get('/api/v1/staged/?page=0').status_code == 400
        assert client.get('/api/v1/staged/?status=published').status_code == 400

    def test_pending_count(self, client_for, editor, author, staged):
        assert client_for(author).get('/api/v1/staged/pending-count/').status_code == 403
        response = client_for(editor).get('/api/v1/staged/pending-count/')
        assert response.status_code == 200
        assert response.data == {'count': 1}


@pytest.mark.django_db
class TestStagedTransitions:

    def test_publish(self, client_for, author, staged, post):
        client = client_for(author)
        response = client.post(f'/api/v1/staged/{staged.id}/publish/')
        assert response.status_code == 200
        assert response.data['published'] is True
        assert response.data['post_id'] == post.pk

        post.refresh_from_db()
        assert post.title == 'Staged title'
        assert client.post(f'/api/v1/staged/{staged.id}/publish/').status_code == 404
        assert client.get(f'/api/v1/staged/{post.pk}/').status_code == 404

    def test_publish_requires_publish_posts(self, client_for, contributor, staged):
        response = client_for(contributor).post(f'/api/v1/staged/{staged.id}/publish/')
        assert response.status_code == 403

    def test_publish_unknown_revision(self, client_for, editor):
        assert client_for(editor).post('/api/v1/staged/999999/publish/').status_code == 404

    def test_discard(self, client_for, author, staged, post):
        client = client_for(author)
        response = client.delete(f'/api/v1/staged/revision/{staged.id}/')
        assert response.status_code == 200
        assert response.data['deleted'] is True
        assert client.delete(f'/api/v1/staged/revision/{staged.id}/').status_code == 404

        post.refresh_from_db()
        assert post.title == 'Live title'

    def test_discard_requires_edit_post(self, client_for, create_user, staged):
        someone = create_user('someone@example.com', 'author')
        response = client_for(someone).delete(f'/api/v1/staged/revision/{staged.id}/')
        assert response.status_code == 403

    def test_schedule(self, client_for, author, staged):
        when = future()
        response = client_for(author).post(f'/api/v1/staged/{staged.id}/schedule/', {'publish_date': when})
        assert response.status_code == 200
        assert response.data['scheduled_date'] == when
        assert get_services().scheduler.next_run(staged.id) is not None

    def test_schedule_invalid_dates(self, client_for, author, staged):
        client = client_for(author)
        past = client.post(f'/api/v1/staged/{staged.id}/schedule/', {'publish_date': '2001-01-01 00:00:00'})
        assert past.status_code == 400
        assert past.data['error']['code'] == 'INVALID_DATE'
        assert client.post(f'/api/v1/staged/{staged.id}/schedule/', {}).status_code == 400

    def test_schedule_rejected_revision(self, client_for, author, editor, staged):
        client_for(editor).post(f'/api/v1/staged/{staged.id}/reject/')
        response = client_for(author).post(f'/api/v1/staged/{staged.id}/schedule/', {'publish_date': future()})
        assert response.status_code == 409
        assert response.data['error']['code'] == 'INVALID_STATE'

    def test_approve_and_reject(self, client_for, editor, author, staged):
        assert client_for(author).post(f'/api/v1/staged/{staged.id}/approve/').status_code == 403

        client = client_for(editor)
        approved = client.post(f'/api/v1/staged/{staged.id}/approve/')
        assert approved.status_code == 200
        assert approved.data['status'] == 'approved'

        client_for(author).post(f'/api/v1/staged/{staged.id}/schedule/', {'publish_date': future()})
        rejected = client.post(f'/api/v1/staged/{staged.id}/reject/')
        assert rejected.status_code == 200
        assert rejected.data['status'] == 'rejected'
        assert rejected.data['scheduled_date'] == ''
        assert get_services().scheduler.next_run(staged.id) is None

    def test_approve_unknown_revision(self, client_for, editor):
        response = client_for(editor).post('/api/v1/staged/999999/approve/')
        assert response.status_code == 404
        assert response.data['error']['status'] == 404


@pytest.mark.django_db
class TestChecklistSettings:

    def test_defaults(self, client_for, contributor):
        response = client_for(contributor).get('/api/v1/staged/settings/checklist/')
        assert response.status_code == 200
        assert response.data['enabled'] is True
        assert [item['required'] for item in response.data['items']] == [True, True, False]
        assert response.data['items'][0]['label'] == 'I have reviewed all changes'

    def test_update_requires_manage_options(self, client_for, editor):
        response = client_for(editor).post('/api/v1/staged/settings/checklist/', {'enabled': False})
        assert response.status_code == 403
        assert PublicationChecklist.load().enabled is True

    def test_update(self, client_for, administrator):
        response = client_for(administrator).post('/api/v1/staged/settings/checklist/', {
            'enabled': False,
            'items': [
                {'label': 'Screenshots updated', 'required': True},
                {'label': '   ', 'required': True},
                {'label': 'SEO title checked'},
            ],
        })
        assert response.status_code == 200
        assert response.data['enabled'] is False
        assert response.data['items'] == [
            {'label': 'Screenshots updated', 'required': True},
            {'label': 'SEO title checked', 'required': False},
        ]

        checklist = PublicationChecklist.load()
        assert checklist.enabled is False
        assert len(checklist.items) == 2


@pytest.mark.django_db
class TestHealth:

    def test_health_reports_overdue_publishes(self, api_client, staged):
        services = get_services()
        services.scheduler.arm(staged.id, timezone.now() - timedelta(minutes=5))

        response = api_client.get('/api/v1/health/')
        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'ok'
        assert body['scheduler_hook'] == services.scheduler.hook
        assert body['overdue_publishes'] == 1
