"""
Tests for accounts app authentication and capabilities.
"""
import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from accounts.capabilities import (
    EDIT_OTHERS_POSTS, EDIT_POST, EDIT_POSTS, MANAGE_OPTIONS, PUBLISH_POSTS, user_can,
)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user_model():
    return get_user_model()


@pytest.fixture
def create_user(user_model):
    def _create_user(email="test@example.com", password="testpass123", role='contributor', **extra):
        return user_model.objects.create_user(
            email=email,
            username=email,
            password=password,
            role=role,
            **extra
        )
    return _create_user


@pytest.fixture
def authenticated_client(api_client, create_user):
    user = create_user()
    refresh = RefreshToken.for_user(user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {str(refresh.access_token)}')
    return api_client, user


@pytest.fixture
def create_post():
    def _create_post(author=None, status='publish', title='Hello'):
        from content.models import Post
        return Post.objects.create(author=author, status=status, title=title)
    return _create_post


@pytest.mark.django_db
class TestAuthentication:

    def test_login_success(self, api_client, create_user):
        user = create_user()
        response = api_client.post('/api/v1/auth/login/', {
            'email': user.email,
            'password': 'testpass123'
        })
        assert response.status_code == 200
        assert 'token' in response.data
        assert 'refresh' in response.data
        assert response.data['user']['email'] == user.email

    def test_login_invalid_credentials(self, api_client, create_user):
        create_user()
        response = api_client.post('/api/v1/auth/login/', {
            'email': 'test@example.com',
            'password': 'wrongpassword'
        })
        assert response.status_code == 400

    def test_login_missing_fields(self, api_client):
        response = api_client.post('/api/v1/auth/login/', {
            'email': 'test@example.com'
        })
        assert response.status_code == 400

    def test_me_endpoint_authenticated(self, authenticated_client):
        client, user = authenticated_client
        response = client.get('/api/v1/auth/me/')
        assert response.status_code == 200
        assert response.data['user']['email'] == user.email
        assert response.data['user']['role'] == 'contributor'
        assert response.data['user']['capabilities'] == [EDIT_POSTS]

    def test_me_endpoint_unauthenticated(self, api_client):
        response = api_client.get('/api/v1/auth/me/')
        assert response.status_code == 401


@pytest.mark.django_db
class TestCapabilities:

    def test_role_capabilities(self, create_user):
        editor = create_user(email='editor@example.com', role='editor')
        author = create_user(email='author@example.com', role='author')
        contributor = create_user(email='contrib@example.com', role='contributor')

        assert user_can(editor, EDIT_OTHERS_POSTS)
        assert user_can(editor, PUBLISH_POSTS)
        assert not user_can(editor, MANAGE_OPTIONS)
        assert user_can(author, PUBLISH_POSTS)
        assert not user_can(author, EDIT_OTHERS_POSTS)
        assert not user_can(contributor, PUBLISH_POSTS)

    def test_superuser_holds_everything(self, user_model):
        admin = user_model.objects.create_superuser(
            email='root@example.com', username='root', password='testpass123'
        )
        assert user_can(admin, MANAGE_OPTIONS)
        assert user_can(admin, EDIT_POST, 999999)

    def test_edit_post_own_published_post(self, create_user, create_post):
        author = create_user(email='author@example.com', role='author')
        contributor = create_user(email='contrib@example.com', role='contributor')

        own = create_post(author=author)
        assert user_can(author, EDIT_POST, own)
        assert user_can(author, EDIT_POST, own.pk)

        # Contributors lack edit_published_posts.
        theirs = create_post(author=contributor)
        assert not user_can(contributor, EDIT_POST, theirs)
        draft = create_post(author=contributor, status='draft')
        assert user_can(contributor, EDIT_POST, draft)

    def test_edit_post_someone_elses_post(self, create_user, create_post):
        author = create_user(email='author@example.com', role='author')
        editor = create_user(email='editor@example.com', role='editor')
        post = create_post(author=editor)

        assert not user_can(author, EDIT_POST, post)
        assert user_can(editor, EDIT_POST, create_post(author=author))

    def test_edit_post_unknown_post_is_denied(self, create_user):
        editor = create_user(email='editor@example.com', role='editor')
        assert not user_can(editor, EDIT_POST, 424242)

    def test_inactive_user_holds_nothing(self, create_user):
        editor = create_user(email='editor@example.com', role='editor', is_active=False)
        assert not editor.can(EDIT_OTHERS_POSTS)
