"""
Capability checks for the staged-revision routes.
"""
from rest_framework import status
from rest_framework.response import Response

from accounts.capabilities import (
    EDIT_OTHERS_POSTS, EDIT_POST, MANAGE_OPTIONS, PUBLISH_POSTS, user_can,
)


def forbidden_response(message='Permission denied.'):
    return Response({
        'error': {'code': 'FORBIDDEN', 'message': message, 'detail': None, 'status': 403}
    }, status=status.HTTP_403_FORBIDDEN)


def can_edit_post(user, post):
    return user_can(user, EDIT_POST, post)


def can_review(user):
    """List, count, approve and reject need "edit any item"."""
    return user_can(user, EDIT_OTHERS_POSTS)


def can_publish(user, post):
    return user_can(user, PUBLISH_POSTS) and user_can(user, EDIT_POST, post)


def can_manage_settings(user):
    return user_can(user, MANAGE_OPTIONS)
