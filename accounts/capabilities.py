"""
Role-based capability checks.

Roles map to primitive capabilities. ``edit_post`` is a meta capability
resolved against a specific content item (ownership + published state).
"""
import logging

logger = logging.getLogger(__name__)

EDIT_POSTS = 'edit_posts'
EDIT_PUBLISHED_POSTS = 'edit_published_posts'
EDIT_OTHERS_POSTS = 'edit_others_posts'
PUBLISH_POSTS = 'publish_posts'
MANAGE_OPTIONS = 'manage_options'

# Meta capability: needs a post to resolve.
EDIT_POST = 'edit_post'

ROLE_CAPABILITIES = {
    'administrator': {EDIT_POSTS, EDIT_PUBLISHED_POSTS, EDIT_OTHERS_POSTS, PUBLISH_POSTS, MANAGE_OPTIONS},
    'editor': {EDIT_POSTS, EDIT_PUBLISHED_POSTS, EDIT_OTHERS_POSTS, PUBLISH_POSTS},
    'author': {EDIT_POSTS, EDIT_PUBLISHED_POSTS, PUBLISH_POSTS},
    'contributor': {EDIT_POSTS},
}


def role_capabilities(role):
    return ROLE_CAPABILITIES.get(role, set())


def user_can(user, capability, post=None):
    """
    Return True if ``user`` holds ``capability``.

    ``post`` scopes the ``edit_post`` meta capability; it may be a Post
    instance or a post id. An unknown post id never grants ``edit_post``.
    """
    if user is None or not getattr(user, 'is_authenticated', False):
        return False
    if not user.is_active:
        return False
    if user.is_superuser:
        return True

    caps = role_capabilities(getattr(user, 'role', None))

    if capability != EDIT_POST:
        return capability in caps

    if post is None:
        return EDIT_OTHERS_POSTS in caps

    if not hasattr(post, 'author_id'):
        from content.models import Post
        post = Post.objects.filter(pk=post).only('id', 'author_id', 'status').first()
        if post is None:
            logger.debug("edit_post denied for user %s: post not found", user.pk)
            return False

    if EDIT_OTHERS_POSTS in caps:
        return True
    if post.author_id != user.pk or EDIT_POSTS not in caps:
        return False
    if post.status == 'publish':
        return EDIT_PUBLISHED_POSTS in caps
    return True
