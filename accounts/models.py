"""
User account models.
"""
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.
    Used for dashboard authentication; the role decides which staging
    actions (save, review, publish) the user may take.
    """
    ROLE_ADMINISTRATOR = 'administrator'
    ROLE_EDITOR = 'editor'
    ROLE_AUTHOR = 'author'
    ROLE_CONTRIBUTOR = 'contributor'

    ROLE_CHOICES = [
        (ROLE_ADMINISTRATOR, 'Administrator'),
        (ROLE_EDITOR, 'Editor'),
        (ROLE_AUTHOR, 'Author'),
        (ROLE_CONTRIBUTOR, 'Contributor'),
    ]

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CONTRIBUTOR)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']

    def __str__(self):
        return self.email

    @property
    def display_name(self):
        full_name = self.get_full_name()
        return full_name or self.username or self.email

    def can(self, capability, post=None):
        """Shortcut for accounts.capabilities.user_can."""
        from .capabilities import user_can
        return user_can(self, capability, post)
