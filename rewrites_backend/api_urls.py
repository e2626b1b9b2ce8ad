"""
API URL routing for rewrites_backend.
All API endpoints are prefixed with /api/v1/
"""
from django.urls import path, include

from .views import health_check

urlpatterns = [
    # Health check (no auth) - GET /api/v1/health/
    path('health/', health_check, name='health'),
    # Dashboard authentication
    path('auth/', include('accounts.urls')),
    # Staged revisions (save, review, schedule, publish)
    path('staged/', include('staging.urls')),
]
