"""
WSGI config for rewrites_backend project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rewrites_backend.settings')

application = get_wsgi_application()
