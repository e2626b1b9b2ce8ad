"""
URL routing for accounts app.
"""
from django.urls import path

from .auth import login, me

urlpatterns = [
    path('login/', login, name='login'),
    path('me/', me, name='me'),
]
