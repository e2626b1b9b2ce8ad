"""
URL routing for staged revisions, mounted at /api/v1/staged/.
"""
from django.urls import path

from . import views

urlpatterns = [
    path('', views.staged_list, name='staged-list'),
    path('pending-count/', views.staged_pending_count, name='staged-pending-count'),
    path('settings/checklist/', views.checklist_settings, name='staged-checklist-settings'),
    path('revision/<int:revision_id>/', views.staged_discard, name='staged-discard'),
    path('<int:revision_id>/publish/', views.staged_publish, name='staged-publish'),
    path('<int:revision_id>/schedule/', views.staged_schedule, name='staged-schedule'),
    path('<int:revision_id>/approve/', views.staged_approve, name='staged-approve'),
    path('<int:revision_id>/reject/', views.staged_reject, name='staged-reject'),
    path('<int:post_id>/', views.staged_for_post, name='staged-for-post'),
]
