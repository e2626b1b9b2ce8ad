"""
API endpoints for staged revisions.

  GET    /api/v1/staged/                          list (edit_others_posts)
  GET    /api/v1/staged/pending-count/            pending review count
  GET    /api/v1/staged/settings/checklist/       publication checklist
  POST   /api/v1/staged/settings/checklist/       update checklist (manage_options)
  GET    /api/v1/staged/{post_id}/                staged revision of a post
  POST   /api/v1/staged/{post_id}/                create or update it
  DELETE /api/v1/staged/revision/{revision_id}/   discard
  POST   /api/v1/staged/{revision_id}/publish|schedule|approve|reject/
"""
import logging
import math
from datetime import timezone as dt_timezone

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import PublicationChecklist
from .permissions import (
    can_edit_post, can_manage_settings, can_publish, can_review, forbidden_response,
)
from .repository import PUBLISH_DATE_FORMAT
from .serializers import (
    ChecklistSettingsSerializer, ScheduleSerializer, StagedListQuerySerializer, StagedSaveSerializer,
)
from .services import get_services

logger = logging.getLogger(__name__)


def _error_response(code, message, http_status, detail=None):
    return Response({
        'error': {'code': code, 'message': message, 'detail': detail, 'status': http_status}
    }, status=http_status)


def _result_error(result):
    error = result.error
    return _error_response(error.code.upper(), error.message, error.http_status)


def _not_found(message='Staged revision not found.'):
    return _error_response('NOT_FOUND', message, status.HTTP_404_NOT_FOUND)


def _format_datetime(value):
    return timezone.localtime(value).strftime(PUBLISH_DATE_FORMAT) if value else None


def _serialize_revision(revision):
    snapshot = revision.snapshot
    return {
        'id': revision.id,
        'post_id': revision.parent_id,
        'title': snapshot.title,
        'content': snapshot.content,
        'excerpt': snapshot.excerpt,
        'author': revision.author_id,
        'status': revision.status,
        'scheduled_date': revision.scheduled_date,
        'notes': revision.notes,
        'modified': _format_datetime(snapshot.modified_at),
        'modified_gmt': snapshot.modified_at.astimezone(dt_timezone.utc).strftime(PUBLISH_DATE_FORMAT),
    }


def _serialize_summary(row):
    return {
        'revision_id': row.revision_id,
        'post_id': row.post_id,
        'post_title': row.post_title,
        'post_type': row.post_type,
        'revision_title': row.revision_title,
        'author': row.author_id,
        'author_name': row.author_name,
        'status': row.status,
        'scheduled_date': row.scheduled_date,
        'notes': row.notes,
        'modified': _format_datetime(row.modified),
    }


def _serialize_checklist(checklist):
    return {
        'enabled': checklist.enabled,
        'items': checklist.items,
        'updated_at': checklist.updated_at.isoformat() if checklist.updated_at else None,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def staged_list(request):
    """
    GET /api/v1/staged/?status=&page=&per_page=
    All staged revisions, most recently modified first.
    """
    if not can_review(request.user):
        return forbidden_response()

    query = StagedListQuerySerializer(data=request.query_params)
    if not query.is_valid():
        return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

    params = query.validated_data
    status_filter = params.get('status') or None
    page = params['page']
    per_page = params['per_page']

    repository = get_services().repository
    total = repository.count(status_filter)
    rows = repository.list_all(status=status_filter, page=page, per_page=per_page)

    return Response({
        'data': [_serialize_summary(row) for row in rows],
        'meta': {
            'total': total,
            'page': page,
            'per_page': per_page,
            'total_pages': max(1, math.ceil(total / per_page)),
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def staged_pending_count(request):
    """GET /api/v1/staged/pending-count/"""
    if not can_review(request.user):
        return forbidden_response()
    return Response({'count': get_services().repository.count_pending()})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def staged_for_post(request, post_id):
    """
    GET  /api/v1/staged/{post_id}/  current staged revision, 404 if none
    POST /api/v1/staged/{post_id}/  body {title?, content?, excerpt?, notes?}
    """
    services = get_services()
    post = services.store.get_item(post_id)
    if post is None:
        return _not_found('Post not found.')
    if not can_edit_post(request.user, post):
        return forbidden_response()

    if request.method == 'GET':
        revision = services.repository.resolve_for_parent(post.pk)
        if revision is None:
            return _not_found('No staged revision found for this post.')
        return Response(_serialize_revision(revision))

    serializer = StagedSaveSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    result = services.repository.create(
        post.pk, serializer.payload(), serializer.meta(), actor=request.user,
    )
    if not result.ok:
        return _result_error(result)
    return Response(_serialize_revision(result.value))


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def staged_discard(request, revision_id):
    """DELETE /api/v1/staged/revision/{revision_id}/"""
    services = get_services()
    revision = services.repository.find_by_id(revision_id)
    if revision is None:
        return _not_found()
    if not can_edit_post(request.user, revision.parent_id):
        return forbidden_response()

    result = services.workflow.discard(revision.id)
    if not result.ok:
        return _result_error(result)
    return Response({'deleted': True, 'message': 'Staged revision discarded.'})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def staged_publish(request, revision_id):
    """POST /api/v1/staged/{revision_id}/publish/"""
    services = get_services()
    revision = services.repository.find_by_id(revision_id)
    if revision is None:
        return _not_found()
    if not can_publish(request.user, revision.parent_id):
        return forbidden_response()

    result = services.workflow.publish(revision.id, actor=request.user)
    if not result.ok:
        return _result_error(result)
    return Response({
        'published': True,
        'post_id': result.value,
        'message': 'Staged revision published successfully.',
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def staged_schedule(request, revision_id):
    """
    POST /api/v1/staged/{revision_id}/schedule/
    Body: { "publish_date": "2026-11-01 09:00:00" }  (UTC unless an offset is given)
    """
    services = get_services()
    revision = services.repository.find_by_id(revision_id)
    if revision is None:
        return _not_found()
    if not can_publish(request.user, revision.parent_id):
        return forbidden_response()

    serializer = ScheduleSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    result = services.workflow.schedule(revision.id, serializer.validated_data['publish_date'])
    if not result.ok:
        return _result_error(result)
    return Response(_serialize_revision(result.value))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def staged_approve(request, revision_id):
    """POST /api/v1/staged/{revision_id}/approve/"""
    if not can_review(request.user):
        return forbidden_response()

    result = get_services().workflow.approve(revision_id)
    if not result.ok:
        return _result_error(result)
    return Response(_serialize_revision(result.value))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def staged_reject(request, revision_id):
    """POST /api/v1/staged/{revision_id}/reject/"""
    if not can_review(request.user):
        return forbidden_response()

    result = get_services().workflow.reject(revision_id)
    if not result.ok:
        return _result_error(result)
    return Response(_serialize_revision(result.value))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def checklist_settings(request):
    """
    GET  /api/v1/staged/settings/checklist/
    POST /api/v1/staged/settings/checklist/  body {enabled?, items?: [{label, required}]}
    """
    checklist = PublicationChecklist.load()

    if request.method == 'GET':
        return Response(_serialize_checklist(checklist))

    if not can_manage_settings(request.user):
        return forbidden_response()

    serializer = ChecklistSettingsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    serializer.save_to(checklist)
    logger.info("Publication checklist updated by user %s", request.user.pk)
    return Response(_serialize_checklist(checklist))
