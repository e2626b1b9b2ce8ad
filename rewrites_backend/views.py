"""
Project-level views (e.g. health check).
"""
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET


@require_GET
def health_check(request):
    """
    Liveness check for load balancers and monitoring.
    GET /api/v1/health/ - returns 200 if the app is running.
    No authentication required.

    ``overdue_publishes`` counts scheduled publishes whose time has passed;
    a growing number means run_scheduled_publishes is not being run.
    """
    from staging.services import get_services

    scheduler = get_services().scheduler
    return JsonResponse({
        "status": "ok",
        "service": "rewrites-backend",
        "scheduler_hook": scheduler.hook,
        "overdue_publishes": len(scheduler.due(timezone.now())),
    })
