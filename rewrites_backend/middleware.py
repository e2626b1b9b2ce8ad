"""
Custom middleware for rewrites_backend.
"""
from django.middleware.common import CommonMiddleware


class APICommonMiddleware(CommonMiddleware):
    """
    CommonMiddleware that never APPEND_SLASH-redirects /api/ routes.
    A redirect would turn POST/DELETE calls from editors into GETs.
    """
    def should_redirect_with_slash(self, request):
        if request.path.startswith('/api/'):
            return False
        return super().should_redirect_with_slash(request)
