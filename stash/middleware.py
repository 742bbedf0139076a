from .scope import ScopeCache


class ScopeCacheMiddleware:
    """Attach the per-user scope cache to every request as `request.scope_cache`."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.scope_cache = ScopeCache()
        return self.get_response(request)
