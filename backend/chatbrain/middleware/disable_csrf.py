# backend/chatbrain/middleware/disable_csrf.py
"""
Middleware to disable CSRF checks for API paths.

The API is called cross-origin by the chat front end with a bearer session,
never with Django's session cookie, so CSRF enforcement is skipped for
requests whose path starts with '/api/'. It must be placed *before*
Django's CsrfViewMiddleware in MIDDLEWARE so it takes effect.
"""

from django.utils.deprecation import MiddlewareMixin


class DisableCSRFMiddleware(MiddlewareMixin):
    def process_request(self, request):
        path = getattr(request, "path", "") or ""
        if path.startswith("/api/"):
            setattr(request, "_dont_enforce_csrf_checks", True)
        return None
