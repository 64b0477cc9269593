from __future__ import annotations

import logging

from django.db import DatabaseError
from django.http import HttpResponse

from tracker.exceptions import StoreFailure, TrackerError

logger = logging.getLogger(__name__)


class TrackerErrorMiddleware:
    """Answer tracker errors with a plain-text body and their status code.

    htmx swaps nothing on a 4xx/5xx response, so the short message is all the
    client needs.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if isinstance(exception, DatabaseError):
            logger.error("Unhandled database error on %s", request.path, exc_info=exception)
            exception = StoreFailure()
        if not isinstance(exception, TrackerError):
            return None
        if exception.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, exception.message)
        else:
            logger.info("%s %s rejected: %s", request.method, request.path, exception.message)
        return HttpResponse(
            exception.message,
            status=exception.status_code,
            content_type="text/plain; charset=utf-8",
        )
