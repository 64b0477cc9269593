from __future__ import annotations

from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_GET

from .services import sessions as session_service
from .services import snapshot as snapshot_service


@require_GET
def api_session_state(request: HttpRequest, token: str) -> JsonResponse:
    session = session_service.resolve_or_create(token)
    return JsonResponse(snapshot_service.snapshot(session).as_dict())
