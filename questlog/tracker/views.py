from __future__ import annotations

import json
import logging

from django import forms
from django.db import transaction
from django.http import HttpRequest, HttpResponse
from django.shortcuts import redirect, render
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .exceptions import InvalidInput, TaskNotFound
from .forms import TaskCompleteForm, TaskCreateForm, UnlockableCreateForm, error_summary
from .models import TrackerSession
from .services import leveling as leveling_service
from .services import sessions as session_service
from .services import snapshot as snapshot_service
from .services import tasks as task_service

logger = logging.getLogger(__name__)

PAGE_TEMPLATE = "tracker/index.html"
FRAGMENT_TEMPLATE = "tracker/partials/app.html"


def _cleaned(form: forms.Form) -> dict[str, object]:
    if not form.is_valid():
        raise InvalidInput(error_summary(form))
    return form.cleaned_data


def _render_state(
    request: HttpRequest,
    session: TrackerSession,
    *,
    partial: bool,
    extra: dict[str, object] | None = None,
) -> HttpResponse:
    state = snapshot_service.snapshot(session)
    context = state.as_context()
    if extra:
        context.update(extra)
    return render(request, FRAGMENT_TEMPLATE if partial else PAGE_TEMPLATE, context)


@require_GET
def start_session(request: HttpRequest) -> HttpResponse:
    """Mint a fresh session and send the browser to it."""
    session = session_service.new_session()
    return redirect("tracker:session", token=session.token)


@require_GET
def session_page(request: HttpRequest, token: str) -> HttpResponse:
    session = session_service.resolve_or_create(token)
    return _render_state(request, session, partial=False)


@csrf_exempt
@require_POST
def add_task(request: HttpRequest, token: str) -> HttpResponse:
    data = _cleaned(TaskCreateForm(request.POST))
    # A rejected task must not leave a freshly created session behind.
    with transaction.atomic():
        session = session_service.resolve_or_create(token)
        task_service.create_task(session, data["name"], data["xp"])
    return _render_state(request, session, partial=True)


@csrf_exempt
@require_POST
def add_xp(request: HttpRequest, token: str) -> HttpResponse:
    data = _cleaned(TaskCompleteForm(request.POST))
    # An unknown session owns no tasks, so there is nothing to complete.
    session = session_service.find_session(token)
    if session is None:
        raise TaskNotFound(f"Task {data['task']} not found.")
    result = leveling_service.complete_task(session, data["task"])
    response = _render_state(request, session, partial=True, extra={"completion": result})
    if result.leveled_up:
        response["HX-Trigger"] = json.dumps(
            {"levelUp": {"level": result.level, "unlocked": result.newly_unlocked}}
        )
    return response


@csrf_exempt
@require_POST
def add_unlockable(request: HttpRequest, token: str) -> HttpResponse:
    data = _cleaned(UnlockableCreateForm(request.POST))
    with transaction.atomic():
        session = session_service.resolve_or_create(token)
        leveling_service.register_unlockable(session, data["level"], data["description"])
    return _render_state(request, session, partial=True)
