from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import QuerySet

from tracker.exceptions import InvalidInput
from tracker.models import Task, TrackerSession

from ._store import as_int, store_errors

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = Task._meta.get_field("name").max_length


def list_tasks(session: TrackerSession) -> QuerySet[Task]:
    return Task.objects.filter(session=session).order_by("created_at", "id")


def create_task(session: TrackerSession, name: str, xp: int | str) -> Task:
    """Add a task worth `xp` points; names are trimmed and must not be blank."""
    text = name.strip() if isinstance(name, str) else ""
    if not text:
        raise InvalidInput("Task name must not be empty.")
    if len(text) > NAME_MAX_LENGTH:
        raise InvalidInput(f"Task name must be at most {NAME_MAX_LENGTH} characters.")
    xp = as_int(xp, "XP")
    if xp <= 0:
        raise InvalidInput("XP must be a positive number.")

    with store_errors("create task"):
        with transaction.atomic():
            task = Task.objects.create(session=session, name=text, xp=xp)
    logger.debug("Session %s added task %s (%s XP)", session.token, task.pk, xp)
    return task
