from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from django.db import transaction

from tracker.models import Task, TrackerSession, Unlockable

from . import leveling as leveling_service
from . import tasks as task_service
from ._store import store_errors


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything a page render needs, read in one transaction."""

    token: str
    total_xp: int
    tasks: list[Task] = field(default_factory=list)
    unlockables: list[Unlockable] = field(default_factory=list)
    unlocked: frozenset[int] = frozenset()

    @property
    def level(self) -> int:
        return leveling_service.level_for(self.total_xp)

    @property
    def progress(self) -> int:
        return leveling_service.progress_percentage(self.total_xp)

    @property
    def next_level_xp(self) -> int:
        return leveling_service.xp_for_level(self.level + 1)

    @property
    def xp_to_next_level(self) -> int:
        return self.next_level_xp - self.total_xp

    def as_context(self) -> dict[str, Any]:
        return {
            "session_id": self.token,
            "tasks": self.tasks,
            "unlockables": self.unlockables,
            "total_xp": self.total_xp,
            "current_level": self.level,
            "progress": self.progress,
            "next_level_xp": self.next_level_xp,
            "xp_to_next_level": self.xp_to_next_level,
            "unlocked": self.unlocked,
        }

    def as_dict(self) -> dict[str, Any]:
        return {
            "session": self.token,
            "total_xp": self.total_xp,
            "level": self.level,
            "progress": self.progress,
            "next_level_xp": self.next_level_xp,
            "unlocked_levels": sorted(self.unlocked),
            "tasks": [
                {"id": task.pk, "name": task.name, "xp": task.xp, "completed": task.completed}
                for task in self.tasks
            ],
            "unlockables": [
                {
                    "id": item.pk,
                    "level": item.level,
                    "description": item.description,
                    "unlocked": item.level in self.unlocked,
                }
                for item in self.unlockables
            ],
        }


def snapshot(session: TrackerSession) -> SessionSnapshot:
    """Read a session without interleaving with a concurrent mutation."""
    with store_errors("load session"):
        with transaction.atomic():
            locked = TrackerSession.objects.select_for_update().get(pk=session.pk)
            tasks = list(task_service.list_tasks(locked))
            unlockables = list(leveling_service.list_unlockables(locked))
            unlocked = frozenset(leveling_service.unlocked_levels(locked))
    return SessionSnapshot(
        token=locked.token,
        total_xp=locked.total_xp,
        tasks=tasks,
        unlockables=unlockables,
        unlocked=unlocked,
    )
