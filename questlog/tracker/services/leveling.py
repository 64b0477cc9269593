"""Level derivation and the two XP state transitions.

Levels are never stored: `level_for()` derives them from the session's total
XP. What *is* stored is the append-only set of unlocked levels, which both
transitions below maintain while holding the session row lock.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable
import logging

from django.db import IntegrityError, transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from tracker.exceptions import AlreadyCompleted, DuplicateUnlockable, InvalidInput, TaskNotFound
from tracker.models import XP_PER_LEVEL, Task, TrackerSession, Unlockable, UnlockedLevel

from ._store import MAX_STORED_INT, as_int, store_errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of a single task completion."""

    task: Task
    xp_awarded: int
    previous_total: int
    total_xp: int
    previous_level: int
    level: int
    levels_gained: list[int] = field(default_factory=list)
    newly_unlocked: list[int] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return self.level > self.previous_level


def level_for(total_xp: int) -> int:
    return total_xp // XP_PER_LEVEL


def progress_percentage(total_xp: int) -> int:
    """Percent of the way to the next level, truncated into 0..99."""
    remainder = total_xp % XP_PER_LEVEL
    return remainder * 100 // XP_PER_LEVEL


def xp_for_level(level: int) -> int:
    return level * XP_PER_LEVEL


def levels_between(previous_level: int, new_level: int) -> range:
    """Levels crossed when moving from `previous_level` to `new_level`."""
    return range(previous_level + 1, new_level + 1)


def _lock_session(session: TrackerSession) -> TrackerSession:
    return TrackerSession.objects.select_for_update().get(pk=session.pk)


def _record_unlock(session: TrackerSession, level: int) -> bool:
    _, created = UnlockedLevel.objects.get_or_create(session=session, level=level)
    return created


def unlocked_levels(session: TrackerSession) -> set[int]:
    return set(UnlockedLevel.objects.filter(session=session).values_list("level", flat=True))


def list_unlockables(session: TrackerSession) -> QuerySet[Unlockable]:
    return Unlockable.objects.filter(session=session).order_by("level", "id")


def _rewarded_levels(session: TrackerSession, levels: Iterable[int]) -> set[int]:
    return set(
        Unlockable.objects.filter(session=session, level__in=list(levels)).values_list("level", flat=True)
    )


def unlock_level(session: TrackerSession, level: int) -> bool:
    """Record `level` as unlocked; returns False when it already was."""
    level = as_int(level, "Level")
    if level < 0:
        raise InvalidInput("Level must not be negative.")
    with store_errors("record unlocked level"):
        with transaction.atomic():
            locked = _lock_session(session)
            return _record_unlock(locked, level)


def complete_task(session: TrackerSession, task_id: int | str) -> CompletionResult:
    """Mark a task completed and award its XP in one transaction.

    Raises `TaskNotFound` for ids outside the session and `AlreadyCompleted`
    for a second completion; neither leaves any change behind.
    """
    try:
        task_pk = as_int(task_id, "Task")
    except InvalidInput as exc:
        raise TaskNotFound(f"Task {task_id!r} not found.") from exc

    with store_errors("complete task"):
        with transaction.atomic():
            locked = _lock_session(session)
            task = Task.objects.select_for_update().filter(session=locked, pk=task_pk).first()
            if task is None:
                raise TaskNotFound(f"Task {task_pk} not found.")
            if task.completed:
                raise AlreadyCompleted(f"Task {task.name!r} is already completed.")

            if locked.total_xp + task.xp > MAX_STORED_INT:
                raise InvalidInput(f"Completing {task.name!r} would push total XP past {MAX_STORED_INT}.")

            now = timezone.now()
            flipped = Task.objects.filter(pk=task.pk, completed=False).update(completed=True, completed_at=now)
            if not flipped:
                raise AlreadyCompleted(f"Task {task.name!r} is already completed.")
            TrackerSession.objects.filter(pk=locked.pk).update(
                total_xp=F("total_xp") + task.xp,
                updated_at=now,
            )
            locked.refresh_from_db(fields=["total_xp", "updated_at"])

            total_xp = locked.total_xp
            previous_total = total_xp - task.xp
            previous_level = level_for(previous_total)
            level = level_for(total_xp)
            gained = list(levels_between(previous_level, level))
            for crossed in gained:
                _record_unlock(locked, crossed)
            rewarded = _rewarded_levels(locked, gained) if gained else set()

    task.completed = True
    task.completed_at = now
    session.total_xp = total_xp
    session.updated_at = locked.updated_at

    newly_unlocked = [crossed for crossed in gained if crossed in rewarded]
    if gained:
        logger.info(
            "Session %s reached level %s (%s XP); unlocked rewards at %s",
            session.token,
            level,
            total_xp,
            newly_unlocked or "none",
        )
    return CompletionResult(
        task=task,
        xp_awarded=task.xp,
        previous_total=previous_total,
        total_xp=total_xp,
        previous_level=previous_level,
        level=level,
        levels_gained=gained,
        newly_unlocked=newly_unlocked,
    )


def register_unlockable(session: TrackerSession, level: int | str, description: str) -> Unlockable:
    """Store a reward; levels already reached are unlocked on the spot."""
    level = as_int(level, "Level")
    if level < 0:
        raise InvalidInput("Level must not be negative.")
    text = description.strip() if isinstance(description, str) else ""
    if not text:
        raise InvalidInput("Description must not be empty.")

    with store_errors("register unlockable"):
        with transaction.atomic():
            locked = _lock_session(session)
            if Unlockable.objects.filter(session=locked, level=level, description=text).exists():
                raise DuplicateUnlockable(f"Level {level} already unlocks {text!r}.")
            try:
                with transaction.atomic():
                    unlockable = Unlockable.objects.create(session=locked, level=level, description=text)
            except IntegrityError as exc:
                raise DuplicateUnlockable(f"Level {level} already unlocks {text!r}.") from exc
            retroactive = level <= locked.level and _record_unlock(locked, level)

    if retroactive:
        logger.info("Session %s unlocked level %s retroactively", session.token, level)
    return unlockable
