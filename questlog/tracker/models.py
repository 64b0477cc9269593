"""Data models for the XP tracker."""
from __future__ import annotations

from django.db import models

XP_PER_LEVEL = 1000


class TrackerSession(models.Model):
    """An isolated progress namespace addressed by a short token."""

    token = models.CharField(max_length=32, unique=True)
    total_xp = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:  # pragma: no cover
        return self.token

    @property
    def level(self) -> int:
        return self.total_xp // XP_PER_LEVEL

    @property
    def progress_percentage(self) -> int:
        from tracker.services.leveling import progress_percentage

        return progress_percentage(self.total_xp)


class Task(models.Model):
    """A named chore worth a fixed amount of XP, completed at most once."""

    session = models.ForeignKey(TrackerSession, on_delete=models.CASCADE, related_name="tasks")
    name = models.CharField(max_length=255)
    xp = models.PositiveIntegerField()
    completed = models.BooleanField(default=False, db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(condition=models.Q(xp__gt=0), name="tracker_task_xp_positive"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} (+{self.xp} XP)"


class Unlockable(models.Model):
    """Reward description gated behind a minimum level."""

    session = models.ForeignKey(TrackerSession, on_delete=models.CASCADE, related_name="unlockables")
    level = models.PositiveIntegerField(db_index=True)
    description = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("session", "level", "description")
        ordering = ["level", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"L{self.level}: {self.description}"


class UnlockedLevel(models.Model):
    """Append-only record of levels a session has reached."""

    session = models.ForeignKey(TrackerSession, on_delete=models.CASCADE, related_name="unlocked_levels")
    level = models.PositiveIntegerField()
    unlocked_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("session", "level")
        ordering = ["level"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.session.token} :: level {self.level}"
