from __future__ import annotations

from typing import Any, Iterable

from django import template

from tracker.services import leveling as leveling_service

register = template.Library()


@register.filter(name="is_unlocked")
def is_unlocked(unlocked: Iterable[int] | None, level: Any) -> bool:
    if not unlocked:
        return False
    try:
        return int(level) in unlocked
    except (TypeError, ValueError):
        return False


@register.filter(name="xp_for_level")
def xp_for_level(level: Any) -> int:
    try:
        return leveling_service.xp_for_level(int(level))
    except (TypeError, ValueError):
        return 0
