from __future__ import annotations

from django.conf import settings
from django.http import HttpRequest

from tracker.models import XP_PER_LEVEL


def tracker_meta(request: HttpRequest) -> dict[str, object]:
    return {
        "xp_per_level": XP_PER_LEVEL,
        "htmx_script_url": getattr(settings, "HTMX_SCRIPT_URL", ""),
    }
