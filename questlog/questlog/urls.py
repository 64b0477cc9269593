"""URL configuration for questlog.

Everything lives in the tracker app; the Django admin surface is not
installed because sessions are addressed by token, not by account.
"""
from __future__ import annotations

from django.urls import include, path

urlpatterns = [
    path('', include(('tracker.urls', 'tracker'), namespace='tracker')),
]
