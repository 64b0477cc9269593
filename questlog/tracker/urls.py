from __future__ import annotations

from django.urls import path

from . import api, views

app_name = "tracker"

urlpatterns = [
    path("", views.start_session, name="start"),
    path("add-task/<slug:token>", views.add_task, name="add_task"),
    path("add-xp/<slug:token>", views.add_xp, name="add_xp"),
    path("add-unlockable/<slug:token>", views.add_unlockable, name="add_unlockable"),
    path("api/<slug:token>/state", api.api_session_state, name="api_session_state"),
    path("<slug:token>", views.session_page, name="session"),
]
