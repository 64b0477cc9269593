from __future__ import annotations

from django import forms

from tracker.models import Task
from tracker.services._store import MAX_STORED_INT


class TaskCreateForm(forms.Form):
    name = forms.CharField(max_length=Task._meta.get_field("name").max_length)
    xp = forms.IntegerField(
        label="XP",
        min_value=1,
        max_value=MAX_STORED_INT,
        help_text="Points awarded when the task is completed.",
    )


class TaskCompleteForm(forms.Form):
    task = forms.IntegerField(min_value=1, max_value=MAX_STORED_INT, widget=forms.HiddenInput)


class UnlockableCreateForm(forms.Form):
    level = forms.IntegerField(min_value=0, max_value=MAX_STORED_INT)
    description = forms.CharField(widget=forms.Textarea(attrs={"rows": 2}))


def error_summary(form: forms.Form) -> str:
    """Flatten form errors into one line suitable for a plain-text response."""
    parts: list[str] = []
    for field_name, errors in form.errors.items():
        label = field_name if field_name != "__all__" else "form"
        for message in errors:
            parts.append(f"{label}: {message}")
    return "; ".join(parts) or "Invalid input."
