"""Errors raised by the tracker services.

Every class carries the HTTP status the middleware answers with, so the
views never translate errors themselves.
"""
from __future__ import annotations


class TrackerError(Exception):
    status_code = 400
    default_message = "Request rejected."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(TrackerError):
    default_message = "Invalid input."


class DuplicateUnlockable(InvalidInput):
    default_message = "That unlockable already exists for this level."


class TaskNotFound(TrackerError):
    default_message = "Task not found."


class AlreadyCompleted(TrackerError):
    default_message = "Task already completed."


class StoreFailure(TrackerError):
    status_code = 500
    default_message = "Storage failure."
