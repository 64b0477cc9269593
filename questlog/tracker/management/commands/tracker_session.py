from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from tracker.exceptions import TrackerError
from tracker.services import sessions as session_service
from tracker.services import snapshot as snapshot_service


class Command(BaseCommand):
    help = "Show the progress summary for a session, or mint a new one."

    def add_arguments(self, parser) -> None:  # pragma: no cover - CLI wiring
        parser.add_argument("token", nargs="?", help="Session token to inspect (created if absent).")
        parser.add_argument("--create", action="store_true", help="Create a fresh session with a random token.")

    def handle(self, *args, **options) -> None:
        token = options.get("token")
        if not token and not options.get("create"):
            raise CommandError("Provide a session token or --create.")
        try:
            session = session_service.resolve_or_create(None if options.get("create") else token)
            state = snapshot_service.snapshot(session)
        except TrackerError as exc:
            raise CommandError(exc.message) from exc

        completed = sum(1 for task in state.tasks if task.completed)
        self.stdout.write(self.style.SUCCESS(f"Session {state.token}"))
        self.stdout.write(f"  total_xp: {state.total_xp}")
        self.stdout.write(f"  level: {state.level} ({state.progress}% towards level {state.level + 1})")
        self.stdout.write(f"  tasks: {len(state.tasks)} ({completed} completed)")
        self.stdout.write(f"  unlockables: {len(state.unlockables)}")
        unlocked = ", ".join(str(level) for level in sorted(state.unlocked)) or "none"
        self.stdout.write(f"  unlocked levels: {unlocked}")
