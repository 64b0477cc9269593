from __future__ import annotations

import threading

from django.db import connection
from django.test import SimpleTestCase, TestCase, TransactionTestCase

from tracker.exceptions import AlreadyCompleted, DuplicateUnlockable, InvalidInput, TaskNotFound
from tracker.models import Task, TrackerSession, Unlockable, UnlockedLevel
from tracker.services import leveling as leveling_service
from tracker.services import tasks as task_service


class LevelDerivationTests(SimpleTestCase):
    def test_level_is_floor_of_thousands(self) -> None:
        self.assertEqual(leveling_service.level_for(0), 0)
        self.assertEqual(leveling_service.level_for(999), 0)
        self.assertEqual(leveling_service.level_for(1000), 1)
        self.assertEqual(leveling_service.level_for(2999), 2)

    def test_progress_never_reaches_one_hundred(self) -> None:
        self.assertEqual(leveling_service.progress_percentage(0), 0)
        self.assertEqual(leveling_service.progress_percentage(950), 95)
        self.assertEqual(leveling_service.progress_percentage(999), 99)
        self.assertEqual(leveling_service.progress_percentage(1000), 0)
        self.assertEqual(leveling_service.progress_percentage(1050), 5)
        for total in range(0, 5000, 7):
            with self.subTest(total=total):
                self.assertIn(leveling_service.progress_percentage(total), range(0, 100))

    def test_levels_between_covers_half_open_interval(self) -> None:
        self.assertEqual(list(leveling_service.levels_between(0, 0)), [])
        self.assertEqual(list(leveling_service.levels_between(0, 1)), [1])
        self.assertEqual(list(leveling_service.levels_between(1, 4)), [2, 3, 4])

    def test_session_properties_are_derived(self) -> None:
        session = TrackerSession(token="abcd", total_xp=2345)
        self.assertEqual(session.level, 2)
        self.assertEqual(session.progress_percentage, 34)


class CompleteTaskTests(TestCase):
    def setUp(self) -> None:
        self.session = TrackerSession.objects.create(token="abcd")

    def _task(self, name: str = "Clean desk", xp: int = 100) -> Task:
        return task_service.create_task(self.session, name, xp)

    def test_completion_awards_task_xp_once(self) -> None:
        task = self._task(xp=250)
        result = leveling_service.complete_task(self.session, task.pk)
        self.assertEqual(result.xp_awarded, 250)
        self.assertEqual(result.total_xp, 250)
        self.session.refresh_from_db()
        self.assertEqual(self.session.total_xp, 250)
        task.refresh_from_db()
        self.assertTrue(task.completed)
        self.assertIsNotNone(task.completed_at)

    def test_second_completion_is_rejected_without_changes(self) -> None:
        task = self._task(xp=250)
        leveling_service.complete_task(self.session, task.pk)
        with self.assertRaises(AlreadyCompleted):
            leveling_service.complete_task(self.session, task.pk)
        self.session.refresh_from_db()
        self.assertEqual(self.session.total_xp, 250)

    def test_unknown_task_is_rejected(self) -> None:
        with self.assertRaises(TaskNotFound):
            leveling_service.complete_task(self.session, 9999)
        with self.assertRaises(TaskNotFound):
            leveling_service.complete_task(self.session, "not-a-number")
        self.session.refresh_from_db()
        self.assertEqual(self.session.total_xp, 0)

    def test_tasks_from_other_sessions_are_not_visible(self) -> None:
        other = TrackerSession.objects.create(token="wxyz")
        foreign = task_service.create_task(other, "Walk dog", 300)
        with self.assertRaises(TaskNotFound):
            leveling_service.complete_task(self.session, foreign.pk)
        foreign.refresh_from_db()
        self.assertFalse(foreign.completed)

    def test_crossing_a_threshold_unlocks_the_level(self) -> None:
        TrackerSession.objects.filter(pk=self.session.pk).update(total_xp=950)
        self.session.refresh_from_db()
        leveling_service.register_unlockable(self.session, 1, "Movie night")
        self.assertEqual(leveling_service.unlocked_levels(self.session), set())

        task = self._task(xp=100)
        result = leveling_service.complete_task(self.session, task.pk)

        self.assertEqual(result.previous_level, 0)
        self.assertEqual(result.total_xp, 1050)
        self.assertEqual(result.level, 1)
        self.assertTrue(result.leveled_up)
        self.assertEqual(result.levels_gained, [1])
        self.assertEqual(result.newly_unlocked, [1])
        self.assertEqual(leveling_service.progress_percentage(result.total_xp), 5)
        self.assertEqual(self.session.total_xp, 1050)
        self.assertEqual(leveling_service.unlocked_levels(self.session), {1})

    def test_levels_without_rewards_are_still_recorded(self) -> None:
        task = self._task(xp=2500)
        result = leveling_service.complete_task(self.session, task.pk)
        self.assertEqual(result.levels_gained, [1, 2])
        self.assertEqual(result.newly_unlocked, [])
        self.assertEqual(leveling_service.unlocked_levels(self.session), {1, 2})

    def test_level_up_is_logged(self) -> None:
        task = self._task(xp=1000)
        with self.assertLogs("tracker.services.leveling", level="INFO") as captured:
            leveling_service.complete_task(self.session, task.pk)
        self.assertIn("reached level 1", captured.output[0])

    def test_stale_session_handles_do_not_lose_updates(self) -> None:
        first = self._task("Laundry", 300)
        second = self._task("Taxes", 800)
        stale_a = TrackerSession.objects.get(pk=self.session.pk)
        stale_b = TrackerSession.objects.get(pk=self.session.pk)

        leveling_service.complete_task(stale_a, first.pk)
        result = leveling_service.complete_task(stale_b, second.pk)

        self.assertEqual(result.previous_total, 300)
        self.assertEqual(result.total_xp, 1100)
        self.session.refresh_from_db()
        self.assertEqual(self.session.total_xp, 1100)
        self.assertEqual(self.session.level, 1)
        self.assertIn(1, leveling_service.unlocked_levels(self.session))

    def test_unlocked_set_only_grows(self) -> None:
        seen: set[int] = set()
        for xp in (400, 700, 1200, 50, 3000):
            task = self._task(f"Chore {xp}", xp)
            leveling_service.complete_task(self.session, task.pk)
            current = leveling_service.unlocked_levels(self.session)
            self.assertTrue(seen.issubset(current))
            self.session.refresh_from_db()
            self.assertEqual(self.session.level, self.session.total_xp // 1000)
            seen = current
        self.assertEqual(seen, {1, 2, 3, 4, 5})

    def test_completion_past_the_xp_ceiling_is_rejected(self) -> None:
        TrackerSession.objects.filter(pk=self.session.pk).update(total_xp=2147483000)
        task = self._task(xp=1000)
        with self.assertRaises(InvalidInput):
            leveling_service.complete_task(self.session, task.pk)
        self.session.refresh_from_db()
        self.assertEqual(self.session.total_xp, 2147483000)
        task.refresh_from_db()
        self.assertFalse(task.completed)


class RegisterUnlockableTests(TestCase):
    def setUp(self) -> None:
        self.session = TrackerSession.objects.create(token="abcd", total_xp=2500)

    def test_reached_level_unlocks_retroactively(self) -> None:
        unlockable = leveling_service.register_unlockable(self.session, 2, "New headphones")
        self.assertEqual(unlockable.level, 2)
        self.assertEqual(leveling_service.unlocked_levels(self.session), {2})

    def test_future_level_stays_locked(self) -> None:
        leveling_service.register_unlockable(self.session, 3, "Weekend trip")
        self.assertEqual(leveling_service.unlocked_levels(self.session), set())

    def test_level_zero_unlocks_immediately(self) -> None:
        fresh = TrackerSession.objects.create(token="zero")
        leveling_service.register_unlockable(fresh, 0, "Starter badge")
        self.assertEqual(leveling_service.unlocked_levels(fresh), {0})

    def test_negative_level_is_rejected(self) -> None:
        with self.assertRaises(InvalidInput):
            leveling_service.register_unlockable(self.session, -1, "x")
        self.assertFalse(Unlockable.objects.exists())

    def test_blank_description_is_rejected(self) -> None:
        with self.assertRaises(InvalidInput):
            leveling_service.register_unlockable(self.session, 1, "   ")

    def test_non_numeric_level_is_rejected(self) -> None:
        for level in ("", "two", "1.5", True, str(10**20)):
            with self.subTest(level=level):
                with self.assertRaises(InvalidInput):
                    leveling_service.register_unlockable(self.session, level, "Cake")

    def test_duplicate_is_rejected(self) -> None:
        leveling_service.register_unlockable(self.session, 4, "Cake")
        with self.assertRaises(DuplicateUnlockable):
            leveling_service.register_unlockable(self.session, 4, " Cake ")
        self.assertEqual(Unlockable.objects.filter(session=self.session).count(), 1)

    def test_same_reward_allowed_in_other_sessions(self) -> None:
        other = TrackerSession.objects.create(token="wxyz")
        leveling_service.register_unlockable(self.session, 4, "Cake")
        leveling_service.register_unlockable(other, 4, "Cake")
        self.assertEqual(Unlockable.objects.filter(level=4, description="Cake").count(), 2)

    def test_already_unlocked_level_is_idempotent(self) -> None:
        leveling_service.register_unlockable(self.session, 1, "Cake")
        leveling_service.register_unlockable(self.session, 1, "Pie")
        self.assertEqual(UnlockedLevel.objects.filter(session=self.session, level=1).count(), 1)

    def test_unlockables_listed_by_level(self) -> None:
        leveling_service.register_unlockable(self.session, 5, "Bike")
        leveling_service.register_unlockable(self.session, 1, "Cake")
        levels = [item.level for item in leveling_service.list_unlockables(self.session)]
        self.assertEqual(levels, [1, 5])

    def test_unlock_level_reports_creation(self) -> None:
        self.assertTrue(leveling_service.unlock_level(self.session, 7))
        self.assertFalse(leveling_service.unlock_level(self.session, 7))
        with self.assertRaises(InvalidInput):
            leveling_service.unlock_level(self.session, -3)


class ConcurrentCompletionTests(TransactionTestCase):
    ROUNDS = 10

    def _race(self, token: str) -> tuple[TrackerSession, list[Exception]]:
        session = TrackerSession.objects.create(token=token)
        tasks = [
            Task.objects.create(session=session, name="Laundry", xp=300),
            Task.objects.create(session=session, name="Taxes", xp=800),
        ]
        barrier = threading.Barrier(len(tasks))
        errors: list[Exception] = []

        def worker(task_id: int) -> None:
            try:
                handle = TrackerSession.objects.get(pk=session.pk)
                barrier.wait()
                leveling_service.complete_task(handle, task_id)
            except Exception as exc:  # noqa: BLE001 - surfaced through the assertion below
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(task.pk,)) for task in tasks]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        session.refresh_from_db()
        return session, errors

    def test_parallel_completions_are_serialised(self) -> None:
        for round_number in range(self.ROUNDS):
            with self.subTest(round=round_number):
                session, errors = self._race(f"race{round_number}")
                self.assertEqual(errors, [])
                self.assertEqual(session.total_xp, 1100)
                self.assertEqual(session.level, 1)
                self.assertEqual(leveling_service.unlocked_levels(session), {1})
