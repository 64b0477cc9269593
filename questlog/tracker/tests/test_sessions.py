from __future__ import annotations

from unittest.mock import patch

from django.test import SimpleTestCase, TestCase, override_settings

from tracker.exceptions import InvalidInput
from tracker.models import TrackerSession
from tracker.services import sessions as session_service


class TokenTests(SimpleTestCase):
    def test_default_token_is_four_lowercase_letters(self) -> None:
        token = session_service.generate_token()
        self.assertEqual(len(token), 4)
        self.assertTrue(token.isalpha())
        self.assertTrue(token.islower())

    @override_settings(TRACKER_TOKEN_LENGTH=10)
    def test_length_follows_settings(self) -> None:
        self.assertEqual(len(session_service.generate_token()), 10)

    @override_settings(TRACKER_TOKEN_LENGTH=0)
    def test_unusable_length_falls_back_to_default(self) -> None:
        self.assertEqual(session_service.token_length(), 4)

    def test_validate_token(self) -> None:
        self.assertEqual(session_service.validate_token("abcd"), "abcd")
        self.assertEqual(session_service.validate_token("My-Session_2"), "My-Session_2")
        for bad in ("", "a" * 33, "with space", "dots.are.out", "naïve"):
            with self.subTest(token=bad):
                with self.assertRaises(InvalidInput):
                    session_service.validate_token(bad)


class ResolveOrCreateTests(TestCase):
    def test_first_access_creates_empty_session(self) -> None:
        session = session_service.resolve_or_create("abcd")
        self.assertEqual(session.token, "abcd")
        self.assertEqual(session.total_xp, 0)
        self.assertEqual(session.level, 0)

    def test_repeat_access_returns_same_session(self) -> None:
        first = session_service.resolve_or_create("abcd")
        second = session_service.resolve_or_create("abcd")
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(TrackerSession.objects.count(), 1)

    def test_missing_token_mints_a_new_session(self) -> None:
        session = session_service.resolve_or_create(None)
        self.assertEqual(len(session.token), 4)
        self.assertTrue(TrackerSession.objects.filter(token=session.token).exists())

    def test_invalid_token_is_rejected(self) -> None:
        with self.assertRaises(InvalidInput):
            session_service.resolve_or_create("not valid!")
        self.assertFalse(TrackerSession.objects.exists())

    def test_find_session_never_creates(self) -> None:
        self.assertIsNone(session_service.find_session("abcd"))
        self.assertFalse(TrackerSession.objects.exists())
        created = session_service.resolve_or_create("abcd")
        self.assertEqual(session_service.find_session("abcd"), created)
        with self.assertRaises(InvalidInput):
            session_service.find_session("not valid!")


class NewSessionTests(TestCase):
    def test_taken_tokens_are_retried(self) -> None:
        TrackerSession.objects.create(token="aaaa")
        with patch.object(session_service, "generate_token", side_effect=["aaaa", "aaaa", "bbbb"]):
            session = session_service.new_session()
        self.assertEqual(session.token, "bbbb")

    @override_settings(TRACKER_TOKEN_ATTEMPTS=2)
    def test_crowded_token_space_widens_tokens(self) -> None:
        TrackerSession.objects.create(token="aaaa")

        def fake_token(length: int | None = None) -> str:
            return "a" * (length or 4)

        with patch.object(session_service, "generate_token", side_effect=fake_token):
            with self.assertLogs("tracker.services.sessions", level="WARNING"):
                session = session_service.new_session()
        self.assertEqual(session.token, "aaaaa")
