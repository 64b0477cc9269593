"""Session tokens and the token → session lookup.

Tokens are short lowercase strings sampled at random, so collisions are
possible; `new_session()` retries on a taken token and grows the token by
one character whenever a whole round of attempts collides.
"""
from __future__ import annotations

import logging
import re
import secrets
import string

from django.conf import settings
from django.db import IntegrityError, transaction

from tracker.exceptions import InvalidInput, StoreFailure
from tracker.models import TrackerSession

from ._store import store_errors

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_lowercase
TOKEN_MAX_LENGTH = TrackerSession._meta.get_field("token").max_length
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
DEFAULT_TOKEN_LENGTH = 4


def token_length() -> int:
    length = getattr(settings, "TRACKER_TOKEN_LENGTH", DEFAULT_TOKEN_LENGTH)
    if length < 1:
        return DEFAULT_TOKEN_LENGTH
    return min(length, TOKEN_MAX_LENGTH)


def generate_token(length: int | None = None) -> str:
    size = length or token_length()
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(size))


def validate_token(token: str) -> str:
    if not isinstance(token, str) or not token or len(token) > TOKEN_MAX_LENGTH or not TOKEN_PATTERN.match(token):
        raise InvalidInput(
            f"Session tokens are 1-{TOKEN_MAX_LENGTH} letters, digits, dashes or underscores."
        )
    return token


def new_session() -> TrackerSession:
    """Create a session under a token nobody holds yet."""
    attempts = max(1, getattr(settings, "TRACKER_TOKEN_ATTEMPTS", 8))
    length = token_length()
    with store_errors("create session"):
        while True:
            for _ in range(attempts):
                token = generate_token(length)
                try:
                    with transaction.atomic():
                        session = TrackerSession.objects.create(token=token)
                except IntegrityError:
                    continue
                logger.info("Created session %s", token)
                return session
            if length >= TOKEN_MAX_LENGTH:
                raise StoreFailure("Could not allocate a session token.")
            length += 1
            logger.warning("Token space crowded after %s attempts; widening tokens to %s characters", attempts, length)


def resolve_or_create(token: str | None) -> TrackerSession:
    """Return the session for `token`, creating it on first access.

    A missing token mints a fresh session instead.
    """
    if not token:
        return new_session()
    token = validate_token(token)
    with store_errors("open session"):
        session, created = TrackerSession.objects.get_or_create(token=token)
    if created:
        logger.info("Created session %s on first access", token)
    return session


def find_session(token: str) -> TrackerSession | None:
    """Return the existing session for `token` without creating one."""
    token = validate_token(token)
    with store_errors("open session"):
        return TrackerSession.objects.filter(token=token).first()
