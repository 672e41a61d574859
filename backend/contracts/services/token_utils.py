"""
Token and deadline helpers used across the invite services.

Pure functions with no model imports, so they can be used anywhere
without circular imports.
"""

import secrets
from datetime import timedelta
from django.utils import timezone


def generate_secure_token(length=32):
    """
    Generate a cryptographically secure, URL-safe invite token.

    Args:
        length: int, number of random bytes (default 32, ~43 chars)

    Returns:
        str: URL-safe token string
    """
    return secrets.token_urlsafe(length)


def calculate_expiry(days=None, now=None):
    """
    Calculate an invite deadline from a day offset.

    Args:
        days: int or None. None or 0 means the invite never expires.
        now: datetime to count from (defaults to timezone.now())

    Returns:
        datetime or None
    """
    if days is None or days <= 0:
        return None
    return (now or timezone.now()) + timedelta(days=days)


def is_deadline_passed(deadline, now=None):
    """
    True when `deadline` is set and lies strictly before `now`.

    A deadline of None never passes.
    """
    if deadline is None:
        return False
    return (now or timezone.now()) > deadline
