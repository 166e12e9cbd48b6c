"""
utils/email_validator_lite.py
─────────────────────────────
Lightweight syntax check applied to subscription requests before any
confirmation email is sent. Mailbox and MX checks are left to the provider,
which reports bounces through its own event stream.
"""

import re

_EMAIL_REGEX = re.compile(
    r'^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$'
)


def normalize_email(email: str) -> str:
    return email.strip().lower() if email else ""


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_REGEX.match(normalize_email(email)))
