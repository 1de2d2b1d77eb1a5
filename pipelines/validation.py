"""
pipelines/validation.py

Form validation rules shared by the signup, login and reset flows.

Each check raises pipelines.errors.ValidationError with the message shown
to the user; callers evaluate them in order so the first failure wins.
"""

from __future__ import annotations

import re

from pipelines.errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6

# (predicate, message) in evaluation order
_PASSWORD_RULES = (
    (lambda p: len(p) >= MIN_PASSWORD_LENGTH, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"),
    (lambda p: re.search(r"[a-z]", p) is not None, "Password must contain at least one lowercase letter"),
    (lambda p: re.search(r"[A-Z]", p) is not None, "Password must contain at least one uppercase letter"),
    (lambda p: re.search(r"\d", p) is not None, "Password must contain at least one number"),
)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match((email or "").strip()))


def password_problem(password: str) -> str | None:
    """Return the message for the first unmet password rule, or ``None``."""
    for ok, message in _PASSWORD_RULES:
        if not ok(password or ""):
            return message
    return None


def require_name(name: str) -> None:
    if len((name or "").strip()) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters long")


def require_email(email: str) -> None:
    if not is_valid_email(email):
        raise ValidationError("Please enter a valid email address")


def require_password_present(password: str) -> None:
    if not password:
        raise ValidationError("Please enter your password")


def require_strong_password(password: str) -> None:
    problem = password_problem(password)
    if problem:
        raise ValidationError(problem)


def require_matching(password: str, confirm_password: str) -> None:
    if password != confirm_password:
        raise ValidationError("Passwords do not match")
