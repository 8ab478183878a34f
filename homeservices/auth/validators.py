"""Input validation for registration and login payloads."""

from __future__ import annotations

import re

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# 07X XXXXXXX, 9627X XXXXXXX or +9627X XXXXXXX with X in {7, 8, 9} for the operator.
JORDAN_PHONE_RE = re.compile(r"^(\+?962|0)?7[789][0-9]{7}$")
_UNSAFE_CHARS_RE = re.compile(r"[<>\"/\\&]")

PASSWORD_MIN_LENGTH = 8


def validate_email(email: str) -> bool:
    return bool(EMAIL_RE.match((email or "").strip()))


def validate_jordanian_phone(phone: str) -> bool:
    return bool(JORDAN_PHONE_RE.match(re.sub(r"\s", "", phone or "")))


def password_problem(password: str) -> str | None:
    """Return the localized reason a password is too weak, or ``None``."""
    if len(password) < PASSWORD_MIN_LENGTH:
        return "كلمة المرور يجب أن تكون 8 أحرف على الأقل"
    if not re.search(r"[a-zA-Z]", password):
        return "كلمة المرور يجب أن تحتوي على أحرف"
    if not re.search(r"[0-9]", password):
        return "كلمة المرور يجب أن تحتوي على أرقام"
    return None


def sanitize_input(value: str) -> str:
    """Trim and strip characters that could break out of HTML contexts."""
    return _UNSAFE_CHARS_RE.sub("", (value or "").strip())


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()
