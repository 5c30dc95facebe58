# ordertrack/validation.py
from __future__ import annotations

import re
from typing import Any

from email_validator import EmailNotValidError, validate_email


PASSWORD_SYMBOLS = "@$!%*?&"

_PASSWORD_RE = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
)

PASSWORD_RULE = (
    "Password must be at least 8 characters with uppercase, lowercase, number, and special character"
)


def is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def is_valid_email(email: str) -> bool:
    if not isinstance(email, str) or not email or any(c.isspace() for c in email):
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_valid_password(password: str) -> bool:
    return isinstance(password, str) and bool(_PASSWORD_RE.match(password))
