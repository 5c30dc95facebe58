# ordertrack/ordering/tracking.py
from __future__ import annotations

import secrets
import string

PREFIX = "TRK"
SUFFIX_LENGTH = 10
_ALPHABET = string.ascii_uppercase + string.digits


def new_tracking_number() -> str:
    # 36**10 combinations; collisions are still caught by the unique constraint
    return PREFIX + "".join(secrets.choice(_ALPHABET) for _ in range(SUFFIX_LENGTH))
