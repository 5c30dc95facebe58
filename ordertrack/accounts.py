# ordertrack/accounts.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List

from .auth import burn_verification, create_token, decode_token, hash_password, verify_password
from .config import Settings
from .errors import ConflictError, EmailAlreadyRegisteredError, InvalidInputError, NotFoundError, UnauthorizedError
from .records import Claims, PublicUser, Role
from .repositories import UserRepository
from .validation import PASSWORD_RULE, is_present, is_valid_email, is_valid_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


@dataclass(frozen=True)
class AuthResult:
    user: PublicUser
    token: str
    expires_in: str


def _require_valid(errors: List[str]) -> None:
    if errors:
        raise InvalidInputError("Validation failed!", errors)


class AccountService:
    """Registration, login and token verification."""

    def __init__(self, users: UserRepository, settings: Settings):
        self.users = users
        self.settings = settings

    def _issue(self, user: PublicUser) -> AuthResult:
        return AuthResult(
            user=user,
            token=create_token(user.id, user.role, self.settings),
            expires_in=self.settings.expires_in,
        )

    def register(self, name: Any, email: Any, password: Any) -> AuthResult:
        errors: List[str] = []
        if not is_present(name):
            errors.append("Name is required")
        if not is_present(email):
            errors.append("Email is required")
        elif not is_valid_email(email):
            errors.append("Invalid email format")
        if not is_present(password):
            errors.append("Password is required")
        elif not is_valid_password(password):
            errors.append(PASSWORD_RULE)
        _require_valid(errors)

        if self.users.get_by_email(email):
            raise EmailAlreadyRegisteredError()

        try:
            # role is never taken from the caller
            user = self.users.add(name=name.strip(), email=email, password_hash=hash_password(password), role=Role.CUSTOMER)
        except ConflictError:
            # lost a race with a concurrent registration
            raise EmailAlreadyRegisteredError() from None

        logger.info(f"Registered user {user.id}")
        return self._issue(user)

    def login(self, email: Any, password: Any) -> AuthResult:
        errors: List[str] = []
        if not is_present(email):
            errors.append("Email is required")
        elif not is_valid_email(email):
            errors.append("Invalid email format")
        if not is_present(password):
            errors.append("Password is required")
        _require_valid(errors)

        creds = self.users.get_credentials(email)
        if not creds:
            burn_verification(password)
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not verify_password(password, creds.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS)

        user = self.users.get(creds.user_id)
        if not user:
            raise UnauthorizedError(INVALID_CREDENTIALS)
        return self._issue(user)

    def verify(self, token: str) -> Claims | None:
        return decode_token(token, self.settings)

    def me(self, claims: Claims) -> PublicUser:
        user = self.users.get(claims.user_id)
        if not user:
            raise NotFoundError("User")
        return user
