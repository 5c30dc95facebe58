# ordertrack/directory.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConflictError, InvalidInputError, NotFoundError
from .records import PublicUser, Role
from .repositories import EMAIL_IN_USE, UserRepository
from .validation import is_present, is_valid_email

logger = logging.getLogger(__name__)


def parse_role(raw: Any) -> Role:
    if not is_present(raw):
        raise InvalidInputError("Role is required")
    try:
        return Role(raw)
    except ValueError:
        valid = ", ".join(r.value for r in Role)
        raise InvalidInputError(f"Invalid role. Must be one of: {valid}") from None


class UserDirectory:
    def __init__(self, users: UserRepository):
        self.users = users

    def get_user_by_id(self, user_id: int) -> Optional[PublicUser]:
        return self.users.get(user_id)

    def get_all_users(self, limit: int = 10, offset: int = 0) -> Tuple[List[PublicUser], int]:
        return self.users.list(limit, offset)

    def get_users_by_role(self, role: Any) -> List[PublicUser]:
        return self.users.list_by_role(parse_role(role))

    def search_users(self, query: Any) -> List[PublicUser]:
        if not is_present(query):
            raise InvalidInputError("Search query is required")
        return self.users.search(query.strip())

    def update_user(
        self,
        user_id: int,
        name: Optional[str] = None,
        email: Optional[str] = None,
        role: Any = None,
    ) -> PublicUser:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User")

        changes: Dict[str, Any] = {}
        if name is not None:
            if not is_present(name):
                raise InvalidInputError("Name cannot be empty")
            changes["name"] = name.strip()

        if email is not None and email != user.email:
            if not is_valid_email(email):
                raise InvalidInputError("Invalid email format")
            if self.users.get_by_email(email):
                raise ConflictError(EMAIL_IN_USE)
            changes["email"] = email

        if role is not None:
            changes["role"] = parse_role(role)

        if not changes:
            return user

        updated = self.users.update(user_id, changes)
        if updated is None:
            raise NotFoundError("User")
        logger.info(f"User {user_id} updated: {sorted(changes)}")
        return updated

    def delete_user(self, user_id: int) -> None:
        if not self.users.delete(user_id):
            raise NotFoundError("User")
