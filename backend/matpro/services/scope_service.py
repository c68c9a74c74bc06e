"""
Access scope: which stores a caller may read and write.

WHY: Row filtering is expressed as an explicit object handed to every
service call instead of ambient role checks, so tests can inject any scope.

OWNER        -> every store, may perform privileged operations
STORE_MANAGER -> only its own store_id
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import AccessDeniedError
from ..models.auth import ROLE_OWNER, ROLE_STORE_MANAGER


@dataclass(frozen=True)
class AccessScope:
    user_id: str | None
    role: str
    store_id: str | None = None

    @classmethod
    def for_user(cls, user) -> "AccessScope":
        return cls(user_id=user.id, role=user.role, store_id=user.store_id)

    @classmethod
    def owner(cls, user_id: str | None = None) -> "AccessScope":
        return cls(user_id=user_id, role=ROLE_OWNER)

    @classmethod
    def store_manager(cls, store_id: str, user_id: str | None = None) -> "AccessScope":
        return cls(user_id=user_id, role=ROLE_STORE_MANAGER, store_id=store_id)

    @property
    def is_unrestricted(self) -> bool:
        return self.role == ROLE_OWNER

    def allows_store(self, store_id: str | None) -> bool:
        if self.is_unrestricted:
            return True
        return store_id is not None and store_id == self.store_id

    def require_store(self, store_id: str | None) -> None:
        if not self.allows_store(store_id):
            raise AccessDeniedError("Access denied to this store")

    def require_owner(self, action: str = "This action") -> None:
        if not self.is_unrestricted:
            raise AccessDeniedError(f"{action} requires owner access")

    def filter_by_store(self, query, column):
        """Restrict a query on a store_id column to the scope."""
        if self.is_unrestricted:
            return query
        return query.filter(column == self.store_id)
