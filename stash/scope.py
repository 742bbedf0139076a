"""
Ownership resolution: which inventory does a signed-in user act within?

A user's scope is the owner id of their oldest membership, or their own id when
they are not a member of anyone else's inventory. Results are memoized in a
ScopeCache that the request carries explicitly; whoever changes membership
state for a user must call ScopeCache.invalidate() for that user.
"""

import logging
from dataclasses import dataclass

from django.core.cache import cache as default_cache

from .constants import SCOPE_CACHE_KEY
from .exceptions import Forbidden, Unauthenticated
from .models import InventoryMember, MemberRole
from .utils import get_effective_config

logger = logging.getLogger(__name__)

OWNER_ROLE = "owner"


@dataclass(frozen=True)
class ScopeAccess:
    user_id: int
    owner_id: int
    role: str

    @property
    def is_own(self) -> bool:
        return self.owner_id == self.user_id

    @property
    def can_edit(self) -> bool:
        return self.role != MemberRole.VIEWER

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "owner_id": self.owner_id,
            "role": self.role,
            "is_own": self.is_own,
            "can_edit": self.can_edit,
        }


class ScopeCache:
    """Per-user memo of ScopeAccess over a Django cache backend."""

    def __init__(self, backend=None, ttl: int | None = None):
        self.backend = backend if backend is not None else default_cache
        self.ttl = ttl

    @staticmethod
    def key(user_id) -> str:
        return SCOPE_CACHE_KEY.format(user_id=user_id)

    def get(self, user_id) -> ScopeAccess | None:
        raw = self.backend.get(self.key(user_id))
        if not raw:
            return None
        return ScopeAccess(user_id=raw["user_id"], owner_id=raw["owner_id"], role=raw["role"])

    def set(self, access: ScopeAccess) -> None:
        ttl = self.ttl if self.ttl is not None else get_effective_config().scope_cache_ttl
        self.backend.set(
            self.key(access.user_id),
            {"user_id": access.user_id, "owner_id": access.owner_id, "role": access.role},
            ttl,
        )

    def invalidate(self, user_id) -> None:
        self.backend.delete(self.key(user_id))


def _lookup_access(user) -> ScopeAccess:
    membership = (
        InventoryMember.objects
        .filter(member_id=user.pk)
        .order_by("created_at", "id")
        .values("owner_id", "role")
        .first()
    )
    if membership is None:
        return ScopeAccess(user_id=user.pk, owner_id=user.pk, role=OWNER_ROLE)

    return ScopeAccess(
        user_id=user.pk,
        owner_id=membership["owner_id"],
        role=MemberRole.normalize(membership["role"]).value,
    )


def resolve_access(user, scope_cache: ScopeCache | None = None) -> ScopeAccess:
    """Resolve (and memoize) the scope and role for `user`."""
    if user is None or not getattr(user, "is_authenticated", False):
        raise Unauthenticated("Not logged in.")

    if scope_cache is not None:
        cached = scope_cache.get(user.pk)
        if cached is not None:
            return cached

    access = _lookup_access(user)
    logger.debug(f"Resolved scope for user {user.pk}: owner={access.owner_id} role={access.role}")

    if scope_cache is not None:
        scope_cache.set(access)

    return access


def resolve_scope(user, scope_cache: ScopeCache | None = None) -> int:
    """Owner id whose catalog `user` reads and writes."""
    return resolve_access(user, scope_cache).owner_id


def require_editor(access: ScopeAccess) -> None:
    if not access.can_edit:
        raise Forbidden("You have view-only access to this inventory.")
