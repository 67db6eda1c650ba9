"""
Role model and resolution.

A role is never stored on the user. It is derived from table membership in a
fixed order:

    1. admins.user_id     -> AdminRole
    2. merchants.user_id  -> MerchantRole(merchant_id)
    3. otherwise          -> UserRole

The first match wins, so a user listed as both admin and merchant is an admin.
"""
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from coffee_discovery.core.errors import PersistenceFailure
from coffee_discovery.data.catalog_store import CatalogStore
from coffee_discovery.utils.logger import get_logger

logger = get_logger("auth.roles")


class RoleKind(str, Enum):
    ADMIN = "admin"
    MERCHANT = "merchant"
    USER = "user"


@dataclass(frozen=True)
class AdminRole:
    kind: ClassVar[RoleKind] = RoleKind.ADMIN


@dataclass(frozen=True)
class MerchantRole:
    merchant_id: str
    kind: ClassVar[RoleKind] = RoleKind.MERCHANT


@dataclass(frozen=True)
class UserRole:
    kind: ClassVar[RoleKind] = RoleKind.USER


Role = Union[AdminRole, MerchantRole, UserRole]


def resolve_role(store: CatalogStore, user_id: str) -> Role:
    """
    Resolve the role for an authenticated user.

    A failed lookup degrades to UserRole, the least privileged role.
    """
    try:
        if store.is_admin(user_id):
            return AdminRole()
        merchant = store.get_merchant_by_user(user_id)
        if merchant is not None and merchant.id:
            return MerchantRole(merchant_id=merchant.id)
    except PersistenceFailure as e:
        logger.error(f"Role lookup failed for user {user_id}, defaulting to user: {e}")
    return UserRole()
