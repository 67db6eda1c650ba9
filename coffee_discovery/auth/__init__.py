"""
Authentication and roles.

A user's role is admin, merchant or plain user, resolved from the admins and
merchants tables each time they authenticate.
"""
from coffee_discovery.auth.roles import AdminRole, MerchantRole, Role, RoleKind, UserRole, resolve_role
from coffee_discovery.auth.session import AuthSession, AuthSnapshot, AuthState

__all__ = [
    "AdminRole",
    "MerchantRole",
    "UserRole",
    "Role",
    "RoleKind",
    "resolve_role",
    "AuthSession",
    "AuthSnapshot",
    "AuthState",
]
