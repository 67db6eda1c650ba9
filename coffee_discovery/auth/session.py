"""
Authenticated session and role provider.

An AuthSession is created explicitly, started (which subscribes it to the
auth client's state changes) and closed (which unsubscribes it). Identity,
tokens and role are held together in one immutable AuthSnapshot that is
swapped as a whole, so sign-out can never leave a stale role behind.

    UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED(role)
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from coffee_discovery.auth.roles import Role, RoleKind, resolve_role
from coffee_discovery.core.errors import AuthenticationError, PermissionDenied
from coffee_discovery.data.catalog_store import CatalogStore
from coffee_discovery.utils.logger import get_logger
from coffee_discovery.utils.supabase_auth import (
    AuthEvent,
    AuthTokens,
    AuthUser,
    Subscription,
    SupabaseAuth,
)
from coffee_discovery.utils.supabase_client import SupabaseError

logger = get_logger("auth.session")


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class AuthSnapshot:
    state: AuthState = AuthState.UNAUTHENTICATED
    user: Optional[AuthUser] = None
    tokens: Optional[AuthTokens] = None
    role: Optional[Role] = None


SIGNED_OUT = AuthSnapshot()


class AuthSession:
    """Tracks the signed-in identity and its cached role for one client."""

    def __init__(self, auth: SupabaseAuth, store: CatalogStore):
        self.auth = auth
        self.store = store
        self._snapshot = SIGNED_OUT
        self._subscription: Optional[Subscription] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, refresh_token: Optional[str] = None) -> "AuthSession":
        """Subscribe to auth-state changes and optionally restore a stored session."""
        if self._subscription is None:
            self._subscription = self.auth.on_auth_state_change(self._on_auth_event)
        if refresh_token:
            self.restore(refresh_token)
        return self

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def __enter__(self) -> "AuthSession":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Current identity
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> AuthSnapshot:
        return self._snapshot

    @property
    def state(self) -> AuthState:
        return self._snapshot.state

    @property
    def user(self) -> Optional[AuthUser]:
        return self._snapshot.user

    @property
    def role(self) -> Optional[Role]:
        return self._snapshot.role

    @property
    def is_authenticated(self) -> bool:
        return self._snapshot.state == AuthState.AUTHENTICATED

    def require_role(self, *kinds: RoleKind) -> Role:
        """
        Return the current role if it is one of kinds (any role when none given).

        Raises:
            AuthenticationError: nobody is signed in.
            PermissionDenied: the role does not match.
        """
        snapshot = self._snapshot
        if snapshot.state != AuthState.AUTHENTICATED or snapshot.role is None:
            raise AuthenticationError("Sign in required")
        if kinds and snapshot.role.kind not in kinds:
            raise PermissionDenied(f"Requires role {' or '.join(k.value for k in kinds)}")
        return snapshot.role

    def user_store(self) -> CatalogStore:
        """Catalog store acting with the signed-in user's token."""
        tokens = self._snapshot.tokens
        if tokens is None:
            raise AuthenticationError("Sign in required")
        return self.store.for_access_token(tokens.access_token)

    # ------------------------------------------------------------------
    # Auth operations
    # ------------------------------------------------------------------

    def sign_up(self, email: str, password: str) -> AuthUser:
        self._require_started()
        try:
            user, _ = self.auth.sign_up(email, password)
        except SupabaseError as e:
            raise AuthenticationError(f"Sign up failed: {e}") from e
        logger.info(f"Signed up user {user.id}")
        return user

    def sign_in(self, email: str, password: str) -> AuthSnapshot:
        self._require_started()
        self._snapshot = AuthSnapshot(state=AuthState.AUTHENTICATING)
        try:
            self.auth.sign_in_with_password(email, password)
        except SupabaseError as e:
            self._snapshot = SIGNED_OUT
            raise AuthenticationError(f"Sign in failed: {e}") from e
        return self._snapshot

    def restore(self, refresh_token: str) -> AuthSnapshot:
        """Resume a previous session from its refresh token."""
        self._require_started()
        self._snapshot = AuthSnapshot(state=AuthState.AUTHENTICATING)
        try:
            self.auth.refresh_session(refresh_token, initial=True)
        except SupabaseError as e:
            self._snapshot = SIGNED_OUT
            raise AuthenticationError(f"Session restore failed: {e}") from e
        return self._snapshot

    def refresh_role(self) -> Optional[Role]:
        """Re-resolve the role, e.g. after the user became a merchant."""
        snapshot = self._snapshot
        if snapshot.state != AuthState.AUTHENTICATED:
            return None
        self._apply(snapshot.tokens)
        return self._snapshot.role

    def sign_out(self) -> None:
        """
        End the session.

        Local identity and role are cleared even if the remote sign-out call
        fails; the server-side token then simply expires.
        """
        tokens = self._snapshot.tokens
        if tokens is None:
            self._snapshot = SIGNED_OUT
            return
        try:
            self.auth.sign_out(tokens.access_token)
        except SupabaseError as e:
            logger.warning(f"Remote sign out failed for user {tokens.user.id}: {e}")
        self._snapshot = SIGNED_OUT

    def reset_password(self, email: str) -> None:
        try:
            self.auth.reset_password_for_email(email)
        except SupabaseError as e:
            raise AuthenticationError(f"Password reset failed: {e}") from e

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _on_auth_event(self, event: AuthEvent, tokens: Optional[AuthTokens]) -> None:
        if event == AuthEvent.SIGNED_OUT or tokens is None:
            self._snapshot = SIGNED_OUT
            logger.info("Signed out")
            return
        self._apply(tokens)
        logger.info(f"{event.value}: user {tokens.user.id} resolved to role {self._snapshot.role.kind.value}")

    def _apply(self, tokens: AuthTokens) -> None:
        role = resolve_role(self.store.for_access_token(tokens.access_token), tokens.user.id)
        self._snapshot = AuthSnapshot(
            state=AuthState.AUTHENTICATED,
            user=tokens.user,
            tokens=tokens,
            role=role,
        )

    def _require_started(self) -> None:
        if self._subscription is None:
            raise RuntimeError("AuthSession.start() must be called before authenticating")
