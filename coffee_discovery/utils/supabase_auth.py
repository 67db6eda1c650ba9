"""
Supabase Auth (GoTrue) client.

Talks to /auth/v1 with httpx and notifies subscribers about auth-state
changes, the way supabase-js exposes onAuthStateChange.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from coffee_discovery.utils.logger import get_logger
from coffee_discovery.utils.supabase_client import SupabaseError, error_detail

logger = get_logger("utils.supabase_auth")


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    SIGNED_OUT = "SIGNED_OUT"


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AuthUser":
        return cls(id=str(payload["id"]), email=payload.get("email"))


@dataclass(frozen=True)
class AuthTokens:
    """Tokens issued by GoTrue for one signed-in user."""
    access_token: str
    refresh_token: Optional[str]
    user: AuthUser
    expires_at: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AuthTokens":
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            user=AuthUser.from_payload(payload["user"]),
            expires_at=payload.get("expires_at"),
        )


AuthListener = Callable[[AuthEvent, Optional[AuthTokens]], None]


class Subscription:
    """Handle returned by on_auth_state_change; call unsubscribe() to detach."""

    def __init__(self, listeners: List[AuthListener], callback: AuthListener):
        self._listeners = listeners
        self.callback = callback

    def unsubscribe(self) -> None:
        if self.callback in self._listeners:
            self._listeners.remove(self.callback)


class SupabaseAuth:
    """Sign-up, sign-in, sign-out and session refresh against Supabase Auth."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url if url is not None else os.environ.get("SUPABASE_URL")
        self.key = key if key is not None else (
            os.environ.get("SUPABASE_KEY") or os.environ.get("SUPABASE_ANON_KEY")
        )
        if not self.url or not self.key:
            logger.warning("SUPABASE_URL or SUPABASE_KEY not set in environment.")

        self.client = httpx.Client(
            base_url=self.url or "",
            headers={"apikey": self.key or "", "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )
        self._listeners: List[AuthListener] = []

    def on_auth_state_change(self, callback: AuthListener) -> Subscription:
        self._listeners.append(callback)
        return Subscription(self._listeners, callback)

    def sign_up(self, email: str, password: str) -> Tuple[AuthUser, Optional[AuthTokens]]:
        """
        Create an account.

        Returns the new user and, when the project auto-confirms email
        addresses, an active session (which also emits SIGNED_IN).
        """
        data = self._post("/auth/v1/signup", {"email": email, "password": password})
        if data.get("access_token"):
            tokens = AuthTokens.from_payload(data)
            self._emit(AuthEvent.SIGNED_IN, tokens)
            return tokens.user, tokens
        return AuthUser.from_payload(data.get("user") or data), None

    def sign_in_with_password(self, email: str, password: str) -> AuthTokens:
        data = self._post(
            "/auth/v1/token",
            {"email": email, "password": password},
            params={"grant_type": "password"},
        )
        tokens = AuthTokens.from_payload(data)
        self._emit(AuthEvent.SIGNED_IN, tokens)
        return tokens

    def refresh_session(self, refresh_token: str, initial: bool = False) -> AuthTokens:
        """Exchange a refresh token for a new session (INITIAL_SESSION when restoring)."""
        data = self._post(
            "/auth/v1/token",
            {"refresh_token": refresh_token},
            params={"grant_type": "refresh_token"},
        )
        tokens = AuthTokens.from_payload(data)
        self._emit(AuthEvent.INITIAL_SESSION if initial else AuthEvent.TOKEN_REFRESHED, tokens)
        return tokens

    def get_user(self, access_token: str) -> AuthUser:
        data = self._send("GET", "/auth/v1/user", access_token=access_token)
        return AuthUser.from_payload(data)

    def sign_out(self, access_token: str) -> None:
        self._send("POST", "/auth/v1/logout", access_token=access_token)
        self._emit(AuthEvent.SIGNED_OUT, None)

    def reset_password_for_email(self, email: str) -> None:
        self._post("/auth/v1/recover", {"email": email})

    def close(self) -> None:
        self._listeners.clear()
        self.client.close()

    def _emit(self, event: AuthEvent, tokens: Optional[AuthTokens]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, tokens)
            except Exception:
                logger.exception(f"Auth listener failed on {event.value}")

    def _post(self, path: str, body: Dict[str, Any], params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        return self._send("POST", path, json=body, params=params)

    def _send(self, method: str, path: str, access_token: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        if not self.url or not self.key:
            raise SupabaseError("Supabase is not configured (set SUPABASE_URL and SUPABASE_KEY)")
        headers = {"Authorization": f"Bearer {access_token or self.key}"}
        try:
            response = self.client.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = error_detail(e.response)
            logger.error(f"Supabase auth {method} {path} failed: {detail}")
            raise SupabaseError(detail, e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.error(f"Supabase auth {method} {path} failed: {e}")
            raise SupabaseError(f"{type(e).__name__}: {e}") from e

        if not response.content:
            return {}
        return response.json()
