"""
Account registration and merchant onboarding.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from coffee_discovery.auth.roles import MerchantRole
from coffee_discovery.auth.session import AuthSession
from coffee_discovery.core.errors import AuthenticationError, FormValidationError
from coffee_discovery.data.models import Merchant, MerchantStatus
from coffee_discovery.utils.logger import get_logger
from coffee_discovery.utils.supabase_auth import AuthUser

logger = get_logger("auth.registration")

MIN_PASSWORD_LENGTH = 6


class AccountType(str, Enum):
    USER = "user"
    MERCHANT = "merchant"


@dataclass
class RegistrationForm:
    name: str
    email: str
    password: str
    confirm_password: str
    account_type: AccountType = AccountType.USER


def validate_registration(form: RegistrationForm) -> None:
    """Raise FormValidationError describing the first problem found."""
    if not all(v and str(v).strip() for v in (form.name, form.email, form.password, form.confirm_password)):
        raise FormValidationError("Please fill in all fields")
    if form.password != form.confirm_password:
        raise FormValidationError("Passwords do not match")
    if len(form.password) < MIN_PASSWORD_LENGTH:
        raise FormValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def register_account(session: AuthSession, form: RegistrationForm) -> AuthUser:
    """
    Create an auth user and, for merchant accounts, its merchant row.

    If the auth provider signed the user straight in, the merchant row is
    written with their token and the cached role is refreshed.
    """
    validate_registration(form)
    user = session.sign_up(form.email.strip(), form.password)

    if AccountType(form.account_type) == AccountType.MERCHANT:
        store = session.user_store() if session.is_authenticated else session.store
        merchant = store.create_merchant(Merchant(
            user_id=user.id,
            name=form.name.strip(),
            email=form.email.strip(),
            status=MerchantStatus.ACTIVE,
        ))
        logger.info(f"Registered merchant {merchant.id} for user {user.id}")
        session.refresh_role()
    return user


def setup_merchant(
    session: AuthSession,
    name: str,
    description: Optional[str] = None,
    website: Optional[str] = None,
    logo_url: Optional[str] = None,
) -> Merchant:
    """
    Create the merchant profile for a signed-in user who does not have one yet.

    An existing profile is returned unchanged.
    """
    session.require_role()
    user = session.user
    if user is None:
        raise AuthenticationError("Sign in required")
    if not name or not name.strip():
        raise FormValidationError("Business name is required")

    store = session.user_store()
    existing = store.get_merchant_by_user(user.id)
    if existing is not None:
        logger.info(f"User {user.id} already has merchant {existing.id}")
        return existing

    merchant = store.create_merchant(Merchant(
        user_id=user.id,
        name=name.strip(),
        email=user.email,
        description=description or None,
        website=website or None,
        logo_url=logo_url or None,
    ))
    role = session.refresh_role()
    if not isinstance(role, MerchantRole):
        logger.warning(f"Merchant {merchant.id} created but user {user.id} did not resolve as merchant")
    return merchant
