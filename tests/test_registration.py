"""
Tests for account registration and merchant setup (coffee_discovery/auth/registration.py).
"""
import pytest

from conftest import SUPABASE_KEY, SUPABASE_URL
from coffee_discovery.auth.registration import (
    AccountType,
    RegistrationForm,
    register_account,
    setup_merchant,
    validate_registration,
)
from coffee_discovery.auth.roles import MerchantRole, UserRole
from coffee_discovery.auth.session import AuthSession
from coffee_discovery.core.errors import AuthenticationError, FormValidationError
from coffee_discovery.utils.supabase_auth import SupabaseAuth

SIGNUP = "/auth/v1/signup"
MERCHANTS = "/rest/v1/merchants"

SESSION_PAYLOAD = {
    "access_token": "new-access-token",
    "refresh_token": "new-refresh-token",
    "user": {"id": "u-5", "email": "shop@example.com"},
}


@pytest.fixture
def session(supabase, store):
    auth = SupabaseAuth(url=SUPABASE_URL, key=SUPABASE_KEY, transport=supabase.transport)
    s = AuthSession(auth, store).start()
    yield s
    s.close()
    auth.close()


def _form(**overrides):
    values = dict(
        name="Bean There",
        email="shop@example.com",
        password="secret1",
        confirm_password="secret1",
        account_type=AccountType.USER,
    )
    values.update(overrides)
    return RegistrationForm(**values)


class TestValidation:

    @pytest.mark.parametrize("field", ["name", "email", "password", "confirm_password"])
    def test_all_fields_required(self, field):
        with pytest.raises(FormValidationError, match="fill in all fields"):
            validate_registration(_form(**{field: "  "}))

    def test_passwords_must_match(self):
        with pytest.raises(FormValidationError, match="do not match"):
            validate_registration(_form(confirm_password="secret2"))

    def test_password_minimum_length(self):
        with pytest.raises(FormValidationError, match="at least 6"):
            validate_registration(_form(password="abc", confirm_password="abc"))

    def test_valid_form(self):
        validate_registration(_form())


class TestRegisterAccount:

    def test_invalid_form_makes_no_calls(self, session, supabase):
        with pytest.raises(FormValidationError):
            register_account(session, _form(password="abc", confirm_password="abc"))
        assert supabase.requests == []

    def test_user_account_creates_no_merchant(self, session, supabase):
        supabase.respond("POST", SIGNUP, {"id": "u-5", "email": "shop@example.com"})

        user = register_account(session, _form())

        assert user.id == "u-5"
        assert not [r for r in supabase.requests if r.url.path == MERCHANTS]
        assert not session.is_authenticated

    def test_merchant_account_creates_active_merchant_row(self, session, supabase):
        supabase.respond("POST", SIGNUP, {"id": "u-5", "email": "shop@example.com"})
        supabase.respond("POST", MERCHANTS, [{"id": "m-5", "user_id": "u-5", "name": "Bean There"}])

        register_account(session, _form(account_type=AccountType.MERCHANT))

        row = supabase.body(supabase.last("POST", MERCHANTS))
        assert row["user_id"] == "u-5"
        assert row["name"] == "Bean There"
        assert row["email"] == "shop@example.com"
        assert row["status"] == "active"
        assert row["created_at"]

    def test_auto_confirmed_merchant_is_signed_in_as_merchant(self, session, supabase):
        supabase.respond("POST", SIGNUP, SESSION_PAYLOAD)
        supabase.respond("POST", MERCHANTS, [{"id": "m-5", "user_id": "u-5", "name": "Bean There"}])
        supabase.respond("GET", "/rest/v1/admins", [])
        # Nothing at sign-in; the lookup after creation finds the new row
        supabase.respond_sequence("GET", MERCHANTS, [[], [{"id": "m-5", "user_id": "u-5", "name": "Bean There"}]])

        register_account(session, _form(account_type=AccountType.MERCHANT))

        assert session.role == MerchantRole(merchant_id="m-5")
        assert supabase.last("POST", MERCHANTS).headers["Authorization"] == "Bearer new-access-token"

    def test_sign_up_rejected(self, session, supabase):
        supabase.respond("POST", SIGNUP, {"msg": "User already registered"}, status=422)
        with pytest.raises(AuthenticationError, match="already registered"):
            register_account(session, _form())


class TestSetupMerchant:

    def _sign_in(self, session, supabase):
        supabase.respond("POST", "/auth/v1/token", SESSION_PAYLOAD)
        supabase.respond("GET", "/rest/v1/admins", [])
        supabase.respond("GET", MERCHANTS, [])
        session.sign_in("shop@example.com", "secret1")
        assert session.role == UserRole()

    def test_requires_sign_in(self, session):
        with pytest.raises(AuthenticationError):
            setup_merchant(session, name="Bean There")

    def test_requires_name(self, session, supabase):
        self._sign_in(session, supabase)
        with pytest.raises(FormValidationError):
            setup_merchant(session, name=" ")

    def test_creates_profile(self, session, supabase):
        self._sign_in(session, supabase)
        supabase.respond("POST", MERCHANTS, [{"id": "m-5", "user_id": "u-5", "name": "Bean There",
                                              "website": "https://beanthere.example"}])

        merchant = setup_merchant(session, name="Bean There", website="https://beanthere.example")

        assert merchant.id == "m-5"
        row = supabase.body(supabase.last("POST", MERCHANTS))
        assert row["email"] == "shop@example.com"
        assert row["website"] == "https://beanthere.example"
        assert row["description"] is None

    def test_existing_profile_is_returned(self, session, supabase):
        self._sign_in(session, supabase)
        supabase.respond("GET", MERCHANTS, [{"id": "m-1", "user_id": "u-5", "name": "Old Name"}])

        merchant = setup_merchant(session, name="New Name")

        assert merchant.id == "m-1"
        assert not [r for r in supabase.requests if r.method == "POST" and r.url.path == MERCHANTS]
