"""AuthService used directly, without HTTP."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from crm.auth import AuthService, make_org_slug
from crm.auth.helpers import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from crm.auth.schemas import RegisterRequest
from crm.config import settings
from crm.utils.exceptions import (
    AuthenticationError,
    ConflictError,
    InvalidCredentials,
    InvalidOrExpiredToken,
)
from tests.conftest import DEFAULT_PASSWORD, seed_account

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "name,slug",
    [
        ("Acme", "acme"),
        ("Acme, Inc.", "acme-inc"),
        ("  Big   Data Co ", "big-data-co"),
        ("Ünïcode Ltd", "n-code-ltd"),
        ("!!!", ""),
    ],
)
def test_make_org_slug(name, slug):
    assert make_org_slug(name) == slug


class TestHelpers:
    def test_hash_and_verify(self):
        hashed = hash_password("secret1")

        assert hashed != "secret1"
        assert verify_password("secret1", hashed)
        assert not verify_password("secret2", hashed)

    def test_verify_against_missing_or_malformed_hash(self):
        assert not verify_password("secret1", "")
        assert not verify_password("secret1", "not-a-bcrypt-hash")

    def test_token_round_trip_carries_claims(self):
        token = create_access_token({"sub": "u1", "email": "jane@example.com"})

        payload = decode_access_token(token)

        assert payload["sub"] == "u1"
        assert payload["exp"] > payload["iat"]

    def test_decode_rejects_garbage(self):
        with pytest.raises(AuthenticationError):
            decode_access_token("a.b.c")


class TestAuthService:
    @pytest.mark.asyncio
    async def test_authenticate_unknown_email(self, stores, notifier):
        with pytest.raises(InvalidCredentials):
            await AuthService(stores, notifier).authenticate("ghost@example.com", "secret1")

    @pytest.mark.asyncio
    async def test_register_hashes_password(self, stores, notifier):
        await AuthService(stores, notifier).register(
            RegisterRequest(
                first_name="A",
                last_name="B",
                email="a@b.co",
                password="secret1",
                organization_name="Acme",
            )
        )

        stored = await stores.users.find_by_email("a@b.co")
        assert stored["password"] != "secret1"
        assert verify_password("secret1", stored["password"])

    @pytest.mark.asyncio
    async def test_register_releases_organization_when_user_insert_conflicts(
        self, stores, notifier
    ):
        await seed_account(stores, email="a@b.co")
        request = RegisterRequest(
            first_name="A",
            last_name="B",
            email="a@b.co",
            password="secret1",
            organization_name="Globex",
        )

        # Another request inserts the same email between the check and the insert
        with patch.object(stores.users, "find_by_email", AsyncMock(return_value=None)):
            with pytest.raises(ConflictError):
                await AuthService(stores, notifier).register(request)

        assert await stores.organizations.find_by_slug("globex") is None

    @pytest.mark.asyncio
    async def test_request_reset_for_unknown_email_issues_nothing(self, stores, notifier):
        await AuthService(stores, notifier).request_password_reset("ghost@example.com")

        notifier.send_password_reset_email.assert_not_awaited()
        assert len(stores.reset_tokens) == 0

    @pytest.mark.asyncio
    async def test_request_reset_mails_the_issued_token(self, stores, notifier):
        await seed_account(stores)

        await AuthService(stores, notifier).request_password_reset("jane@example.com")

        email, token, name = notifier.send_password_reset_email.await_args.args
        assert email == "jane@example.com"
        assert name == "Jane Doe"
        assert await stores.reset_tokens.peek(token) is not None

    @pytest.mark.asyncio
    async def test_concurrent_resets_with_one_token(self, stores, notifier):
        await seed_account(stores)
        svc = AuthService(stores, notifier)
        record = await stores.reset_tokens.issue("jane@example.com", settings.reset_token_ttl)

        results = await asyncio.gather(
            svc.reset_password(record.token, "first-new"),
            svc.reset_password(record.token, "second-new"),
            return_exceptions=True,
        )

        assert sum(r is None for r in results) == 1
        assert sum(isinstance(r, InvalidOrExpiredToken) for r in results) == 1

    @pytest.mark.asyncio
    async def test_reset_for_removed_account_fails(self, stores, notifier):
        record = await stores.reset_tokens.issue("gone@example.com", settings.reset_token_ttl)

        with pytest.raises(InvalidOrExpiredToken):
            await AuthService(stores, notifier).reset_password(record.token, "brand-new")

    @pytest.mark.asyncio
    async def test_get_session_for_unknown_user(self, stores, notifier):
        with pytest.raises(AuthenticationError):
            await AuthService(stores, notifier).get_session("missing")

    @pytest.mark.asyncio
    async def test_login_after_reset_uses_new_password(self, stores, notifier):
        await seed_account(stores)
        svc = AuthService(stores, notifier)
        record = await stores.reset_tokens.issue("jane@example.com", settings.reset_token_ttl)

        await svc.reset_password(record.token, "brand-new")

        assert (await svc.authenticate("jane@example.com", "brand-new")).token
        with pytest.raises(InvalidCredentials):
            await svc.authenticate("jane@example.com", DEFAULT_PASSWORD)
