"""AuthInitializer / ProtectedRoute gating."""

import asyncio

import httpx
import pytest

from crm.session import AuthInitializer, ProtectedRoute, RouteDecision, SessionStore

pytestmark = pytest.mark.unit


class FakeSessionStore:
    """Just the flags and initialize_auth the guard reads."""

    def __init__(self, authenticate: bool = True):
        self.is_initialized = False
        self.is_loading = False
        self.is_authenticated = False
        self.calls = 0
        self._authenticate = authenticate

    async def initialize_auth(self) -> None:
        self.calls += 1
        self.is_loading = True
        await asyncio.sleep(0.01)
        self.is_authenticated = self._authenticate
        self.is_loading = False
        self.is_initialized = True


class TestAuthInitializer:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_restoration(self):
        store = FakeSessionStore()
        initializer = AuthInitializer(store)

        await asyncio.gather(*(initializer.ensure_initialized() for _ in range(5)))

        assert store.calls == 1
        assert store.is_initialized is True

    @pytest.mark.asyncio
    async def test_does_nothing_once_initialized(self):
        store = FakeSessionStore()
        initializer = AuthInitializer(store)

        await initializer.ensure_initialized()
        await initializer.ensure_initialized()

        assert store.calls == 1


class TestProtectedRoute:
    def test_loading_until_initialized(self):
        store = FakeSessionStore()

        assert ProtectedRoute(store).decide() is RouteDecision.LOADING

    def test_loading_while_request_in_flight(self):
        store = FakeSessionStore()
        store.is_initialized = True
        store.is_loading = True

        assert ProtectedRoute(store).decide() is RouteDecision.LOADING

    @pytest.mark.asyncio
    async def test_resolve_renders_for_restored_session(self):
        route = ProtectedRoute(FakeSessionStore(authenticate=True))

        assert await route.resolve() is RouteDecision.RENDER

    @pytest.mark.asyncio
    async def test_resolve_redirects_without_session(self):
        route = ProtectedRoute(FakeSessionStore(authenticate=False))

        assert await route.resolve() is RouteDecision.REDIRECT_TO_LOGIN
        assert route.login_path == "/login"

    @pytest.mark.asyncio
    async def test_explicit_logout_does_not_show_loading_again(self):
        store = SessionStore(client=httpx.AsyncClient(base_url="http://crm.local"))
        store.set_auth({"id": "u"}, None, "tok")
        route = ProtectedRoute(store)
        assert route.decide() is RouteDecision.RENDER

        store.logout()

        assert await route.resolve() is RouteDecision.REDIRECT_TO_LOGIN
