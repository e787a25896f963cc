"""Gate protected content on session restoration."""

import asyncio
import enum
from typing import Optional

from .store import SessionStore


class RouteDecision(str, enum.Enum):
    LOADING = "loading"
    REDIRECT_TO_LOGIN = "redirect_to_login"
    RENDER = "render"


class AuthInitializer:
    """
    Runs `initialize_auth` once per uninitialized store. Concurrent callers
    share the in-flight restoration instead of starting their own.
    """

    def __init__(self, store: SessionStore):
        self.store = store
        self._task: Optional[asyncio.Task] = None

    async def ensure_initialized(self) -> None:
        if self._task is None:
            if self.store.is_initialized:
                return
            self._task = asyncio.create_task(self._run())
        await asyncio.shield(self._task)

    async def _run(self) -> None:
        try:
            await self.store.initialize_auth()
        finally:
            self._task = None


class ProtectedRoute:
    def __init__(
        self,
        store: SessionStore,
        initializer: AuthInitializer | None = None,
        login_path: str = "/login",
    ):
        self.store = store
        self.initializer = initializer or AuthInitializer(store)
        self.login_path = login_path

    def decide(self) -> RouteDecision:
        if not self.store.is_initialized or self.store.is_loading:
            return RouteDecision.LOADING
        if not self.store.is_authenticated:
            return RouteDecision.REDIRECT_TO_LOGIN
        return RouteDecision.RENDER

    async def resolve(self) -> RouteDecision:
        """Wait for session restoration, then decide."""
        await self.initializer.ensure_initialized()
        return self.decide()
