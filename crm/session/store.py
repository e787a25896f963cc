"""
Client-side session store.

Mirrors the server session for a client process: the authenticated user,
their organization and the bearer token, plus the loading / initialized
flags a UI waits on. Only the token is persisted (through a TokenStorage);
user and organization are always re-fetched from the server.

Every login, register and initialize_auth call takes a new request
generation. A response belonging to an older generation is discarded so a
slow request can never overwrite the result of a newer one.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

import httpx

from crm.utils import Logger
from .storage import MemoryTokenStorage, TokenStorage

logger = Logger("session")

DEFAULT_BASE_URL = "http://localhost:3001"
DEFAULT_TIMEOUT = 10.0

Listener = Callable[["SessionState"], None]


class SessionError(Exception):
    """A session call failed. `message` is the server's message when it sent one."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class SessionState:
    user: Optional[dict] = None
    organization: Optional[dict] = None
    token: Optional[str] = None
    is_authenticated: bool = False
    is_loading: bool = False
    is_initialized: bool = False


def _json(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_message(body: dict, default: str) -> str:
    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(error, str) and error:
        return error
    return body.get("message") or default


class SessionStore:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        storage: TokenStorage | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.storage = storage or MemoryTokenStorage()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=httpx.Timeout(timeout)
        )
        self._state = SessionState()
        self._generation = 0
        self._listeners: list[Listener] = []

    # ── State access ─────────────────────────────────────────────
    @property
    def state(self) -> SessionState:
        """A copy of the current state."""
        return replace(self._state)

    @property
    def user(self) -> Optional[dict]:
        return self._state.user

    @property
    def organization(self) -> Optional[dict]:
        return self._state.organization

    @property
    def token(self) -> Optional[str]:
        return self._state.token

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def is_initialized(self) -> bool:
        return self._state.is_initialized

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(state)` after every change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes) -> None:
        for key, value in changes.items():
            setattr(self._state, key, value)
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug(f"Discarding stale session response (generation {generation})")
            return False
        return True

    # ── Mutations ────────────────────────────────────────────────
    def set_auth(self, user: dict, organization: Optional[dict], token: str) -> None:
        self.storage.set(token)
        self._set(
            user=user,
            organization=organization,
            token=token,
            is_authenticated=True,
            is_loading=False,
            is_initialized=True,
        )

    def clear_auth(self) -> None:
        self.storage.remove()
        self._set(
            user=None,
            organization=None,
            token=None,
            is_authenticated=False,
            is_loading=False,
            is_initialized=True,
        )

    def logout(self) -> None:
        # Responses to calls started before the logout must not sign back in.
        self._next_generation()
        self.clear_auth()
        logger.info("Logged out")

    def set_loading(self, loading: bool) -> None:
        self._set(is_loading=loading)

    def update_user(self, **changes: Any) -> None:
        if self._state.user is None:
            return
        self._set(user={**self._state.user, **changes})

    def update_organization(self, **changes: Any) -> None:
        if self._state.organization is None:
            return
        self._set(organization={**self._state.organization, **changes})

    # ── HTTP ─────────────────────────────────────────────────────
    async def _send(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs,
    ) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            return await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise SessionError(f"Request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise SessionError(f"Request to {path} failed: {exc}") from exc

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send an authenticated request carrying the current bearer token."""
        return await self._send(method, path, token=self._state.token, **kwargs)

    def _fail(self, clear: bool) -> None:
        if clear:
            self.clear_auth()
        else:
            self._set(is_loading=False)

    async def _authenticate(
        self,
        path: str,
        payload: dict,
        default_error: str,
        clear_on_failure: bool = False,
    ) -> Optional[dict]:
        """
        POST credentials and return the session payload, or None when a newer
        call has started meanwhile. Raises SessionError on failure.
        """
        generation = self._next_generation()
        self._set(is_loading=True)

        try:
            response = await self._send("POST", path, json=payload)
        except SessionError:
            if self._is_current(generation):
                self._fail(clear_on_failure)
            raise

        body = _json(response)
        if not response.is_success or not body.get("success"):
            if self._is_current(generation):
                self._fail(clear_on_failure)
            raise SessionError(
                _error_message(body, default_error), status_code=response.status_code
            )

        if not self._is_current(generation):
            return None
        return body.get("data") or {}

    async def login(self, email: str, password: str) -> None:
        data = await self._authenticate(
            "/api/auth/login", {"email": email, "password": password}, "Login failed"
        )
        if data is None:
            return
        self.set_auth(data.get("user"), data.get("organization"), data.get("token"))
        logger.info("Login successful")

    async def register(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        organization_name: str,
    ) -> None:
        payload = {
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
            "organizationName": organization_name,
        }
        data = await self._authenticate(
            "/api/auth/register", payload, "Registration failed", clear_on_failure=True
        )
        if data is None:
            return
        self.set_auth(data.get("user"), data.get("organization"), data.get("token"))
        logger.info("Registration successful")

    async def initialize_auth(self) -> None:
        """
        Restore the session from the persisted token.

        /verify then /profile; anything but two successes discards the token.
        Always ends with is_initialized=True (unless a newer call took over).
        """
        generation = self._next_generation()
        self._set(is_loading=True)

        stored_token = self.storage.get()
        if stored_token:
            try:
                session = await self._restore(stored_token)
            except SessionError as exc:
                logger.warning(f"Session restore failed: {exc.message}")
                session = None

            if not self._is_current(generation):
                return
            if session is not None:
                self._set(
                    user=session.get("user"),
                    organization=session.get("organization"),
                    token=stored_token,
                    is_authenticated=True,
                    is_loading=False,
                    is_initialized=True,
                )
                logger.info("Session restored")
                return

        self.clear_auth()

    async def _restore(self, token: str) -> Optional[dict]:
        verify = await self._send("GET", "/api/auth/verify", token=token)
        if not verify.is_success or not _json(verify).get("success"):
            return None
        profile = await self._send("GET", "/api/auth/profile", token=token)
        body = _json(profile)
        if not profile.is_success or not body.get("success"):
            return None
        return body.get("data") or {}

    # ── Lifecycle ────────────────────────────────────────────────
    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SessionStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
