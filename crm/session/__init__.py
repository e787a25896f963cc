from .storage import TOKEN_KEY, TokenStorage, MemoryTokenStorage, FileTokenStorage
from .store import SessionStore, SessionState, SessionError
from .guard import AuthInitializer, ProtectedRoute, RouteDecision

__all__ = [
    "TOKEN_KEY",
    "TokenStorage",
    "MemoryTokenStorage",
    "FileTokenStorage",
    "SessionStore",
    "SessionState",
    "SessionError",
    "AuthInitializer",
    "ProtectedRoute",
    "RouteDecision",
]
