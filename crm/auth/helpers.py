"""Low-level auth helpers: password hashing + JWT encode/decode."""

from datetime import datetime, timedelta, timezone
from functools import lru_cache

from jose import JWTError, jwt
from passlib.context import CryptContext

from crm.config import settings
from crm.utils.exceptions import AuthenticationError


# ── Password hashing ────────────────────────────────────────────
@lru_cache(maxsize=4)
def _pwd_ctx(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(plain: str) -> str:
    return _pwd_ctx(settings.password_hash_rounds).hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return _pwd_ctx(settings.password_hash_rounds).verify(plain, hashed)
    except ValueError:
        # malformed hash in the store
        return False


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    return _pwd_ctx(rounds).hash("not-a-real-password")


def burn_password_check(plain: str) -> None:
    """Run a comparison against a throwaway hash so unknown emails cost the same as wrong passwords."""
    _pwd_ctx(settings.password_hash_rounds).verify(
        plain, _dummy_hash(settings.password_hash_rounds)
    )


# ── JWT ──────────────────────────────────────────────────────────
def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a JWT containing arbitrary `data`.

    Expected payload keys (set by AuthService):
      sub, email, organization_id, role
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    to_encode["iat"] = now
    to_encode["exp"] = now + (expires_delta or settings.jwt_expires_delta)
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Decode and verify a JWT (signature + expiry). Raises 401 on failure."""
    try:
        return jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        raise AuthenticationError("Invalid or expired token")
