"""Where the client keeps its bearer token between runs."""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

TOKEN_KEY = "auth_token"


class TokenStorage(ABC):
    """Key/value persistence for the single bearer token."""

    @abstractmethod
    def get(self, key: str = TOKEN_KEY) -> Optional[str]: ...

    @abstractmethod
    def set(self, value: str, key: str = TOKEN_KEY) -> None: ...

    @abstractmethod
    def remove(self, key: str = TOKEN_KEY) -> None: ...


class MemoryTokenStorage(TokenStorage):
    """Session-scoped: the token lives as long as the process."""

    def __init__(self):
        self._values: dict[str, str] = {}

    def get(self, key: str = TOKEN_KEY) -> Optional[str]:
        return self._values.get(key)

    def set(self, value: str, key: str = TOKEN_KEY) -> None:
        self._values[key] = value

    def remove(self, key: str = TOKEN_KEY) -> None:
        self._values.pop(key, None)


class FileTokenStorage(TokenStorage):
    """One file per key under `directory`."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / key

    def get(self, key: str = TOKEN_KEY) -> Optional[str]:
        path = self._path(key)
        if not path.is_file():
            return None
        value = path.read_text(encoding="utf-8").strip()
        return value or None

    def set(self, value: str, key: str = TOKEN_KEY) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        # Created owner-only; an existing file is tightened before the write
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            path.chmod(0o600)
            fh.write(value)

    def remove(self, key: str = TOKEN_KEY) -> None:
        self._path(key).unlink(missing_ok=True)
