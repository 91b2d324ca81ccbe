"""
Identity Resolver

Derives a voter's effective identity: a durable per-device anonymous token
(created once, then read back from client storage) plus the account id when
a session exists.

Known limitation: when client storage is unavailable the resolver hands
out a fresh token on every call and marks the identity non-persistent.
Such a voter has no stable anonymous identity across calls.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional, Protocol, runtime_checkable

import structlog

from validtot.core.config import settings
from validtot.core.errors import StorageUnavailable
from validtot.core.security import generate_anonymous_token
from validtot.schemas.identity import VoterIdentity

logger = structlog.get_logger(__name__)

SessionProvider = Callable[[], Optional[str]]


# =============================================================================
# Client Storage
# =============================================================================


@runtime_checkable
class ClientStorage(Protocol):
    """Key/value storage that survives on the voter's device."""

    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage for tests and embedded clients."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """
    Durable storage in a single JSON file.

    Writes go to a temporary file in the same directory and are moved into
    place, so a crash never leaves a half-written file.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            raise StorageUnavailable(str(e)) from e
        if not isinstance(data, dict):
            raise StorageUnavailable(f"{self.path} does not hold a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".validtot-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageUnavailable(str(e)) from e

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


# =============================================================================
# Resolver
# =============================================================================


class IdentityResolver:
    """
    Resolves the voter identity for the current device and session.

    Usage:
        resolver = IdentityResolver(JsonFileStorage("~/.validtot.json"), session=lambda: account_id)
        identity = resolver.resolve()
    """

    def __init__(
        self,
        storage: ClientStorage,
        session: Optional[SessionProvider] = None,
        token_factory: Callable[[], str] = generate_anonymous_token,
        storage_key: Optional[str] = None,
    ):
        self.storage = storage
        self.session = session
        self.token_factory = token_factory
        self.storage_key = storage_key or settings.ANON_TOKEN_STORAGE_KEY

    def anonymous_token(self) -> tuple[str, bool]:
        """
        Get or create the device token.

        Returns:
            (token, persistent)
        """
        try:
            token = self.storage.get(self.storage_key)
            if token:
                return token, True
            token = self.token_factory()
            self.storage.set(self.storage_key, token)
            logger.debug("anonymous_token_created")
            return token, True
        except (StorageUnavailable, OSError) as e:
            logger.warning("client_storage_unavailable", error=str(e))
            return self.token_factory(), False

    def account_id(self) -> Optional[str]:
        if self.session is None:
            return None
        return self.session() or None

    def resolve(self) -> VoterIdentity:
        """Never fails; degrades to an ephemeral token without storage."""
        token, persistent = self.anonymous_token()
        return VoterIdentity(
            anonymous_token=token,
            account_id=self.account_id(),
            persistent=persistent,
        )
