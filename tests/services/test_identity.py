"""
Tests for voter identity resolution and client storage.
"""

import json
from unittest.mock import MagicMock

import pytest

from validtot.core.errors import StorageUnavailable
from validtot.core.security import ANON_TOKEN_PREFIX
from validtot.services.identity import IdentityResolver, JsonFileStorage, MemoryStorage

STORAGE_KEY = "validtot_anon_id"


class BrokenStorage:
    """Storage that refuses every call (private browsing, full disk)."""

    def get(self, key: str):
        raise StorageUnavailable("storage disabled")

    def set(self, key: str, value: str) -> None:
        raise StorageUnavailable("storage disabled")

    def delete(self, key: str) -> None:
        raise StorageUnavailable("storage disabled")


@pytest.mark.unit
class TestIdentityResolver:
    def test_token_created_once_and_reused(self) -> None:
        storage = MemoryStorage()
        resolver = IdentityResolver(storage)

        first = resolver.resolve()
        second = resolver.resolve()

        assert first.anonymous_token.startswith(ANON_TOKEN_PREFIX)
        assert first.anonymous_token == second.anonymous_token
        assert storage.get(STORAGE_KEY) == first.anonymous_token
        assert first.persistent

    def test_existing_token_is_read_back(self) -> None:
        resolver = IdentityResolver(MemoryStorage({STORAGE_KEY: "anon_existing"}))
        assert resolver.resolve().anonymous_token == "anon_existing"

    def test_anonymous_without_session(self) -> None:
        identity = IdentityResolver(MemoryStorage()).resolve()
        assert identity.account_id is None
        assert not identity.is_authenticated

    def test_session_adds_account_and_keeps_token(self) -> None:
        storage = MemoryStorage()
        anonymous = IdentityResolver(storage).resolve()
        signed_in = IdentityResolver(storage, session=lambda: "acct-42").resolve()

        assert signed_in.account_id == "acct-42"
        assert signed_in.is_authenticated
        assert signed_in.anonymous_token == anonymous.anonymous_token

    def test_empty_session_is_anonymous(self) -> None:
        identity = IdentityResolver(MemoryStorage(), session=lambda: "").resolve()
        assert identity.account_id is None

    def test_broken_storage_gives_ephemeral_token(self) -> None:
        tokens = iter(["anon_one", "anon_two"])
        resolver = IdentityResolver(BrokenStorage(), token_factory=lambda: next(tokens))

        first = resolver.resolve()
        second = resolver.resolve()

        assert not first.persistent
        assert first.anonymous_token == "anon_one"
        assert second.anonymous_token == "anon_two"

    def test_custom_token_factory_and_key(self) -> None:
        storage = MagicMock()
        storage.get.return_value = None
        resolver = IdentityResolver(storage, token_factory=lambda: "anon_fixed", storage_key="device")

        assert resolver.resolve().anonymous_token == "anon_fixed"
        storage.set.assert_called_once_with("device", "anon_fixed")


@pytest.mark.unit
class TestJsonFileStorage:
    def test_missing_file_reads_empty(self, tmp_path) -> None:
        storage = JsonFileStorage(tmp_path / "device.json")
        assert storage.get("anything") is None

    def test_set_get_delete(self, tmp_path) -> None:
        path = tmp_path / "nested" / "device.json"
        storage = JsonFileStorage(path)

        storage.set("a", "1")
        storage.set("b", "2")
        assert storage.get("a") == "1"
        assert json.loads(path.read_text()) == {"a": "1", "b": "2"}

        storage.delete("a")
        assert storage.get("a") is None
        assert storage.get("b") == "2"

    def test_survives_new_instance(self, tmp_path) -> None:
        path = tmp_path / "device.json"
        token = IdentityResolver(JsonFileStorage(path)).resolve().anonymous_token
        assert IdentityResolver(JsonFileStorage(path)).resolve().anonymous_token == token

    def test_corrupt_file_raises_storage_unavailable(self, tmp_path) -> None:
        path = tmp_path / "device.json"
        path.write_text("{not json")
        with pytest.raises(StorageUnavailable):
            JsonFileStorage(path).get("a")

    def test_corrupt_file_degrades_identity(self, tmp_path) -> None:
        path = tmp_path / "device.json"
        path.write_text("[1, 2, 3]")
        identity = IdentityResolver(JsonFileStorage(path)).resolve()
        assert not identity.persistent
