"""Unit tests for secure credential store helpers."""

from __future__ import annotations

import pytest
from keyring.errors import KeyringError, PasswordDeleteError

import docvoice.credentials as credentials_module
from docvoice.credentials import (
    KeyringCredentialStore,
    account_name_for,
    create_credential_store,
)


class FakeKeyringModule:
    """In-memory keyring stub for deterministic credential store tests."""

    def __init__(self) -> None:
        self._storage: dict[tuple[str, str], str] = {}

    def get_password(self, service_name: str, account_name: str) -> str | None:
        return self._storage.get((service_name, account_name))

    def set_password(self, service_name: str, account_name: str, value: str) -> None:
        self._storage[(service_name, account_name)] = value

    def delete_password(self, service_name: str, account_name: str) -> None:
        if (service_name, account_name) not in self._storage:
            raise PasswordDeleteError("missing")
        del self._storage[(service_name, account_name)]


class BrokenKeyringModule(FakeKeyringModule):
    """Keyring stub whose backend is unavailable."""

    def get_password(self, service_name: str, account_name: str) -> str | None:
        raise KeyringError("no backend")


def test_keyring_store_roundtrip_set_get_clear(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keyring store should set/get/clear API key values via keyring backend."""

    fake_keyring = FakeKeyringModule()
    monkeypatch.setattr(credentials_module, "keyring", fake_keyring)
    store = KeyringCredentialStore()

    assert store.get_api_key() is None

    store.set_api_key("  abc123  ")
    assert store.get_api_key() == "abc123"
    assert fake_keyring._storage == {("docvoice", "google_api_key"): "abc123"}

    assert store.clear_api_key() is True
    assert store.get_api_key() is None
    assert store.clear_api_key() is False


def test_keyring_store_rejects_blank_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(credentials_module, "keyring", FakeKeyringModule())

    with pytest.raises(ValueError, match="non-empty"):
        KeyringCredentialStore().set_api_key("   ")


def test_keyring_store_treats_backend_errors_as_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(credentials_module, "keyring", BrokenKeyringModule())

    store = KeyringCredentialStore()

    assert store.get_api_key() is None
    assert store.clear_api_key() is False


def test_credential_store_accounts_are_scoped_per_provider() -> None:
    store = create_credential_store("OpenAI")

    assert isinstance(store, KeyringCredentialStore)
    assert store.account_name == "openai_api_key"
    assert account_name_for("  ") == "google_api_key"
