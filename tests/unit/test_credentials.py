"""Unit tests for secure credential store helpers."""

from __future__ import annotations

import pytest
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordDeleteError

from culturicon.credentials import KeyringCredentialStore


class FakeKeyringBackend:
    """In-memory keyring stand-in for deterministic credential store tests."""

    def __init__(self) -> None:
        """Initialize fake storage dictionary."""

        self._storage: dict[tuple[str, str], str] = {}

    def get_password(self, service_name: str, account_name: str) -> str | None:
        """Return previously stored password if present."""

        return self._storage.get((service_name, account_name))

    def set_password(self, service_name: str, account_name: str, value: str) -> None:
        """Store password value for the service/account key."""

        self._storage[(service_name, account_name)] = value

    def delete_password(self, service_name: str, account_name: str) -> None:
        """Delete password value or raise like keyring does when missing."""

        if (service_name, account_name) not in self._storage:
            raise PasswordDeleteError("not found")
        del self._storage[(service_name, account_name)]


def _install_backend(monkeypatch: pytest.MonkeyPatch, backend: object) -> None:
    """Route the keyring module functions used by the store to `backend`."""

    monkeypatch.setattr("culturicon.credentials.keyring.get_keyring", lambda: backend)
    for name in ("get_password", "set_password", "delete_password"):
        monkeypatch.setattr(
            f"culturicon.credentials.keyring.{name}", getattr(backend, name, None)
        )


def test_keyring_store_roundtrip_set_get_clear(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keyring store should set/get/clear API key values via the keyring backend."""

    _install_backend(monkeypatch, FakeKeyringBackend())
    store = KeyringCredentialStore()

    assert store.is_available() is True
    assert store.get_api_key() is None

    store.set_api_key("  abc123  ")
    assert store.get_api_key() == "abc123"

    assert store.clear_api_key() is True
    assert store.get_api_key() is None
    assert store.clear_api_key() is False


def test_keyring_store_reports_unavailable_fail_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    """The keyring failure backend should make the store unavailable and inert."""

    monkeypatch.setattr("culturicon.credentials.keyring.get_keyring", lambda: fail.Keyring())
    store = KeyringCredentialStore()

    assert store.is_available() is False
    assert store.get_api_key() is None
    assert store.clear_api_key() is False
    with pytest.raises(RuntimeError, match="unavailable"):
        store.set_api_key("abc123")


def test_keyring_store_rejects_blank_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    """Blank API keys should be rejected before touching the backend."""

    _install_backend(monkeypatch, FakeKeyringBackend())

    with pytest.raises(ValueError):
        KeyringCredentialStore().set_api_key("   ")


def test_keyring_store_wraps_backend_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    """Backend read errors degrade to `None`; write errors become `RuntimeError`."""

    backend = FakeKeyringBackend()
    _install_backend(monkeypatch, backend)

    def _broken(*_args: object) -> None:
        raise KeyringError("locked")

    monkeypatch.setattr("culturicon.credentials.keyring.get_password", _broken)
    monkeypatch.setattr("culturicon.credentials.keyring.set_password", _broken)
    store = KeyringCredentialStore()

    assert store.get_api_key() is None
    with pytest.raises(RuntimeError, match="Failed to store API key"):
        store.set_api_key("abc123")
