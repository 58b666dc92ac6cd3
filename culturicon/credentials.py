"""Secure credential storage for the Culturicon CLI.

Responsibilities:
- Keep the provider API key in the OS keychain through `keyring`.
- Expose read/write/delete operations used by the `credentials` command.
- Never log or echo the stored secret.

Key types:
- `CredentialStore`: protocol consumed by the CLI runtime.
- `KeyringCredentialStore`: keyring-backed implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import keyring
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordDeleteError


_DEFAULT_SERVICE_NAME = "culturicon"
_DEFAULT_ACCOUNT_NAME = "openai_api_key"


class CredentialStore(Protocol):
    """Secure provider credential operations."""

    def is_available(self) -> bool:
        """Return whether secure credential operations are usable."""

    def get_api_key(self) -> str | None:
        """Return the stored API key or `None`."""

    def set_api_key(self, api_key: str) -> None:
        """Persist an API key."""

    def clear_api_key(self) -> bool:
        """Delete a stored API key and return whether one existed."""


@dataclass(slots=True)
class KeyringCredentialStore:
    """Credential store backed by the active `keyring` backend."""

    service_name: str = _DEFAULT_SERVICE_NAME
    account_name: str = _DEFAULT_ACCOUNT_NAME

    def is_available(self) -> bool:
        """Return `False` when keyring resolved to its no-op failure backend."""

        return not isinstance(keyring.get_keyring(), fail.Keyring)

    def get_api_key(self) -> str | None:
        """Return the normalized stored key, or `None` when missing or unreadable."""

        if not self.is_available():
            return None
        try:
            value = keyring.get_password(self.service_name, self.account_name)
        except KeyringError:
            return None
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    def set_api_key(self, api_key: str) -> None:
        """Persist a normalized API key or raise when no secure backend exists."""

        normalized = api_key.strip()
        if not normalized:
            raise ValueError("API key must be a non-empty string.")
        if not self.is_available():
            raise RuntimeError(
                "Secure credential storage is unavailable: no usable keyring backend "
                "was found on this system."
            )
        try:
            keyring.set_password(self.service_name, self.account_name, normalized)
        except KeyringError as exc:
            raise RuntimeError(f"Failed to store API key in keyring: {exc}") from exc

    def clear_api_key(self) -> bool:
        """Remove the stored API key and report whether one was present."""

        if self.get_api_key() is None:
            return False
        try:
            keyring.delete_password(self.service_name, self.account_name)
        except PasswordDeleteError:
            return False
        return True


def create_credential_store() -> CredentialStore:
    """Create the default secure credential store."""

    return KeyringCredentialStore()
