"""Unit tests for CLI provider runtime resolution helpers."""

from __future__ import annotations

import pytest

from culturicon.cli_runtime import resolve_provider_runtime_sources
from culturicon.errors import PipelineStageError


class InMemoryCredentialStore:
    """In-memory credential store implementation for runtime-resolution tests."""

    def __init__(self, initial_api_key: str | None = None) -> None:
        """Initialize the store with an optional initial API key."""

        self._api_key = initial_api_key
        self.stored_values: list[str] = []

    def is_available(self) -> bool:
        return True

    def get_api_key(self) -> str | None:
        """Return currently stored API key value."""

        return self._api_key

    def set_api_key(self, api_key: str) -> None:
        """Persist API key value and keep a history for assertions."""

        self._api_key = api_key
        self.stored_values.append(api_key)

    def clear_api_key(self) -> bool:
        existed = self._api_key is not None
        self._api_key = None
        return existed


class FailingCredentialStore(InMemoryCredentialStore):
    """Credential store that raises when persisting API key values."""

    def set_api_key(self, api_key: str) -> None:
        """Raise deterministic storage failure used for error-path assertions."""

        raise RuntimeError("no keyring backend")


def test_resolve_provider_runtime_sources_collects_cli_and_secure_values() -> None:
    """Resolver should normalize CLI overrides and include secure API key fallback."""

    store = InMemoryCredentialStore(initial_api_key="secure-api-key")
    runtime_cli_values, runtime_secure_values = resolve_provider_runtime_sources(
        provider=" openai ",
        model_image=" cli-image ",
        model_vision="   ",
        credential_store_factory=lambda: store,
    )

    assert runtime_cli_values == {"provider": "openai", "model_image": "cli-image"}
    assert runtime_secure_values == {"api_key": "secure-api-key"}
    assert store.stored_values == []


def test_resolve_provider_runtime_sources_stores_cli_api_key(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """`store_api_key` should persist the CLI key and confirm without echoing it."""

    store = InMemoryCredentialStore()
    runtime_cli_values, runtime_secure_values = resolve_provider_runtime_sources(
        api_key=" cli-key ",
        store_api_key=True,
        credential_store_factory=lambda: store,
    )

    assert runtime_cli_values == {"api_key": "cli-key"}
    assert runtime_secure_values == {}
    assert store.stored_values == ["cli-key"]
    output = capsys.readouterr().out
    assert "Stored API key in secure credential storage." in output
    assert "cli-key" not in output


def test_resolve_provider_runtime_sources_prompts_for_hidden_key(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Prompting should add a hidden key only when the CLI did not provide one."""

    prompts: list[dict[str, object]] = []

    def _fake_prompt(text: str, **kwargs: object) -> str:
        prompts.append({"text": text, **kwargs})
        return " prompted-key "

    monkeypatch.setattr("culturicon.cli_runtime.typer.prompt", _fake_prompt)

    runtime_cli_values, _ = resolve_provider_runtime_sources(
        prompt_api_key=True,
        credential_store_factory=InMemoryCredentialStore,
    )

    assert runtime_cli_values == {"api_key": "prompted-key"}
    assert prompts[0]["hide_input"] is True

    explicit_values, _ = resolve_provider_runtime_sources(
        api_key="explicit",
        prompt_api_key=True,
        credential_store_factory=InMemoryCredentialStore,
    )
    assert explicit_values == {"api_key": "explicit"}
    assert len(prompts) == 1


def test_resolve_provider_runtime_sources_raises_stage_error_on_store_failure() -> None:
    """Secure storage failures should surface as `credentials` stage errors."""

    with pytest.raises(PipelineStageError) as exc_info:
        resolve_provider_runtime_sources(
            api_key="cli-key",
            store_api_key=True,
            credential_store_factory=FailingCredentialStore,
        )

    assert exc_info.value.stage == "credentials"
    assert "no keyring backend" in exc_info.value.detail
    assert exc_info.value.hint is not None
