"""CLI provider runtime resolution helpers.

This module isolates runtime source assembly, hidden API-key prompting, and
secure API-key persistence from the command wiring layer.
"""

from __future__ import annotations

from typing import Callable

import typer

from .credentials import CredentialStore, create_credential_store
from .errors import PipelineStageError
from .parsing import normalize_optional_string


def _set_runtime_cli_value(
    runtime_cli_values: dict[str, str],
    key: str,
    value: str | None,
) -> None:
    """Set a normalized runtime CLI value when user input is present."""

    normalized = normalize_optional_string(value)
    if normalized is not None:
        runtime_cli_values[key] = normalized


def _prompt_for_api_key() -> str | None:
    """Prompt for an API key with hidden input; blank input skips."""

    return normalize_optional_string(
        typer.prompt(
            "OpenAI API key (hidden; leave blank to skip)",
            default="",
            hide_input=True,
            show_default=False,
        )
    )


def resolve_provider_runtime_sources(
    provider: str | None = None,
    model_image: str | None = None,
    model_vision: str | None = None,
    model_translate: str | None = None,
    model_tts: str | None = None,
    model_transcribe: str | None = None,
    api_key: str | None = None,
    prompt_api_key: bool = False,
    store_api_key: bool = False,
    credential_store_factory: Callable[[], CredentialStore] = create_credential_store,
) -> tuple[dict[str, str], dict[str, str]]:
    """Resolve CLI and secure runtime source mappings for provider configuration.

    Returns:
        A `(cli_values, secure_values)` pair for `RuntimeConfigSources`.
    """

    runtime_cli_values: dict[str, str] = {}
    _set_runtime_cli_value(runtime_cli_values, "provider", provider)
    _set_runtime_cli_value(runtime_cli_values, "model_image", model_image)
    _set_runtime_cli_value(runtime_cli_values, "model_vision", model_vision)
    _set_runtime_cli_value(runtime_cli_values, "model_translate", model_translate)
    _set_runtime_cli_value(runtime_cli_values, "model_tts", model_tts)
    _set_runtime_cli_value(runtime_cli_values, "model_transcribe", model_transcribe)
    _set_runtime_cli_value(runtime_cli_values, "api_key", api_key)

    if prompt_api_key and "api_key" not in runtime_cli_values:
        prompted = _prompt_for_api_key()
        if prompted is not None:
            runtime_cli_values["api_key"] = prompted

    credential_store = credential_store_factory()
    runtime_secure_values: dict[str, str] = {}
    stored_api_key = credential_store.get_api_key()
    if stored_api_key is not None:
        runtime_secure_values["api_key"] = stored_api_key

    if store_api_key and "api_key" in runtime_cli_values:
        try:
            credential_store.set_api_key(runtime_cli_values["api_key"])
        except (RuntimeError, ValueError) as exc:
            raise PipelineStageError(
                stage="credentials",
                detail=f"Failed to store API key securely: {exc}",
                hint=(
                    "Install and configure a keyring backend, or rerun without "
                    "`--store-api-key` for one-off usage."
                ),
            ) from exc
        typer.echo("Stored API key in secure credential storage.")

    return runtime_cli_values, runtime_secure_values
