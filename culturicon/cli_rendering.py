"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
generation results, and voice selections.
"""

from __future__ import annotations

import json
from typing import NoReturn

import typer

from .errors import ErrorKind, PipelineStageError
from .models.datatypes import GenerationResult, VoiceSelection


_ERROR_HINTS = {
    ErrorKind.INPUT_ERROR: "Check the request text or file and rerun.",
    ErrorKind.MODEL_UNAVAILABLE: (
        "Check the API key (`culturicon credentials --set-api-key`) and model ids."
    ),
    ErrorKind.TRANSIENT_FAILURE: "The provider did not respond in time; retry later.",
    ErrorKind.CANCELLED: "The request was cancelled before it finished.",
}


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def result_failure_error(result: GenerationResult) -> PipelineStageError:
    """Map a failed generation result onto a stage error for diagnostics."""

    error = result.error
    if error is None:
        raise ValueError("Result carries no error.")
    return PipelineStageError(
        stage=error.stage,
        detail=f"[{error.kind.value}] {error.message}",
        hint=_ERROR_HINTS.get(error.kind),
    )


def echo_result(result: GenerationResult, *, as_json: bool = False) -> None:
    """Print a successful generation result as JSON or summary lines."""

    if as_json:
        typer.echo(json.dumps(result.as_payload(), indent=2, sort_keys=True))
        return

    typer.echo(f"Kind: {result.kind.value}")
    typer.echo(f"Model: {result.model_used or '(none)'}")
    if result.kind.is_icon:
        typer.echo(f"Sanitized: {'yes' if result.sanitized else 'no'}")
    typer.echo(f"Fallback used: {'yes' if result.fallback_used else 'no'}")
    if result.prompt:
        typer.echo(f"Prompt: {result.prompt}")
    if result.description:
        typer.echo(f"Description: {result.description}")
    if result.transcript:
        typer.echo(f"Transcript: {result.transcript}")
    if result.text is not None:
        typer.echo(f"Text: {result.text}")
    echo_storage_summary(result)
    if result.label_audio is not None:
        label = result.label_audio
        typer.echo(
            f"Label audio: {label.locale_code} speaker={label.speaker_id} "
            f"text={label.text}"
        )


def echo_storage_summary(result: GenerationResult) -> None:
    """Print where artifacts were stored, or the storage warning."""

    storage = result.storage
    if storage is None:
        return
    if storage.stored:
        typer.echo(f"Artifact: {storage.public_url}")
    if storage.audio_public_url:
        typer.echo(f"Label audio artifact: {storage.audio_public_url}")
    if storage.storage_warning:
        typer.secho(
            f"Storage warning: {storage.detail or 'artifact was not stored'}",
            fg=typer.colors.YELLOW,
            err=True,
        )


def echo_voice_selection(selection: VoiceSelection) -> None:
    """Print one resolved locale/speaker pair."""

    typer.echo(f"Locale: {selection.locale_code}")
    typer.echo(f"Speaker: {selection.speaker_id}")
    typer.echo(f"Fallback used: {'yes' if selection.used_fallback else 'no'}")
