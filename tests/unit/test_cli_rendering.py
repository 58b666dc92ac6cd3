"""Unit tests for CLI output and error rendering helpers."""

from __future__ import annotations

import json

import pytest
import typer

from culturicon.cli_rendering import (
    echo_result,
    echo_voice_selection,
    exit_with_command_error,
    result_failure_error,
)
from culturicon.errors import ErrorKind, PipelineStageError
from culturicon.models.datatypes import (
    GenerationError,
    GenerationResult,
    LabelAudio,
    RequestKind,
    StorageOutcome,
    VoiceSelection,
)


def test_exit_with_command_error_renders_stage_error_with_hint(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Renderer should print stage diagnostics and hint before exiting with code 1."""

    error = PipelineStageError(
        stage="config",
        detail="Failed to load config file `missing.yml`.",
        hint="Verify the config path exists.",
    )

    with pytest.raises(typer.Exit) as exc_info:
        exit_with_command_error("text-to-icon", error)

    captured = capsys.readouterr()
    assert exc_info.value.exit_code == 1
    assert "text-to-icon failed at stage `config`" in captured.err
    assert "Hint: Verify the config path exists." in captured.err


def test_exit_with_command_error_renders_non_stage_fallback(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Renderer should print fallback exception text for non-stage failures."""

    with pytest.raises(typer.Exit) as exc_info:
        exit_with_command_error("speak", RuntimeError("unexpected failure"))

    captured = capsys.readouterr()
    assert exc_info.value.exit_code == 1
    assert "speak failed: unexpected failure" in captured.err


def test_result_failure_error_carries_kind_stage_and_hint() -> None:
    """Failed results should map to stage errors with kind-specific hints."""

    result = GenerationResult(
        success=False,
        kind=RequestKind.TEXT_TO_ICON,
        error=GenerationError(ErrorKind.MODEL_UNAVAILABLE, "model missing", "invoking", 1),
    )

    error = result_failure_error(result)

    assert error.stage == "invoking"
    assert error.detail == "[model_unavailable] model missing"
    assert error.hint is not None and "credentials" in error.hint


def test_echo_result_prints_summary_lines(capsys: pytest.CaptureFixture[str]) -> None:
    """Text rendering should summarize icon results, storage, and label audio."""

    result = GenerationResult(
        success=True,
        kind=RequestKind.TEXT_TO_ICON,
        model_used="gpt-image-1",
        image_data=b"png",
        sanitized=True,
        prompt="Create a simple icon of happy cat.",
        label_audio=LabelAudio("Merci", True, b"mp3", "audio/mpeg", "fr-CA", "shimmer", False),
        storage=StorageOutcome(
            stored=True,
            artifact_id="a1",
            public_url="file:///out/a1.png",
            audio_artifact_id="a2",
            audio_public_url="file:///out/a2.mp3",
        ),
    )

    echo_result(result)

    out = capsys.readouterr().out
    assert "Kind: text_to_icon" in out
    assert "Model: gpt-image-1" in out
    assert "Sanitized: yes" in out
    assert "Fallback used: no" in out
    assert "Artifact: file:///out/a1.png" in out
    assert "Label audio artifact: file:///out/a2.mp3" in out
    assert "Label audio: fr-CA speaker=shimmer text=Merci" in out


def test_echo_result_reports_storage_warning_on_stderr(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Storage warnings should be printed to stderr without failing."""

    result = GenerationResult(
        success=True,
        kind=RequestKind.TRANSLATE,
        text="Hola",
        storage=StorageOutcome(stored=False, storage_warning=True, detail="OSError: disk full"),
    )

    echo_result(result)

    captured = capsys.readouterr()
    assert "Text: Hola" in captured.out
    assert "Sanitized" not in captured.out
    assert "Storage warning: OSError: disk full" in captured.err


def test_echo_result_json_is_sorted_payload(capsys: pytest.CaptureFixture[str]) -> None:
    """JSON rendering should print the response payload."""

    result = GenerationResult(success=True, kind=RequestKind.SPEECH, audio_data=b"mp3")

    echo_result(result, as_json=True)

    payload = json.loads(capsys.readouterr().out)
    assert payload["kind"] == "speech"
    assert payload["size"] == 3
    assert "data_base64" in payload


def test_echo_voice_selection(capsys: pytest.CaptureFixture[str]) -> None:
    """Voice selections should print locale, speaker, and fallback flag."""

    echo_voice_selection(VoiceSelection("en-US", "echo", True))

    assert capsys.readouterr().out.splitlines() == [
        "Locale: en-US",
        "Speaker: echo",
        "Fallback used: yes",
    ]
