"""CLI error-handling tests for concise stage-aware diagnostics."""

from pathlib import Path

from pytest import MonkeyPatch
from typer.testing import CliRunner

from culturicon.cli import app
from culturicon.providers.openai_client import OpenAIImageClient, OpenAIProviderError


def test_generation_failure_reports_stage_kind_and_hint(
    monkeypatch: MonkeyPatch, tmp_path: Path
) -> None:
    """A failed result should exit 1 with the failing stage and error kind."""

    def _missing_model(self, **kwargs: object) -> bytes:
        """Raise a not-found provider error for every generation call."""

        _ = self, kwargs
        raise OpenAIProviderError("model `gpt-image-9` does not exist", failure_kind="model_not_found")

    monkeypatch.setattr(OpenAIImageClient, "generate_image", _missing_model)
    runner = CliRunner()

    result = runner.invoke(app, ["text-to-icon", "happy cat", "--out", str(tmp_path)])

    assert result.exit_code == 1
    assert "text-to-icon failed at stage `invoking`: [model_unavailable]" in result.output
    assert "Hint: Check the API key" in result.output


def test_generation_reports_input_errors(tmp_path: Path) -> None:
    """Blank text should fail at the building stage."""

    runner = CliRunner()

    result = runner.invoke(app, ["text-to-icon", "   ", "--out", str(tmp_path)])

    assert result.exit_code == 1
    assert "text-to-icon failed at stage `building`: [input_error]" in result.output


def test_unexpected_errors_use_fallback_diagnostics(monkeypatch: MonkeyPatch) -> None:
    """Non-stage exceptions should still exit 1 with the command name."""

    def _broken_orchestrator(*_: object, **__: object) -> None:
        """Raise a generic error to verify fallback CLI diagnostics."""

        raise RuntimeError("unexpected wiring error")

    monkeypatch.setattr("culturicon.cli.build_orchestrator", _broken_orchestrator)
    runner = CliRunner()

    result = runner.invoke(app, ["translate", "hello"])

    assert result.exit_code == 1
    assert "translate failed: unexpected wiring error" in result.output


def test_missing_config_file_is_reported() -> None:
    """A missing `--config` path should fail at the config stage."""

    runner = CliRunner()

    result = runner.invoke(
        app, ["text-to-icon", "happy cat", "--config", "does-not-exist.yml"]
    )

    assert result.exit_code == 1
    assert "text-to-icon failed at stage `config`" in result.output
    assert "Config file not found" in result.output


def test_invalid_config_file_is_reported(tmp_path: Path) -> None:
    """Unknown config keys should fail at the config stage with a hint."""

    config_path = tmp_path / "culturicon.yml"
    config_path.write_text("output_dir: out\nvoice_speed: fast\n", encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(app, ["speak", "hello", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "speak failed at stage `config`" in result.output
    assert "voice_speed" in result.output
    assert "Hint: Fix config schema/values and rerun." in result.output


def test_invalid_environment_config_is_reported(monkeypatch: MonkeyPatch) -> None:
    """Bad `CULTURICON_*` values should fail at the config stage when no file is given."""

    monkeypatch.setenv("CULTURICON_MAX_RETRIES", "-1")
    runner = CliRunner()

    result = runner.invoke(app, ["speak", "hello", "--no-store"])

    assert result.exit_code == 1
    assert "speak failed at stage `config`" in result.output
    assert "Invalid environment configuration" in result.output
    assert "CULTURICON_MAX_RETRIES" in result.output
