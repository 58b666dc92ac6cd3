"""Command-line interface for Culturicon.

Responsibilities:
- Expose user-facing commands for icon, translation, and speech generation.
- Convert CLI arguments into `CulturiconConfig` and generation requests.
- Resolve locale/speaker pairs offline and manage stored credentials.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import dataclasses
import mimetypes
import os
from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import (
    echo_result,
    echo_voice_selection,
    exit_with_command_error,
    result_failure_error,
)
from .cli_runtime import resolve_provider_runtime_sources
from .config import ConfigLoader, CulturiconConfig, RuntimeConfigSources
from .credentials import create_credential_store
from .culture.locales import DEFAULT_RESOLVER
from .culture.profiles import DEFAULT_PROFILE
from .errors import PipelineStageError
from .models.datatypes import (
    CulturalProfile,
    GenerationOptions,
    GenerationRequest,
    GenerationResult,
    RequestKind,
)
from .parsing import normalize_optional_string
from .pipeline.orchestrator import GenerationOrchestrator
from .provider_factory import build_orchestrator
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="culturicon",
    no_args_is_help=True,
    help="Culturicon CLI: culturally adapted icons, translations, and speech.",
)

_DEFAULT_OWNER_ID = "local"

UserOption = Annotated[
    str | None,
    typer.Option("--user", help="User id whose stored cultural profile is applied."),
]
LabelOption = Annotated[
    str | None,
    typer.Option("--label", help="Label text for the icon; enables label audio with `--audio`."),
]
AudioOption = Annotated[
    bool,
    typer.Option("--audio/--no-audio", help="Synthesize spoken audio for the label."),
]
LanguageOption = Annotated[
    str | None,
    typer.Option("--language", help="Profile language override (for example `fr`)."),
]
DialectOption = Annotated[
    str | None,
    typer.Option("--dialect", help="Profile dialect override (for example `CA`)."),
]
RegionOption = Annotated[
    str | None,
    typer.Option("--region", help="Profile region override (for example `Quebec`)."),
]
AccentOption = Annotated[
    str | None,
    typer.Option("--accent", help="Speaker id override for synthesized audio."),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file with command defaults."),
]
OutOption = Annotated[
    Path | None,
    typer.Option("--out", help="Artifact output directory (overrides config file value)."),
]
StoreOption = Annotated[
    bool,
    typer.Option("--store/--no-store", help="Persist artifacts to the output directory."),
]
ApiKeyOption = Annotated[
    str | None,
    typer.Option(
        "--api-key",
        help="Provider API key override. Prefer `--prompt-api-key` to avoid shell history.",
    ),
]
PromptApiKeyOption = Annotated[
    bool,
    typer.Option("--prompt-api-key", help="Prompt for API key with hidden input (never echoed)."),
]
StoreApiKeyOption = Annotated[
    bool,
    typer.Option(
        "--store-api-key/--no-store-api-key",
        help="Persist the CLI-entered API key to secure credential storage.",
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Print the full result as JSON."),
]


def _load_yaml_config(config_path: Path | None) -> CulturiconConfig | None:
    """Load a YAML config file when requested and map failures to stage errors."""

    if config_path is None:
        return None

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc
    except OSError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Failed to read config file `{config_path}`: {exc}",
            hint="Verify file permissions.",
        ) from exc


def _load_env_config() -> CulturiconConfig:
    """Load config from `CULTURICON_*` environment variables."""

    try:
        return ConfigLoader.from_env()
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid environment configuration: {exc}",
            hint="Fix or unset the offending `CULTURICON_*` variable and rerun.",
        ) from exc


def _resolve_command_config(
    config_file: Path | None,
    out: Path | None,
    api_key: str | None,
    prompt_api_key: bool = False,
    store_api_key: bool = False,
) -> CulturiconConfig:
    """Resolve effective config from YAML defaults, CLI overrides, and runtime sources."""

    loaded = _load_yaml_config(config_file)
    base = loaded if loaded is not None else _load_env_config()
    runtime_cli_values, runtime_secure_values = resolve_provider_runtime_sources(
        api_key=api_key,
        prompt_api_key=prompt_api_key,
        store_api_key=store_api_key,
        credential_store_factory=create_credential_store,
    )
    return dataclasses.replace(
        base,
        output_dir=out if out is not None else base.output_dir,
        runtime_sources=RuntimeConfigSources(
            cli=runtime_cli_values,
            secure=runtime_secure_values,
            env=dict(os.environ),
        ),
        extra=dict(base.extra),
    )


def _profile_overrides(
    orchestrator: GenerationOrchestrator,
    user: str | None,
    language: str | None,
    dialect: str | None,
    region: str | None,
) -> CulturalProfile | None:
    """Return an explicit profile when CLI overrides are given, else `None`.

    Overrides are applied on top of the user's stored profile when one exists.
    """

    overrides = {
        key: value
        for key, value in (
            ("language", normalize_optional_string(language)),
            ("dialect", normalize_optional_string(dialect)),
            ("region", normalize_optional_string(region)),
        )
        if value is not None
    }
    if not overrides:
        return None

    provider = orchestrator.collaborators.profile_provider
    base = provider.get_cultural_context(user) if provider is not None and user else DEFAULT_PROFILE
    return dataclasses.replace(base, **overrides)


def _run_generation(
    command_name: str,
    kind: RequestKind,
    payload: str | bytes,
    *,
    options: GenerationOptions,
    label: str | None,
    user: str | None,
    language: str | None,
    dialect: str | None,
    region: str | None,
    config_file: Path | None,
    out: Path | None,
    store: bool,
    api_key: str | None,
    prompt_api_key: bool,
    store_api_key: bool,
    json_output: bool,
) -> None:
    """Build the orchestrator, run one request, and render the outcome."""

    run_logger = RunLogger()
    try:
        config = _resolve_command_config(
            config_file, out, api_key, prompt_api_key=prompt_api_key, store_api_key=store_api_key
        )
        orchestrator = build_orchestrator(config, run_logger=run_logger, store_artifacts=store)
        request = GenerationRequest(
            kind=kind,
            payload=payload,
            label=normalize_optional_string(label),
            cultural_profile=_profile_overrides(orchestrator, user, language, dialect, region),
            options=options,
        )
        result: GenerationResult = orchestrator.run(
            request,
            user_id=user,
            owner_id=user or _DEFAULT_OWNER_ID,
        )
    except Exception as exc:
        exit_with_command_error(command_name, exc)
    finally:
        run_logger.close()

    if not result.success:
        exit_with_command_error(command_name, result_failure_error(result))
    echo_result(result, as_json=json_output)


def _read_input_file(path: Path) -> tuple[bytes, str | None]:
    """Read a binary input file and guess its MIME type from the suffix."""

    try:
        data = path.read_bytes()
    except OSError as exc:
        raise PipelineStageError(
            stage="input",
            detail=f"Failed to read input file `{path}`: {exc}",
            hint="Provide an existing, readable file path.",
        ) from exc
    mime_type, _ = mimetypes.guess_type(path.name)
    return data, mime_type


@app.command("text-to-icon")
def text_to_icon_command(
    text: Annotated[str, typer.Argument(help="Short description of the icon subject.")],
    user: UserOption = None,
    label: LabelOption = None,
    audio: AudioOption = False,
    language: LanguageOption = None,
    dialect: DialectOption = None,
    region: RegionOption = None,
    accent: AccentOption = None,
    color: Annotated[str | None, typer.Option("--color", help="Preferred accent color.")] = None,
    category: Annotated[str | None, typer.Option("--category", help="Board category.")] = None,
    config_file: ConfigOption = None,
    out: OutOption = None,
    store: StoreOption = True,
    api_key: ApiKeyOption = None,
    prompt_api_key: PromptApiKeyOption = False,
    store_api_key: StoreApiKeyOption = False,
    json_output: JsonOption = False,
) -> None:
    """Generate a culturally adapted icon from text."""

    _run_generation(
        "text-to-icon",
        RequestKind.TEXT_TO_ICON,
        text,
        options=GenerationOptions(
            accent=accent, color=color, category=category, generate_audio=audio
        ),
        label=label,
        user=user,
        language=language,
        dialect=dialect,
        region=region,
        config_file=config_file,
        out=out,
        store=store,
        api_key=api_key,
        prompt_api_key=prompt_api_key,
        store_api_key=store_api_key,
        json_output=json_output,
    )


@app.command("image-to-icon")
def image_to_icon_command(
    image: Annotated[Path, typer.Argument(help="Path to the source image.")],
    regenerate: Annotated[
        bool,
        typer.Option(
            "--regenerate/--no-regenerate",
            help="Draw a fresh icon from the image description instead of cleaning the upload.",
        ),
    ] = False,
    analysis_kind: Annotated[
        str,
        typer.Option(
            "--analysis-kind",
            help="Vision analysis flavour: `description`, `icon_elements`, `objects`, `scene`.",
        ),
    ] = "icon_elements",
    user: UserOption = None,
    label: LabelOption = None,
    audio: AudioOption = False,
    language: LanguageOption = None,
    dialect: DialectOption = None,
    region: RegionOption = None,
    accent: AccentOption = None,
    config_file: ConfigOption = None,
    out: OutOption = None,
    store: StoreOption = True,
    api_key: ApiKeyOption = None,
    prompt_api_key: PromptApiKeyOption = False,
    store_api_key: StoreApiKeyOption = False,
    json_output: JsonOption = False,
) -> None:
    """Turn an uploaded image into a clean icon."""

    try:
        data, mime_type = _read_input_file(image)
    except PipelineStageError as exc:
        exit_with_command_error("image-to-icon", exc)

    _run_generation(
        "image-to-icon",
        RequestKind.IMAGE_TO_ICON,
        data,
        options=GenerationOptions(
            accent=accent,
            generate_audio=audio,
            regenerate=regenerate,
            input_mime_type=mime_type,
            analysis_kind=analysis_kind,
        ),
        label=label,
        user=user,
        language=language,
        dialect=dialect,
        region=region,
        config_file=config_file,
        out=out,
        store=store,
        api_key=api_key,
        prompt_api_key=prompt_api_key,
        store_api_key=store_api_key,
        json_output=json_output,
    )


@app.command("translate")
def translate_command(
    text: Annotated[str, typer.Argument(help="Short text to translate.")],
    user: UserOption = None,
    language: LanguageOption = None,
    dialect: DialectOption = None,
    region: RegionOption = None,
    config_file: ConfigOption = None,
    out: OutOption = None,
    store: StoreOption = False,
    api_key: ApiKeyOption = None,
    prompt_api_key: PromptApiKeyOption = False,
    store_api_key: StoreApiKeyOption = False,
    json_output: JsonOption = False,
) -> None:
    """Translate short text into the profile language and dialect."""

    _run_generation(
        "translate",
        RequestKind.TRANSLATE,
        text,
        options=GenerationOptions(),
        label=None,
        user=user,
        language=language,
        dialect=dialect,
        region=region,
        config_file=config_file,
        out=out,
        store=store,
        api_key=api_key,
        prompt_api_key=prompt_api_key,
        store_api_key=store_api_key,
        json_output=json_output,
    )


@app.command("speak")
def speak_command(
    text: Annotated[
        str | None,
        typer.Argument(help="Text to speak. Omit when using `--from-audio`."),
    ] = None,
    from_audio: Annotated[
        Path | None,
        typer.Option("--from-audio", help="Recorded speech to transcribe and re-voice."),
    ] = None,
    user: UserOption = None,
    language: LanguageOption = None,
    dialect: DialectOption = None,
    region: RegionOption = None,
    accent: AccentOption = None,
    config_file: ConfigOption = None,
    out: OutOption = None,
    store: StoreOption = True,
    api_key: ApiKeyOption = None,
    prompt_api_key: PromptApiKeyOption = False,
    store_api_key: StoreApiKeyOption = False,
    json_output: JsonOption = False,
) -> None:
    """Synthesize speech in the profile's locale and voice."""

    if (text is None) == (from_audio is None):
        exit_with_command_error(
            "speak",
            PipelineStageError(
                stage="input",
                detail="Provide exactly one of `<text>` or `--from-audio <path>`.",
                hint="Pass text to speak, or a recording to transcribe.",
            ),
        )

    payload: str | bytes
    mime_type: str | None = None
    if from_audio is not None:
        try:
            payload, mime_type = _read_input_file(from_audio)
        except PipelineStageError as exc:
            exit_with_command_error("speak", exc)
    else:
        payload = text or ""

    _run_generation(
        "speak",
        RequestKind.SPEECH,
        payload,
        options=GenerationOptions(accent=accent, input_mime_type=mime_type),
        label=None,
        user=user,
        language=language,
        dialect=dialect,
        region=region,
        config_file=config_file,
        out=out,
        store=store,
        api_key=api_key,
        prompt_api_key=prompt_api_key,
        store_api_key=store_api_key,
        json_output=json_output,
    )


@app.command("voice")
def voice_command(
    language: Annotated[str, typer.Argument(help="Language code, optionally composite (`fr-CA`).")],
    dialect: Annotated[
        str | None, typer.Option("--dialect", help="Dialect or region code.")
    ] = None,
    accent: AccentOption = None,
) -> None:
    """Resolve the speech locale and speaker for a language offline."""

    echo_voice_selection(DEFAULT_RESOLVER.resolve_voice(language, dialect, accent=accent))


@app.command("credentials")
def credentials_command(
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage securely stored CLI credentials."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                "OpenAI API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except (RuntimeError, ValueError) as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        removed = credential_store.clear_api_key()
        if removed:
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    status = "present" if credential_store.get_api_key() is not None else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored OpenAI API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
