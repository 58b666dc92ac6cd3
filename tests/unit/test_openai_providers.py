"""Unit tests for OpenAI-backed image, vision, translation, and speech integrations."""

from __future__ import annotations

import base64
import json

import pytest

from culturicon.providers import openai_client as openai_http
from culturicon.providers.cache import ResponseCache
from culturicon.providers.imagery import OpenAIImageGenerator
from culturicon.providers.openai_client import OpenAIChatClient, OpenAIProviderError
from culturicon.providers.translator import OpenAITranslator, clean_translation
from culturicon.providers.vision import OpenAIImageAnalyzer, fallback_analysis, filter_description
from culturicon.tts.synthesizer import OpenAISpeechSynthesizer
from culturicon.tts.transcriber import OpenAITranscriber


class _MockRequestsResponse:
    """Minimal requests response mock for HTTP transport patching."""

    def __init__(self, *, payload: bytes, status_code: int = 200) -> None:
        """Initialize response with raw payload bytes and HTTP status."""

        self.content = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        """Raise HTTPError when the response status represents a failure."""

        if self.status_code >= 400:
            raise openai_http.requests.HTTPError(
                f"HTTP {self.status_code} error",
                response=self,
            )


def _json_response(payload: object, status_code: int = 200) -> _MockRequestsResponse:
    return _MockRequestsResponse(payload=json.dumps(payload).encode("utf-8"), status_code=status_code)


def _chat_response(text: str) -> _MockRequestsResponse:
    return _json_response({"choices": [{"message": {"content": text}}]})


def _install_post(
    monkeypatch: pytest.MonkeyPatch,
    responses: list[_MockRequestsResponse],
) -> list[tuple[str, dict[str, object]]]:
    """Patch `requests.post` to serve queued responses and record calls."""

    calls: list[tuple[str, dict[str, object]]] = []

    def _mock_post(url: str, **kwargs: object) -> _MockRequestsResponse:
        calls.append((url, kwargs))
        return responses.pop(0)

    monkeypatch.setattr("culturicon.providers.openai_client.requests.post", _mock_post)
    return calls


def test_openai_translator_happy_path_and_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    """Translator should clean quotes, keep metadata, and cache repeated calls."""

    calls = _install_post(monkeypatch, [_chat_response('"Merci"')])
    cache = ResponseCache()
    translator = OpenAITranslator(model="gpt-4.1-mini", api_key="key", response_cache=cache)

    first = translator.translate("Thank you", "fr", "CA", timeout_seconds=5.0)
    second = translator.translate("Thank you", "fr", "CA")

    assert first.translated_text == "Merci"
    assert first.target_dialect == "CA"
    assert first.model == "gpt-4.1-mini"
    assert second == first
    assert len(calls) == 1
    assert cache.hits == 1

    url, kwargs = calls[0]
    assert url == "https://api.openai.com/v1/chat/completions"
    assert kwargs["timeout"] == 5.0
    body = kwargs["json"]
    assert isinstance(body, dict)
    assert body["temperature"] == 0.3
    assert "using the CA dialect" in body["messages"][1]["content"]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [('"Bonjour"', "Bonjour"), ("'Hola'", "Hola"), ('  Danke  ', "Danke"), ('"a" b', '"a" b')],
)
def test_clean_translation_strips_one_pair_of_wrapping_quotes(raw: str, expected: str) -> None:
    """Only a single matching pair of wrapping quotes should be removed."""

    assert clean_translation(raw) == expected


def test_missing_api_key_is_classified_as_invalid_api_key() -> None:
    """Calls without a key should fail before any HTTP request."""

    translator = OpenAITranslator(api_key=None)

    with pytest.raises(OpenAIProviderError) as exc_info:
        translator.translate("Hello", "es")

    assert exc_info.value.failure_kind == "invalid_api_key"


@pytest.mark.parametrize(
    ("status_code", "body", "expected_kind"),
    [
        (401, {"error": {"message": "Incorrect API key provided: sk-abcdefghijkl"}}, "invalid_api_key"),
        (429, {"error": {"code": "insufficient_quota", "message": "quota"}}, "insufficient_quota"),
        (404, {"error": {"code": "model_not_found", "message": "no such model"}}, "model_not_found"),
        (429, {"error": {"message": "Rate limit reached"}}, "rate_limited"),
        (504, {"error": {"message": "gateway"}}, "timeout"),
        (503, {"error": {"message": "overloaded"}}, "server_error"),
        (400, {"error": {"message": "bad prompt"}}, "invalid_request"),
        (409, {"error": {"message": "conflict"}}, "http_error"),
    ],
)
def test_http_failures_are_classified(
    monkeypatch: pytest.MonkeyPatch,
    status_code: int,
    body: dict[str, object],
    expected_kind: str,
) -> None:
    """HTTP failures should carry deterministic failure kinds and redacted messages."""

    _install_post(monkeypatch, [_json_response(body, status_code=status_code)])
    client = OpenAIChatClient(api_key="key")

    with pytest.raises(OpenAIProviderError) as exc_info:
        client.chat_completion_text(model="m", system_prompt="s", user_prompt="u")

    assert exc_info.value.failure_kind == expected_kind
    assert exc_info.value.status_code == status_code
    assert "sk-abcdefghijkl" not in str(exc_info.value)


def test_transport_timeouts_and_errors_are_classified(monkeypatch: pytest.MonkeyPatch) -> None:
    """Network timeouts should be `timeout`; other transport errors `transport`."""

    def _timeout(_url: str, **_kwargs: object) -> _MockRequestsResponse:
        raise openai_http.requests.Timeout("read timed out")

    monkeypatch.setattr("culturicon.providers.openai_client.requests.post", _timeout)
    with pytest.raises(OpenAIProviderError) as timeout_info:
        OpenAIChatClient(api_key="key").chat_completion_text(
            model="m", system_prompt="s", user_prompt="u"
        )
    assert timeout_info.value.failure_kind == "timeout"

    def _down(_url: str, **_kwargs: object) -> _MockRequestsResponse:
        raise openai_http.requests.ConnectionError("network down")

    monkeypatch.setattr("culturicon.providers.openai_client.requests.post", _down)
    with pytest.raises(OpenAIProviderError) as transport_info:
        OpenAIChatClient(api_key="key").chat_completion_text(
            model="m", system_prompt="s", user_prompt="u"
        )
    assert transport_info.value.failure_kind == "transport"


def test_malformed_chat_payload_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    """Responses without choices should raise a malformed-response error."""

    _install_post(monkeypatch, [_json_response({"choices": []})])

    with pytest.raises(OpenAIProviderError) as exc_info:
        OpenAIChatClient(api_key="key").chat_completion_text(
            model="m", system_prompt="s", user_prompt="u"
        )
    assert exc_info.value.failure_kind == "malformed_response"


def test_image_generator_generate_and_edit(monkeypatch: pytest.MonkeyPatch) -> None:
    """Generation should post JSON; edits should post multipart with the input image."""

    png = b"\x89PNG-bytes"
    encoded = base64.b64encode(png).decode("ascii")
    calls = _install_post(
        monkeypatch,
        [_json_response({"data": [{"b64_json": encoded}]}) for _ in range(2)],
    )
    generator = OpenAIImageGenerator(model="gpt-image-1", api_key="key", size="512x512")

    generated = generator.generate("a cat", timeout_seconds=30.0)
    edited = generator.generate(
        "remove background", input_image=b"raw", input_mime_type="image/jpeg"
    )

    assert generated.image_bytes == png
    assert generated.mime_type == "image/png"
    assert edited.model == "gpt-image-1"

    generate_url, generate_kwargs = calls[0]
    assert generate_url.endswith("/images/generations")
    assert generate_kwargs["json"]["size"] == "512x512"  # type: ignore[index]
    assert generate_kwargs["json"]["background"] == "transparent"  # type: ignore[index]

    edit_url, edit_kwargs = calls[1]
    assert edit_url.endswith("/images/edits")
    assert edit_kwargs["files"] == {"image": ("image.jpg", b"raw", "image/jpeg")}
    assert edit_kwargs["data"]["prompt"] == "remove background"  # type: ignore[index]


def test_image_response_without_data_is_malformed(monkeypatch: pytest.MonkeyPatch) -> None:
    """Image payloads missing `b64_json` should raise provider errors."""

    _install_post(monkeypatch, [_json_response({"data": [{}]})])

    with pytest.raises(OpenAIProviderError, match="b64_json"):
        OpenAIImageGenerator(api_key="key").generate("a cat")


def test_image_analyzer_sends_data_url_and_filters(monkeypatch: pytest.MonkeyPatch) -> None:
    """Vision analysis should attach the image and mask flagged terms."""

    calls = _install_post(
        monkeypatch, [_chat_response("A smiling dog, nothing offensive about it.")]
    )
    analyzer = OpenAIImageAnalyzer(model="gpt-4.1-mini", api_key="key")

    analysis = analyzer.analyze(b"img", "description", mime_type="image/webp")

    assert analysis.description == "A smiling dog, nothing [filtered] about it."
    assert analysis.confidence == "high"
    assert analysis.fallback is False
    content = calls[0][1]["json"]["messages"][1]["content"]  # type: ignore[index]
    assert content[1]["image_url"]["url"].startswith("data:image/webp;base64,")


def test_filter_description_bounds() -> None:
    """Short descriptions should fail; long ones should be truncated."""

    with pytest.raises(OpenAIProviderError):
        filter_description("tiny")
    truncated = filter_description("word " * 200)
    assert len(truncated) == 503
    assert truncated.endswith("...")


def test_fallback_analysis_is_low_confidence_canned_description() -> None:
    """Fallback analysis should be deterministic per analysis kind."""

    analysis = fallback_analysis("icon_elements")

    assert analysis.description == "simple icon with basic shapes and elements"
    assert analysis.confidence == "low"
    assert analysis.model is None
    assert analysis.fallback is True
    assert fallback_analysis("unknown").description == "uploaded image content"


def test_speech_synthesizer_posts_voice_and_instructions(monkeypatch: pytest.MonkeyPatch) -> None:
    """Speech synthesis should use the resolved voice and locale-aware instructions."""

    calls = _install_post(monkeypatch, [_MockRequestsResponse(payload=b"ID3-audio")])
    synthesizer = OpenAISpeechSynthesizer(model="gpt-4o-mini-tts", api_key="key")

    speech = synthesizer.synthesize("Merci", "fr-CA", "shimmer")

    assert speech.audio_bytes == b"ID3-audio"
    assert speech.mime_type == "audio/mpeg"
    assert speech.locale_code == "fr-CA"
    body = calls[0][1]["json"]
    assert body["voice"] == "shimmer"  # type: ignore[index]
    assert "fr-CA" in body["instructions"]  # type: ignore[index]


def test_speech_synthesizer_rejects_unknown_format() -> None:
    """Unsupported audio formats should be rejected at construction."""

    with pytest.raises(ValueError):
        OpenAISpeechSynthesizer(api_key="key", response_format="midi")


def test_transcriber_posts_multipart_audio(monkeypatch: pytest.MonkeyPatch) -> None:
    """Transcription should upload the audio file and return stripped text."""

    calls = _install_post(monkeypatch, [_json_response({"text": "  good morning "})])

    transcript = OpenAITranscriber(api_key="key").transcribe(
        b"webm", mime_type="audio/webm", language="en"
    )

    assert transcript.text == "good morning"
    url, kwargs = calls[0]
    assert url.endswith("/audio/transcriptions")
    assert kwargs["files"] == {"file": ("speech.webm", b"webm", "audio/webm")}
    assert kwargs["data"]["language"] == "en"  # type: ignore[index]
