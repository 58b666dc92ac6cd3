"""OpenAI HTTP client utilities for image, vision, text, and speech endpoints.

Responsibilities:
- Send minimal JSON and multipart requests to OpenAI's REST API.
- Normalize response extraction for deterministic collaborator integrations.
- Raise provider exceptions carrying a `failure_kind` the invoker can classify.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import socket
from typing import Any

import requests


DEFAULT_BASE_URL = "https://api.openai.com/v1"

_AUDIO_EXTENSIONS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mp4": "m4a",
    "audio/m4a": "m4a",
    "audio/flac": "flac",
}
_IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
}


class OpenAIProviderError(RuntimeError):
    """Raised when an OpenAI provider request fails or returns malformed output."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "malformed_response",
        status_code: int | None = None,
        provider_code: str | None = None,
    ) -> None:
        """Initialize provider error metadata for classification and diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_code = provider_code


class _OpenAIBaseClient:
    """Shared OpenAI HTTP settings and helpers used by endpoint-specific clients."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 60.0,
    ) -> None:
        """Initialize OpenAI HTTP client settings."""

        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def _require_api_key(self) -> None:
        """Require API key presence before issuing OpenAI requests."""

        if not self.api_key:
            raise OpenAIProviderError(
                "Missing OpenAI API key. Set `OPENAI_API_KEY`, use `--api-key`, or store "
                "one with `culturicon credentials`.",
                failure_kind="invalid_api_key",
            )

    def _post_bytes(
        self,
        *,
        endpoint_path: str,
        json_payload: dict[str, Any] | None = None,
        form_fields: dict[str, str] | None = None,
        files: dict[str, tuple[str, bytes, str]] | None = None,
        timeout_seconds: float | None = None,
        empty_response_message: str = "OpenAI response is empty.",
    ) -> bytes:
        """POST a JSON or multipart payload and map failures consistently."""

        self._require_api_key()

        endpoint = f"{self.base_url}{endpoint_path}"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        request_kwargs: dict[str, Any] = {
            "headers": headers,
            "timeout": timeout_seconds if timeout_seconds is not None else self.timeout_seconds,
        }
        if files is not None:
            request_kwargs["data"] = form_fields or {}
            request_kwargs["files"] = files
        else:
            headers["Content-Type"] = "application/json"
            request_kwargs["json"] = json_payload or {}

        try:
            response = requests.post(endpoint, **request_kwargs)
            response.raise_for_status()
            response_bytes = bytes(response.content)
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except requests.RequestException as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = "OpenAI request timed out."
            else:
                detail = (
                    "OpenAI request transport error: "
                    f"{self._short_message(self._redact_sensitive_tokens(str(exc)))}"
                )
            raise OpenAIProviderError(detail, failure_kind=failure_kind) from exc
        except TimeoutError as exc:
            raise OpenAIProviderError(
                "OpenAI request timed out.",
                failure_kind="timeout",
            ) from exc

        if not response_bytes:
            raise OpenAIProviderError(empty_response_message)
        return response_bytes

    def _post_json(self, **kwargs: Any) -> dict[str, Any]:
        """POST a request and decode the JSON object response."""

        raw_payload = self._post_bytes(**kwargs)
        try:
            payload = json.loads(raw_payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise OpenAIProviderError("OpenAI returned invalid JSON payload.") from exc
        if not isinstance(payload, dict):
            raise OpenAIProviderError("OpenAI returned a non-object JSON payload.")
        return payload

    @staticmethod
    def _decode_error_body(exc: requests.HTTPError) -> str:
        """Decode an HTTP error body into a best-effort UTF-8 payload string."""

        response = exc.response
        if response is None:
            return ""
        return bytes(response.content or b"").decode("utf-8", errors="replace").strip()

    @classmethod
    def _redact_sensitive_tokens(cls, text: str) -> str:
        """Redact API-key-like tokens from provider error content."""

        redacted = re.sub(r"\bsk-[A-Za-z0-9_-]{8,}\b", "[redacted-key]", text)
        redacted = re.sub(
            r"(?i)bearer\s+[A-Za-z0-9._-]{12,}",
            "Bearer [redacted-token]",
            redacted,
        )
        return redacted

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_provider_message(cls, body: str) -> tuple[str, str | None]:
        """Extract a concise provider-facing message and optional provider error code."""

        if not body:
            return "", None

        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return cls._short_message(cls._redact_sensitive_tokens(body)), None

        provider_code: str | None = None
        message: str | None = None
        if isinstance(payload, dict):
            error_payload = payload.get("error")
            if isinstance(error_payload, dict):
                code_value = error_payload.get("code")
                if isinstance(code_value, str) and code_value.strip():
                    provider_code = code_value.strip()
                message_value = error_payload.get("message")
                if isinstance(message_value, str) and message_value.strip():
                    message = message_value.strip()

        if message is None:
            message = body

        return cls._short_message(cls._redact_sensitive_tokens(message)), provider_code

    @staticmethod
    def _classify_http_failure(
        status_code: int,
        provider_message: str,
        provider_code: str | None,
    ) -> str:
        """Classify OpenAI HTTP errors into deterministic failure kinds."""

        message_lower = provider_message.lower()
        normalized_code = provider_code.lower() if provider_code is not None else ""

        if status_code == 401 or "api key" in message_lower:
            return "invalid_api_key"
        if normalized_code == "insufficient_quota" or (
            status_code == 429 and "quota" in message_lower
        ):
            return "insufficient_quota"
        if normalized_code == "model_not_found" or status_code == 404 or (
            "model" in message_lower
            and any(phrase in message_lower for phrase in ("not found", "does not exist"))
        ):
            return "model_not_found"
        if status_code == 429:
            return "rate_limited"
        if status_code in {408, 504} or "timeout" in message_lower or "timed out" in message_lower:
            return "timeout"
        if status_code >= 500:
            return "server_error"
        if status_code in {400, 413, 415, 422}:
            return "invalid_request"
        return "http_error"

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Classify network-layer failures into deterministic failure kinds."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    @classmethod
    def _http_error_to_provider_error(cls, exc: requests.HTTPError) -> OpenAIProviderError:
        """Convert HTTP errors into normalized provider exceptions with metadata."""

        status_code = exc.response.status_code if exc.response is not None else 0
        body = cls._decode_error_body(exc)
        provider_message, provider_code = cls._extract_provider_message(body)
        failure_kind = cls._classify_http_failure(status_code, provider_message, provider_code)

        headline = {
            "invalid_api_key": "OpenAI authentication failed",
            "insufficient_quota": "OpenAI quota is insufficient for this request",
            "model_not_found": "OpenAI model or endpoint is unavailable",
            "rate_limited": "OpenAI rate limit reached",
            "timeout": "OpenAI request timed out",
            "server_error": "OpenAI server error",
            "invalid_request": "OpenAI rejected the request",
        }.get(failure_kind, "OpenAI request failed")

        if provider_message:
            detail = f"{headline} (HTTP {status_code}): {provider_message}"
        else:
            detail = f"{headline} (HTTP {status_code})."

        return OpenAIProviderError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            provider_code=provider_code,
        )


class OpenAIChatClient(_OpenAIBaseClient):
    """Minimal requests-based OpenAI chat-completions client, including vision input."""

    def chat_completion_text(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.0,
        image_bytes: bytes | None = None,
        image_mime_type: str = "image/png",
        timeout_seconds: float | None = None,
    ) -> str:
        """Return the first assistant text response from a chat-completions request.

        When `image_bytes` is given, the image is attached to the user message as a
        base64 data URL so vision-capable models can describe it.
        """

        user_content: str | list[dict[str, Any]] = user_prompt
        if image_bytes is not None:
            encoded = base64.b64encode(image_bytes).decode("ascii")
            user_content = [
                {"type": "text", "text": user_prompt},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image_mime_type};base64,{encoded}"},
                },
            ]

        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "temperature": temperature,
        }
        response_payload = self._post_json(
            endpoint_path="/chat/completions",
            json_payload=payload,
            timeout_seconds=timeout_seconds,
        )
        return self._extract_message_text(response_payload)

    @staticmethod
    def _extract_message_text(payload: dict[str, Any]) -> str:
        """Extract first assistant message text from a chat-completions payload."""

        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise OpenAIProviderError("OpenAI response missing non-empty `choices` list.")

        first_choice = choices[0]
        if not isinstance(first_choice, dict):
            raise OpenAIProviderError("OpenAI response `choices[0]` is malformed.")

        message = first_choice.get("message")
        if not isinstance(message, dict):
            raise OpenAIProviderError("OpenAI response missing `choices[0].message` object.")

        text = OpenAIChatClient._message_content_to_text(message.get("content"))
        normalized = text.strip()
        if not normalized:
            raise OpenAIProviderError("OpenAI response message content is empty.")
        return normalized

    @staticmethod
    def _message_content_to_text(content: Any) -> str:
        """Convert OpenAI message content variants into a plain text string."""

        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts: list[str] = []
            for item in content:
                if not isinstance(item, dict):
                    continue
                if item.get("type") == "text" and isinstance(item.get("text"), str):
                    parts.append(item["text"])
            return "".join(parts)
        return ""


class OpenAIImageClient(_OpenAIBaseClient):
    """Minimal requests-based OpenAI image generation and edit client."""

    def generate_image(
        self,
        *,
        model: str,
        prompt: str,
        size: str = "1024x1024",
        background: str = "transparent",
        timeout_seconds: float | None = None,
    ) -> bytes:
        """Return PNG bytes generated from `prompt` via `/images/generations`."""

        payload = {
            "model": model,
            "prompt": prompt,
            "size": size,
            "background": background,
            "output_format": "png",
            "n": 1,
        }
        response_payload = self._post_json(
            endpoint_path="/images/generations",
            json_payload=payload,
            timeout_seconds=timeout_seconds,
        )
        return self._extract_image_bytes(response_payload)

    def edit_image(
        self,
        *,
        model: str,
        prompt: str,
        image_bytes: bytes,
        mime_type: str = "image/png",
        background: str = "transparent",
        timeout_seconds: float | None = None,
    ) -> bytes:
        """Return PNG bytes of `image_bytes` edited per `prompt` via `/images/edits`."""

        extension = _IMAGE_EXTENSIONS.get(mime_type.lower(), "png")
        response_payload = self._post_json(
            endpoint_path="/images/edits",
            form_fields={
                "model": model,
                "prompt": prompt,
                "background": background,
                "output_format": "png",
            },
            files={"image": (f"image.{extension}", image_bytes, mime_type)},
            timeout_seconds=timeout_seconds,
        )
        return self._extract_image_bytes(response_payload)

    @staticmethod
    def _extract_image_bytes(payload: dict[str, Any]) -> bytes:
        """Decode the first base64 image from an images response payload."""

        data = payload.get("data")
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            raise OpenAIProviderError("OpenAI image response missing non-empty `data` list.")

        encoded = data[0].get("b64_json")
        if not isinstance(encoded, str) or not encoded.strip():
            raise OpenAIProviderError("OpenAI image response missing `data[0].b64_json`.")
        try:
            image_bytes = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise OpenAIProviderError("OpenAI image response contains invalid base64.") from exc
        if not image_bytes:
            raise OpenAIProviderError("OpenAI image response is empty.")
        return image_bytes


class OpenAISpeechClient(_OpenAIBaseClient):
    """Minimal requests-based OpenAI speech client for TTS synthesis."""

    def synthesize_speech(
        self,
        *,
        model: str,
        voice: str,
        text: str,
        response_format: str = "mp3",
        instructions: str | None = None,
        speed: float = 1.0,
        timeout_seconds: float | None = None,
    ) -> bytes:
        """Return synthesized audio bytes from OpenAI `/audio/speech`."""

        payload: dict[str, Any] = {
            "model": model,
            "voice": voice,
            "input": text,
            "response_format": response_format,
            "speed": speed,
        }
        if instructions:
            payload["instructions"] = instructions
        return self._post_bytes(
            endpoint_path="/audio/speech",
            json_payload=payload,
            timeout_seconds=timeout_seconds,
            empty_response_message="OpenAI speech response is empty.",
        )


class OpenAITranscriptionClient(_OpenAIBaseClient):
    """Minimal requests-based OpenAI speech-to-text client."""

    def transcribe_audio(
        self,
        *,
        model: str,
        audio_bytes: bytes,
        mime_type: str = "audio/webm",
        language: str | None = None,
        timeout_seconds: float | None = None,
    ) -> str:
        """Return transcribed text from OpenAI `/audio/transcriptions`."""

        extension = _AUDIO_EXTENSIONS.get(mime_type.lower(), "webm")
        form_fields = {"model": model, "response_format": "json"}
        if language:
            form_fields["language"] = language
        response_payload = self._post_json(
            endpoint_path="/audio/transcriptions",
            form_fields=form_fields,
            files={"file": (f"speech.{extension}", audio_bytes, mime_type)},
            timeout_seconds=timeout_seconds,
        )
        text = response_payload.get("text")
        if not isinstance(text, str) or not text.strip():
            raise OpenAIProviderError("OpenAI transcription response is empty.")
        return text.strip()
