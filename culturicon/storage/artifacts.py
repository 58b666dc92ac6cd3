"""Artifact storage abstraction.

Responsibilities:
- Define the narrow store contract the pipeline hands finished artifacts to.
- Provide deterministic filesystem storage with JSON metadata sidecars.
"""

from __future__ import annotations

import json
import re
import uuid
from pathlib import Path
from typing import Any, Mapping, Protocol

from ..models.datatypes import StoredArtifact


_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
    "audio/aac": "aac",
    "audio/flac": "flac",
    "text/plain": "txt",
}


class ArtifactStore(Protocol):
    """Contract for persisting generated artifacts."""

    def store(
        self,
        owner_id: str,
        data: bytes,
        mime_type: str,
        metadata: Mapping[str, Any],
    ) -> StoredArtifact:
        """Persist `data` for `owner_id` and return its identity."""


class LocalArtifactStore:
    """Filesystem-backed artifact store.

    Artifacts are written to `<root>/<owner>/<artifact_id>.<ext>` with a
    `<artifact_id>.json` metadata sidecar.
    """

    def __init__(self, root: Path) -> None:
        """Initialize the store with a root output directory."""

        self.root = root

    def store(
        self,
        owner_id: str,
        data: bytes,
        mime_type: str,
        metadata: Mapping[str, Any],
    ) -> StoredArtifact:
        """Write artifact bytes plus metadata and return the stored identity."""

        owner_dir = self.root / self._safe_segment(owner_id)
        owner_dir.mkdir(parents=True, exist_ok=True)

        artifact_id = uuid.uuid4().hex
        extension = _EXTENSIONS.get(mime_type.lower(), "bin")
        path = owner_dir / f"{artifact_id}.{extension}"
        path.write_bytes(data)

        sidecar = {
            "artifact_id": artifact_id,
            "owner_id": owner_id,
            "mime_type": mime_type,
            "size": len(data),
            "file_name": path.name,
            "metadata": dict(metadata),
        }
        (owner_dir / f"{artifact_id}.json").write_text(
            json.dumps(sidecar, ensure_ascii=False, indent=2, sort_keys=True, default=str),
            encoding="utf-8",
        )
        return StoredArtifact(
            artifact_id=artifact_id,
            public_url=path.resolve().as_uri(),
            size=len(data),
        )

    def load_metadata(self, owner_id: str, artifact_id: str) -> dict[str, Any]:
        """Load the metadata sidecar of a stored artifact."""

        path = self.root / self._safe_segment(owner_id) / f"{artifact_id}.json"
        return json.loads(path.read_text(encoding="utf-8"))

    @staticmethod
    def _safe_segment(value: str) -> str:
        """Return a filesystem-safe directory name for an owner id."""

        collapsed = re.sub(r"[^A-Za-z0-9._-]+", "-", value.strip()).strip("-.")
        if not collapsed:
            raise ValueError("Owner id must contain at least one filesystem-safe character.")
        return collapsed
