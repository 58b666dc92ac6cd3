"""Artifact persistence collaborators."""

from .artifacts import ArtifactStore, LocalArtifactStore

__all__ = ["ArtifactStore", "LocalArtifactStore"]
