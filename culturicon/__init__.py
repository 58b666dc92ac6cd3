"""Top-level package for Culturicon.

Culturicon turns short text, uploaded images, and recorded speech into
culturally adapted communication-board artifacts: icons, translations, and
spoken audio. The main orchestration entry point is `GenerationOrchestrator`.
"""

from .pipeline import GenerationOrchestrator

__all__ = ["GenerationOrchestrator", "__version__"]

__version__ = "0.1.0"
