"""Speech provider abstractions.

This package contains synthesizer and transcriber interfaces used by the speech
request path and the optional label audio sub-chain.
"""

from .synthesizer import OpenAISpeechSynthesizer, SpeechSynthesizer
from .transcriber import OpenAITranscriber, Transcriber

__all__ = ["OpenAISpeechSynthesizer", "OpenAITranscriber", "SpeechSynthesizer", "Transcriber"]
