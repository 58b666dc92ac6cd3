"""Generation pipeline: invoker, sanitizer, state machine, and orchestrator."""

from .collaborators import PipelineCollaborators
from .invoker import ExponentialBackoff, ModelInvoker, classify_failure, retry_call
from .orchestrator import GenerationOrchestrator
from .sanitizer import Sanitizer
from .states import IllegalStateTransition, PipelineState, StateTracker

__all__ = [
    "ExponentialBackoff",
    "GenerationOrchestrator",
    "IllegalStateTransition",
    "ModelInvoker",
    "PipelineCollaborators",
    "PipelineState",
    "Sanitizer",
    "StateTracker",
    "classify_failure",
    "retry_call",
]
