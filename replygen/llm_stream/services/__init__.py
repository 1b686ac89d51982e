from .cancellation import CancellationService
from .failure_classifier import classify, disposition_text
from .generation_orchestrator import GenerationOrchestrator
from .staleness import StalenessChecker
from .throttle import BroadcastThrottle

__all__ = [
    "BroadcastThrottle",
    "CancellationService",
    "GenerationOrchestrator",
    "StalenessChecker",
    "classify",
    "disposition_text",
]
