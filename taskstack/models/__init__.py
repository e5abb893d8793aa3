"""Core data models for taskstack."""

from .enums import CollectionState, StepStatus
from .result import Result, CollectionResult
from .step import StepRecord

__all__ = [
    "CollectionState",
    "StepStatus",
    "Result",
    "CollectionResult",
    "StepRecord",
]
