"""
Review (annotation) of extracted candidates.
"""

from .session import (
    AnnotationError,
    AnnotationSession,
    NoOpenSessionError,
    SessionAlreadyOpenError,
)

__all__ = [
    "AnnotationError",
    "AnnotationSession",
    "NoOpenSessionError",
    "SessionAlreadyOpenError",
]
