"""Memo and supplementary-thread annotations keyed by highlight range.

The session-level ``AnnotationEngine`` lives in ``marginalia.annotations.engine``.
"""

from marginalia.annotations.stores import (
    AnnotationEntry,
    AnnotationPayload,
    AnnotationStore,
    MemoPayload,
    MemoStore,
    SupplementaryPayload,
    SupplementaryStore,
)

__all__ = [
    "AnnotationEntry",
    "AnnotationPayload",
    "AnnotationStore",
    "MemoPayload",
    "MemoStore",
    "SupplementaryPayload",
    "SupplementaryStore",
]
