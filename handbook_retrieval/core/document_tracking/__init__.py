"""
Document tracking.

Exports: DocumentTracker, DocumentRecord, TrackingSnapshot, TrackingStats
"""

from .document_tracker import DocumentTracker
from .models import DocumentRecord, TrackingSnapshot, TrackingStats

__all__ = [
    "DocumentTracker",
    "DocumentRecord",
    "TrackingSnapshot",
    "TrackingStats",
]
