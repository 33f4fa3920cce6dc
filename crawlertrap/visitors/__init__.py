"""Visitor log for crawlertrap."""

from .models import VisitCategory, VisitorEvent
from .store import (
    MAX_LOG_BYTES,
    MAX_VISITORS,
    MIN_VISITORS_KEPT,
    VisitorLog,
    serialize_events,
    trim_events,
)

__all__ = [
    "MAX_LOG_BYTES",
    "MAX_VISITORS",
    "MIN_VISITORS_KEPT",
    "VisitCategory",
    "VisitorEvent",
    "VisitorLog",
    "serialize_events",
    "trim_events",
]
