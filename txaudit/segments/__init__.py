"""Segments: measured units of work attached to transactions."""

from txaudit.segments.base import Segment, TimedSegment
from txaudit.segments.http import HTTPSegment, ServerSegment
from txaudit.segments.sql import SQLSegment

__all__ = [
    "Segment",
    "TimedSegment",
    "HTTPSegment",
    "ServerSegment",
    "SQLSegment",
]
