"""Test factories for segments and captured log entries."""

from tests.factories.segments import RecordingHook, SegmentFactory

__all__ = [
    "RecordingHook",
    "SegmentFactory",
]
