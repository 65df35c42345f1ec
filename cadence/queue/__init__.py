"""
Queue Module - ranked queue and session slices.
"""

from cadence.queue.builder import QueueEntry, build_queue, get_session_slice

__all__ = ["QueueEntry", "build_queue", "get_session_slice"]
