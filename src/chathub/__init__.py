"""chathub — minimal real-time chat backend.

REST endpoints for users, pairwise conversations and message history,
plus a single in-process WebSocket hub for presence and live delivery.
"""

__version__ = "0.1.0"
