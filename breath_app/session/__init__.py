"""
Session store module.

Owns the canonical breathing state and exposes the control and read
surfaces used by renderers and input collaborators.
"""

from .store import SessionStore, SessionView

__all__ = ["SessionStore", "SessionView"]
