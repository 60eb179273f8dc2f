"""Ephemeral room presence with a single-active-room invariant."""

from .tracker import PresenceTracker

__all__ = ["PresenceTracker"]
