"""Session domain services: store, lifecycle and broadcast.

The lifecycle engine owns the rules; the store owns the mapping and its
persistence; the broadcaster fans state out to rooms. Socket handlers
and the app factory wire them together, keeping transport concerns
separate from session mechanics.
"""

from .broadcast import Broadcaster, room_for
from .lifecycle import Outcome, Result, SessionLifecycle
from .store import SessionStore

__all__ = ['Broadcaster', 'Outcome', 'Result', 'SessionLifecycle', 'SessionStore', 'room_for']
