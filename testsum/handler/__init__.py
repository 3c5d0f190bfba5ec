"""Handler module - The event handler of the testsum command."""

from .event_handler import EventHandler, new_event_handler

__all__ = [
    "EventHandler",
    "new_event_handler",
]
