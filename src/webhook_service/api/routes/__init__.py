"""Route modules."""

from . import realtime, receiver, webhooks

__all__ = [
    "realtime",
    "receiver",
    "webhooks",
]
