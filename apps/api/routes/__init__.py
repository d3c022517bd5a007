"""Route modules exposed by the API package."""

from . import health, tickets, users

__all__ = ["health", "tickets", "users"]
