"""
API routers for seva.

Each module defines one resource's routes; ``seva.api.app`` mounts them.
"""

from . import events, notifications, profile, registrations, services, temples

__all__ = [
    "events",
    "notifications",
    "profile",
    "registrations",
    "services",
    "temples",
]
