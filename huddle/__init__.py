"""Community coordination backend: circles, chat, availability and meetups."""

from __future__ import annotations

from typing import Any

from .models import Community
from .store import JSONStore


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Community",
    "JSONStore",
    "create_app",
]
