"""API endpoints."""

from . import (
    reports,
    seed,
    uploads,
    users,
)

__all__ = [
    "reports",
    "seed",
    "uploads",
    "users",
]
