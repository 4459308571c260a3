"""Models package for database models."""

from app.models.invoice import Invoice

__all__ = [
    "Invoice",
]
