"""Opaque identifier generation."""

from __future__ import annotations

from uuid import uuid4


def generate_id() -> str:
    """Return a new unique id for tasks, fields, options, views and rules."""
    return uuid4().hex
