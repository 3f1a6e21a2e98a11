"""
Publicize component port definitions.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from .models import Connection


class ConnectionReaderPort(Protocol):
    """Port for reading a post's available connections."""

    def list_connections(self, post_id: UUID) -> list[Connection]:
        """Return a stable snapshot of the post's connections."""
        ...


class SkipStatePort(Protocol):
    """Port for persisting per-post skip records. Both operations are idempotent."""

    def set_skip(self, post_id: UUID, connection_id: str) -> None:
        """Mark the connection as skipped for the post."""
        ...

    def clear_skip(self, post_id: UUID, connection_id: str) -> None:
        """Remove any skip record for the connection on the post."""
        ...


class PublicizeAccessPort(Protocol):
    """Port for the permission gate."""

    def can_access_connections(self, post_id: UUID) -> bool:
        """Whether the current actor may read/change the post's connections."""
        ...
