"""
Publicize component input/output models.

Connections are read-only snapshots supplied by the host; update items are the
loose `{service_name?, id?, enabled}` entries posted by API callers.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal
from uuid import UUID

# --- Types ---

FieldContext = Literal["view", "edit"]

# Fields a connection exposes externally, in schema order.
VISIBLE_FIELDS: tuple[str, ...] = (
    "id",
    "service_name",
    "display_name",
    "enabled",
    "done",
    "toggleable",
)

# Fields readable in the "view" context; the rest are edit-only.
VIEW_FIELDS: frozenset[str] = frozenset({"id", "service_name", "display_name"})


# --- Validation Error ---


@dataclass(frozen=True)
class PublicizeValidationError:
    """Publicize operation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Domain Records ---


@dataclass(frozen=True)
class Connection:
    """
    Snapshot of one sharing connection for a given post.

    `unique_id` is always a string, even when the source id is numeric.
    """

    unique_id: str
    service_name: str
    display_name: str
    enabled: bool
    done: bool
    toggleable: bool

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Connection:
        """Build a connection from a storage record, ignoring unknown keys."""
        return cls(
            unique_id=str(record["unique_id"]),
            service_name=str(record["service_name"]),
            display_name=str(record.get("display_name") or ""),
            enabled=bool(record.get("enabled", False)),
            done=bool(record.get("done", False)),
            toggleable=bool(record.get("toggleable", False)),
        )


@dataclass(frozen=True)
class ConnectionUpdate:
    """
    One requested change.

    Either `service_name` (all connections of that service) or
    `connection_id` (exactly one connection) is set; both may be.
    """

    enabled: bool
    service_name: str | None = None
    connection_id: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class GetPostConnectionsInput:
    """Input for reading a post's connections."""

    post_id: UUID
    context: FieldContext = "edit"


@dataclass(frozen=True)
class UpdatePostConnectionsInput:
    """Input for toggling a post's connections."""

    post_id: UUID
    items: list[Any] = field(default_factory=list)
    context: FieldContext = "edit"


# --- Output Models ---


@dataclass(frozen=True)
class PostConnectionsOutput:
    """Projected connections for a post."""

    connections: list[dict[str, Any]] = field(default_factory=list)
    errors: list[PublicizeValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class UpdatePostConnectionsOutput:
    """Result of a reconciliation pass."""

    connections: list[dict[str, Any]] = field(default_factory=list)
    changed_ids: list[str] = field(default_factory=list)
    errors: list[PublicizeValidationError] = field(default_factory=list)
    success: bool = True
