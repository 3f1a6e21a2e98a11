"""
Publicize connections - functional core.

Reconciles requested enable/disable changes against a post's connection
snapshot, projects connections for external exposure, and drives the skip
record resync through the SkipStatePort.

Invariants:
- id-scoped updates override service-scoped updates for the same connection
- connections that are done or not toggleable keep their enabled value
- every connection in the snapshot is resynced on each pass
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any
from uuid import UUID

from .models import (
    VIEW_FIELDS,
    VISIBLE_FIELDS,
    Connection,
    ConnectionUpdate,
    FieldContext,
)
from .ports import SkipStatePort

# --- Request Parsing ---


def _coerce_id(value: Any) -> str | None:
    # bool is an int subclass; `true` is not a connection id
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int)):
        return str(value)
    return None


def parse_update_item(raw: Any) -> ConnectionUpdate | None:
    """
    Convert one loose request item into a ConnectionUpdate.

    Returns None for malformed items: non-mappings, items without a boolean
    `enabled`, and items carrying neither `service_name` nor `id`.
    """
    if not isinstance(raw, Mapping):
        return None

    enabled = raw.get("enabled")
    if not isinstance(enabled, bool):
        return None

    service_name = raw.get("service_name")
    if not isinstance(service_name, str):
        service_name = None

    connection_id = _coerce_id(raw.get("id"))

    if service_name is None and connection_id is None:
        return None

    return ConnectionUpdate(
        enabled=enabled,
        service_name=service_name,
        connection_id=connection_id,
    )


def parse_update_items(raw_items: Iterable[Any]) -> list[ConnectionUpdate]:
    """Parse a request payload, silently dropping malformed items."""
    updates: list[ConnectionUpdate] = []
    for raw in raw_items:
        update = parse_update_item(raw)
        if update is not None:
            updates.append(update)
    return updates


# --- Reconciliation ---


def requested_changes(
    available: Sequence[Connection],
    updates: Sequence[ConnectionUpdate],
) -> dict[str, bool]:
    """
    Collect pending changes before the immutability guard is applied.

    Service-name updates are applied first, then id updates, so an id always
    wins over a service name regardless of request order. Within each pass
    the last matching update wins.
    """
    by_unique_id: dict[str, Connection] = {}
    by_service_name: dict[str, list[Connection]] = {}
    for connection in available:
        by_unique_id[connection.unique_id] = connection
        by_service_name.setdefault(connection.service_name, []).append(connection)

    pending: dict[str, bool] = {}

    for update in updates:
        if update.service_name is None:
            continue
        for connection in by_service_name.get(update.service_name, []):
            pending[connection.unique_id] = update.enabled

    for update in updates:
        if update.connection_id is None:
            continue
        if update.connection_id not in by_unique_id:
            continue
        pending[update.connection_id] = update.enabled

    return pending


def is_mutable(connection: Connection) -> bool:
    """A connection's enabled flag may change only while not done and toggleable."""
    return not connection.done and connection.toggleable


def reconcile(
    available: Sequence[Connection],
    updates: Sequence[ConnectionUpdate],
) -> dict[str, bool]:
    """
    Compute the final enabled state of every available connection.

    Args:
        available: Connection snapshot for the post
        updates: Parsed update items, in request order

    Returns:
        Mapping of unique_id to final enabled value, one entry per connection
    """
    pending = requested_changes(available, updates)

    result: dict[str, bool] = {}
    for connection in available:
        enabled = connection.enabled
        if connection.unique_id in pending and is_mutable(connection):
            enabled = pending[connection.unique_id]
        result[connection.unique_id] = enabled

    return result


def apply_result(
    available: Sequence[Connection],
    result: Mapping[str, bool],
) -> list[Connection]:
    """Return the snapshot with reconciled enabled values."""
    applied: list[Connection] = []
    for connection in available:
        enabled = result.get(connection.unique_id, connection.enabled)
        if enabled == connection.enabled:
            applied.append(connection)
        else:
            applied.append(
                Connection(
                    unique_id=connection.unique_id,
                    service_name=connection.service_name,
                    display_name=connection.display_name,
                    enabled=enabled,
                    done=connection.done,
                    toggleable=connection.toggleable,
                )
            )
    return applied


def changed_ids(
    available: Sequence[Connection],
    result: Mapping[str, bool],
) -> list[str]:
    """Ids whose reconciled value differs from the snapshot, in snapshot order."""
    return [
        c.unique_id
        for c in available
        if c.unique_id in result and result[c.unique_id] != c.enabled
    ]


# --- Persistence ---


def persist_skip_state(
    post_id: UUID,
    result: Mapping[str, bool],
    writer: SkipStatePort,
) -> None:
    """
    Resync skip records with the reconciled state.

    Runs for every connection, changed or not: enabled clears the skip
    record, disabled sets it.
    """
    for unique_id, enabled in result.items():
        if enabled:
            writer.clear_skip(post_id, unique_id)
        else:
            writer.set_skip(post_id, unique_id)


# --- Read Projection ---


def project_connection(
    connection: Connection,
    context: FieldContext = "edit",
) -> dict[str, Any]:
    """Allow-list projection of a connection for API consumers."""
    values: dict[str, Any] = {
        "id": str(connection.unique_id),
        "service_name": connection.service_name,
        "display_name": connection.display_name,
        "enabled": connection.enabled,
        "done": connection.done,
        "toggleable": connection.toggleable,
    }
    if context == "view":
        return {k: values[k] for k in VISIBLE_FIELDS if k in VIEW_FIELDS}
    return {k: values[k] for k in VISIBLE_FIELDS}


def project_connections(
    connections: Iterable[Connection],
    context: FieldContext = "edit",
) -> list[dict[str, Any]]:
    return [project_connection(c, context) for c in connections]


# --- Schema ---


def connection_field_schema() -> dict[str, Any]:
    """JSON schema (draft-04) of the per-post connections field."""
    item_schema = {
        "$schema": "http://json-schema.org/draft-04/schema#",
        "title": "publicize-post-connection",
        "type": "object",
        "properties": {
            "id": {
                "description": "Unique identifier for the Publicize Connection",
                "type": "string",
                "context": ["view", "edit"],
                "readonly": True,
            },
            "service_name": {
                "description": "Alphanumeric identifier for the Publicize Service",
                "type": "string",
                "context": ["view", "edit"],
                "readonly": True,
            },
            "display_name": {
                "description": "Username of the connected account",
                "type": "string",
                "context": ["view", "edit"],
                "readonly": True,
            },
            "enabled": {
                "description": "Whether to share to this connection",
                "type": "boolean",
                "context": ["edit"],
            },
            "done": {
                "description": "Whether Publicize has already finished sharing for this post",
                "type": "boolean",
                "context": ["edit"],
                "readonly": True,
            },
            "toggleable": {
                "description": "Whether `enabled` can be changed for this post/connection",
                "type": "boolean",
                "context": ["edit"],
                "readonly": True,
            },
        },
    }
    return {
        "$schema": "http://json-schema.org/draft-04/schema#",
        "title": "publicize-post-connections",
        "type": "array",
        "context": ["view", "edit"],
        "items": item_schema,
        "default": [],
    }
