"""
Publicize component - per-post connection listing and toggling.

Shell Layer - checks the permission gate, reads the connection snapshot,
runs the functional core and writes skip records.
"""

from __future__ import annotations

import logging

from ._impl import (
    apply_result,
    changed_ids,
    parse_update_items,
    persist_skip_state,
    project_connections,
    reconcile,
)
from .models import (
    GetPostConnectionsInput,
    PostConnectionsOutput,
    PublicizeValidationError,
    UpdatePostConnectionsInput,
    UpdatePostConnectionsOutput,
)
from .ports import ConnectionReaderPort, PublicizeAccessPort, SkipStatePort

logger = logging.getLogger(__name__)

PERMISSION_ERROR_CODE = "invalid_user_permission_publicize"


def _permission_error() -> PublicizeValidationError:
    return PublicizeValidationError(
        code=PERMISSION_ERROR_CODE,
        message="Sorry, you are not allowed to access Publicize data on this site.",
    )


def run_get(
    inp: GetPostConnectionsInput,
    *,
    reader: ConnectionReaderPort,
    gate: PublicizeAccessPort,
) -> PostConnectionsOutput:
    """List a post's connections, projected for the requested context."""
    if not gate.can_access_connections(inp.post_id):
        logger.warning("Publicize read refused for post %s", inp.post_id)
        return PostConnectionsOutput(errors=[_permission_error()], success=False)

    connections = reader.list_connections(inp.post_id)
    return PostConnectionsOutput(
        connections=project_connections(connections, inp.context),
    )


def run_update(
    inp: UpdatePostConnectionsInput,
    *,
    reader: ConnectionReaderPort,
    writer: SkipStatePort,
    gate: PublicizeAccessPort,
) -> UpdatePostConnectionsOutput:
    """
    Reconcile requested toggles against the post's connections and persist.

    Malformed items, unknown ids and unknown service names are ignored.
    Changes to done or non-toggleable connections are dropped without error.
    """
    if not gate.can_access_connections(inp.post_id):
        logger.warning("Publicize update refused for post %s", inp.post_id)
        return UpdatePostConnectionsOutput(errors=[_permission_error()], success=False)

    available = reader.list_connections(inp.post_id)

    updates = parse_update_items(inp.items)
    dropped = len(inp.items) - len(updates)
    if dropped:
        logger.debug("Ignored %d malformed publicize item(s) for post %s", dropped, inp.post_id)

    result = reconcile(available, updates)
    persist_skip_state(inp.post_id, result, writer)

    changed = changed_ids(available, result)
    logger.info(
        "Reconciled %d publicize connection(s) for post %s, %d changed",
        len(result),
        inp.post_id,
        len(changed),
    )

    return UpdatePostConnectionsOutput(
        connections=project_connections(apply_result(available, result), inp.context),
        changed_ids=changed,
    )
