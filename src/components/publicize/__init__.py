"""
Publicize component - per-post social sharing connections.
"""

from ._impl import (
    apply_result,
    changed_ids,
    connection_field_schema,
    is_mutable,
    parse_update_item,
    parse_update_items,
    persist_skip_state,
    project_connection,
    project_connections,
    reconcile,
    requested_changes,
)
from .component import PERMISSION_ERROR_CODE, run_get, run_update
from .models import (
    VIEW_FIELDS,
    VISIBLE_FIELDS,
    Connection,
    ConnectionUpdate,
    FieldContext,
    GetPostConnectionsInput,
    PostConnectionsOutput,
    PublicizeValidationError,
    UpdatePostConnectionsInput,
    UpdatePostConnectionsOutput,
)
from .ports import (
    ConnectionReaderPort,
    PublicizeAccessPort,
    SkipStatePort,
)

__all__ = [
    # Entry points
    "run_get",
    "run_update",
    "PERMISSION_ERROR_CODE",
    # Pure functions
    "reconcile",
    "requested_changes",
    "is_mutable",
    "apply_result",
    "changed_ids",
    "parse_update_item",
    "parse_update_items",
    "persist_skip_state",
    "project_connection",
    "project_connections",
    "connection_field_schema",
    # Constants
    "VISIBLE_FIELDS",
    "VIEW_FIELDS",
    # Models
    "Connection",
    "ConnectionUpdate",
    "FieldContext",
    "GetPostConnectionsInput",
    "UpdatePostConnectionsInput",
    "PostConnectionsOutput",
    "UpdatePostConnectionsOutput",
    "PublicizeValidationError",
    # Ports
    "ConnectionReaderPort",
    "SkipStatePort",
    "PublicizeAccessPort",
]
