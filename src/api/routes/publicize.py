"""
Publicize connections field for posts.

Endpoints:
- GET  /posts/{post_id}/publicize-connections  list the post's sharing connections
- POST /posts/{post_id}/publicize-connections  toggle connections by service or id
- GET  /publicize/schema                        JSON schema of the field

Only post types listed under `publicize.post_types` in rules.yaml carry the
field. Write items are merged best-effort: malformed entries, unknown ids and
unknown services are ignored rather than rejected.
"""

from __future__ import annotations

from typing import Any, Literal
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from src.api.deps import (
    get_post_repo,
    get_publicize_gate,
    get_publicize_repo,
    get_rules,
)
from src.components.publicize import (
    PERMISSION_ERROR_CODE,
    GetPostConnectionsInput,
    PublicizeAccessPort,
    PublicizeValidationError,
    UpdatePostConnectionsInput,
    connection_field_schema,
    run_get,
    run_update,
)
from src.components.publicize.ports import ConnectionReaderPort, SkipStatePort
from src.rules.models import Rules

router = APIRouter()


# --- Request/Response Models ---


UPDATE_ITEMS_DESCRIPTION = (
    "List of `{service_name?, id?, enabled}` objects. `service_name` applies to every "
    "connection of that service, `id` to exactly one. Entries that are not objects, "
    "lack a boolean `enabled`, or name neither target are ignored."
)

UPDATE_ITEMS_EXAMPLE = [
    {"service_name": "twitter", "enabled": False},
    {"id": "12345", "enabled": True},
]


class PublicizeConnectionResponse(BaseModel):
    """A connection as exposed on a post. State fields are edit-context only."""

    id: str = Field(..., description="Unique identifier for the Publicize Connection")
    service_name: str = Field(..., description="Alphanumeric identifier for the Publicize Service")
    display_name: str = Field(..., description="Username of the connected account")
    enabled: bool | None = Field(None, description="Whether to share to this connection")
    done: bool | None = Field(
        None, description="Whether Publicize has already finished sharing for this post"
    )
    toggleable: bool | None = Field(
        None, description="Whether `enabled` can be changed for this post/connection"
    )


class PublicizeErrorResponse(BaseModel):
    detail: str
    code: str


# --- Helpers ---


def _forbidden(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"code": PERMISSION_ERROR_CODE, "message": message},
    )


def _require_supported_post(
    post_id: UUID, post_repo: Any, rules: Rules, gate: PublicizeAccessPort
) -> None:
    # Refused callers get 403 whether or not the post exists
    if not gate.can_access_connections(post_id):
        raise _forbidden("Sorry, you are not allowed to access Publicize data on this site.")

    post = post_repo.get_by_id(post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    if not rules.publicize.supports(post.type):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Post type '{post.type}' does not support Publicize",
        )


def _raise_for_errors(errors: list[PublicizeValidationError]) -> None:
    if any(e.code == PERMISSION_ERROR_CODE for e in errors):
        raise _forbidden(errors[0].message)
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=[{"code": e.code, "message": e.message, "field": e.field_name} for e in errors],
    )


# --- Endpoints ---


@router.get(
    "/posts/{post_id}/publicize-connections",
    response_model=list[PublicizeConnectionResponse],
    response_model_exclude_none=True,
    responses={
        403: {"model": PublicizeErrorResponse, "description": "Not allowed"},
        404: {"model": PublicizeErrorResponse, "description": "Post not found"},
    },
    summary="List Publicize connections for a post",
)
def get_post_connections(
    post_id: UUID,
    context: Literal["view", "edit"] = Query("edit"),
    rules: Rules = Depends(get_rules),
    post_repo: Any = Depends(get_post_repo),
    reader: ConnectionReaderPort = Depends(get_publicize_repo),
    gate: PublicizeAccessPort = Depends(get_publicize_gate),
) -> list[dict[str, Any]]:
    """List the post's sharing connections."""
    _require_supported_post(post_id, post_repo, rules, gate)

    result = run_get(GetPostConnectionsInput(post_id=post_id, context=context), reader=reader, gate=gate)
    if not result.success:
        _raise_for_errors(result.errors)

    return result.connections


@router.post(
    "/posts/{post_id}/publicize-connections",
    response_model=list[PublicizeConnectionResponse],
    response_model_exclude_none=True,
    responses={
        403: {"model": PublicizeErrorResponse, "description": "Not allowed"},
        404: {"model": PublicizeErrorResponse, "description": "Post not found"},
    },
    summary="Update Publicize connections for a post",
)
def update_post_connections(
    post_id: UUID,
    items: list[Any] = Body(
        ..., description=UPDATE_ITEMS_DESCRIPTION, examples=[UPDATE_ITEMS_EXAMPLE]
    ),
    rules: Rules = Depends(get_rules),
    post_repo: Any = Depends(get_post_repo),
    repo: Any = Depends(get_publicize_repo),
    gate: PublicizeAccessPort = Depends(get_publicize_gate),
) -> list[dict[str, Any]]:
    """
    Set which connections the post will be shared to.

    - `{service_name, enabled}` applies to every connection of that service
    - `{id, enabled}` applies to one connection and overrides service settings

    Connections that are done or not toggleable keep their current value.
    Malformed entries are skipped; the rest of the batch still applies.
    """
    _require_supported_post(post_id, post_repo, rules, gate)

    reader: ConnectionReaderPort = repo
    writer: SkipStatePort = repo
    inp = UpdatePostConnectionsInput(post_id=post_id, items=items)

    result = run_update(inp, reader=reader, writer=writer, gate=gate)
    if not result.success:
        _raise_for_errors(result.errors)

    return result.connections


@router.get("/publicize/schema", summary="Publicize connections field schema")
def get_connections_schema() -> dict[str, Any]:
    return connection_field_schema()
