from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
RoleType = Literal["owner", "admin", "editor", "author", "contributor"]
PostStatus = Literal["draft", "pending", "future", "publish", "private"]

# --- User & Auth ---

class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    display_name: str
    password_hash: str = ""
    roles: list[RoleType] = Field(default_factory=list)
    status: Literal["active", "disabled"] = "active"
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

# --- Posts ---

class Post(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    type: str = "post"
    title: str = ""
    status: PostStatus = "draft"
    author_user_id: UUID
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

# --- Publicize ---

class PublicizeConnectionRecord(BaseModel):
    """
    Stored sharing connection. Carries credentials that must never be exposed;
    the publicize component only ever sees the allow-listed Connection view.
    """
    unique_id: str
    service_name: str
    display_name: str = ""
    external_id: str | None = None
    access_token: str | None = None
    # None means the connection is shared with every user of the site
    owner_user_id: UUID | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
