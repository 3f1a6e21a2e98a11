import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from src.adapters.sqlite.repos import SQLitePostRepo, SQLitePublicizeRepo, SQLiteUserRepo
from src.api.auth_utils import read_token_subject
from src.domain.entities import User
from src.domain.policy import PolicyEngine
from src.rules.loader import load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("PUBLICIZE_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "publicize.db")
        self.rules_path = self.base_dir / "rules.yaml"
        self.migrations_dir = self.base_dir / "migrations"


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


# --- Repos ---
def get_user_repo(settings: Settings = Depends(get_settings)) -> SQLiteUserRepo:
    return SQLiteUserRepo(settings.db_path)


def get_post_repo(settings: Settings = Depends(get_settings)) -> SQLitePostRepo:
    return SQLitePostRepo(settings.db_path)


# --- Services ---
def get_policy(rules: Rules = Depends(get_rules)) -> PolicyEngine:
    return PolicyEngine(rules)


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
) -> User:
    # 1. Cookie first (HttpOnly), then the Authorization header
    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ")[1]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 2. Verify
    user_id = read_token_subject(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 3. Fetch User
    user = user_repo.get_by_id(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if user.status != "active":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user",
        )

    return user


# --- Publicize ports ---
def get_publicize_repo(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
    current_user: User = Depends(get_current_user),
) -> SQLitePublicizeRepo:
    """Connection reader/skip writer bound to the acting user."""
    return SQLitePublicizeRepo(settings.db_path, rules=rules.publicize, actor_id=current_user.id)


class PolicyAccessGate:
    """Adapter mapping PolicyEngine onto the publicize PublicizeAccessPort."""

    def __init__(self, policy: PolicyEngine, user: User, post_repo: SQLitePostRepo):
        self._policy = policy
        self._user = user
        self._post_repo = post_repo

    def can_access_connections(self, post_id: UUID) -> bool:
        # Unknown posts fall back to role grants; ownership rules need a post
        post = self._post_repo.get_by_id(post_id)
        return self._policy.can_access_publicize(self._user, post)


def get_publicize_gate(
    policy: PolicyEngine = Depends(get_policy),
    current_user: User = Depends(get_current_user),
    post_repo: SQLitePostRepo = Depends(get_post_repo),
) -> PolicyAccessGate:
    return PolicyAccessGate(policy, current_user, post_repo)
