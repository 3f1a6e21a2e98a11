"""
Tests for the Publicize connections API routes.

Runs the router against a migrated temp SQLite database with real JWT auth.
"""

from __future__ import annotations

from pathlib import Path
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.sqlite.repos import SQLitePostRepo, SQLitePublicizeRepo, SQLiteUserRepo
from src.api.auth_utils import create_access_token
from src.api.deps import Settings, get_rules, get_settings
from src.api.routes.publicize import router
from src.domain.entities import Post, PublicizeConnectionRecord, User
from src.rules.models import Rules

# --- Fixtures ---


@pytest.fixture
def settings(db_path: str, tmp_path: Path) -> Settings:
    settings = Settings()
    settings.data_dir = tmp_path
    settings.db_path = db_path
    return settings


@pytest.fixture
def client(settings: Settings, rules: Rules) -> TestClient:
    app = FastAPI()
    app.include_router(router, prefix="/api")
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_rules] = lambda: rules
    return TestClient(app)


@pytest.fixture
def user_repo(db_path: str) -> SQLiteUserRepo:
    return SQLiteUserRepo(db_path)


@pytest.fixture
def post_repo(db_path: str) -> SQLitePostRepo:
    return SQLitePostRepo(db_path)


@pytest.fixture
def publicize_repo(db_path: str, rules: Rules) -> SQLitePublicizeRepo:
    return SQLitePublicizeRepo(db_path, rules=rules.publicize)


def make_user(repo: SQLiteUserRepo, *roles: str) -> User:
    user = User(
        email=f"{uuid4().hex[:8]}@example.com",
        display_name="Test User",
        roles=list(roles),  # type: ignore[arg-type]
    )
    repo.save(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def editor(user_repo: SQLiteUserRepo) -> User:
    return make_user(user_repo, "editor")


@pytest.fixture
def post(post_repo: SQLitePostRepo, editor: User) -> Post:
    return post_repo.save(Post(title="Hello", author_user_id=editor.id))


@pytest.fixture(autouse=True)
def connections(publicize_repo: SQLitePublicizeRepo) -> None:
    publicize_repo.save_connection(
        PublicizeConnectionRecord(
            unique_id="11",
            service_name="twitter",
            display_name="@one",
            access_token="super-secret",
        )
    )
    publicize_repo.save_connection(
        PublicizeConnectionRecord(unique_id="12", service_name="twitter", display_name="@two")
    )
    publicize_repo.save_connection(
        PublicizeConnectionRecord(unique_id="21", service_name="facebook", display_name="Page")
    )


def url(post: Post) -> str:
    return f"/api/posts/{post.id}/publicize-connections"


# --- GET ---


class TestGetConnections:
    def test_lists_connections(self, client: TestClient, post: Post, editor: User) -> None:
        response = client.get(url(post), headers=auth_headers(editor))

        assert response.status_code == 200
        data = response.json()
        assert [c["id"] for c in data] == ["11", "12", "21"]
        assert data[0] == {
            "id": "11",
            "service_name": "twitter",
            "display_name": "@one",
            "enabled": True,
            "done": False,
            "toggleable": True,
        }

    def test_credentials_not_exposed(self, client: TestClient, post: Post, editor: User) -> None:
        response = client.get(url(post), headers=auth_headers(editor))

        assert "super-secret" not in response.text
        assert "access_token" not in response.text

    def test_view_context(self, client: TestClient, post: Post, editor: User) -> None:
        response = client.get(url(post), params={"context": "view"}, headers=auth_headers(editor))

        assert response.status_code == 200
        for connection in response.json():
            assert set(connection) == {"id", "service_name", "display_name"}

    def test_requires_auth(self, client: TestClient, post: Post) -> None:
        response = client.get(url(post))
        assert response.status_code == 401

    def test_invalid_token(self, client: TestClient, post: Post) -> None:
        response = client.get(url(post), headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_forbidden_for_other_author(
        self, client: TestClient, post: Post, user_repo: SQLiteUserRepo
    ) -> None:
        author = make_user(user_repo, "author")

        response = client.get(url(post), headers=auth_headers(author))

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "invalid_user_permission_publicize"

    def test_author_on_own_post(
        self, client: TestClient, post_repo: SQLitePostRepo, user_repo: SQLiteUserRepo
    ) -> None:
        author = make_user(user_repo, "author")
        own = post_repo.save(Post(title="Mine", author_user_id=author.id))

        response = client.get(url(own), headers=auth_headers(author))

        assert response.status_code == 200

    def test_unknown_post(self, client: TestClient, editor: User) -> None:
        response = client.get(
            f"/api/posts/{uuid4()}/publicize-connections", headers=auth_headers(editor)
        )
        assert response.status_code == 404

    def test_unsupported_post_type(
        self, client: TestClient, post_repo: SQLitePostRepo, editor: User
    ) -> None:
        page = post_repo.save(Post(type="page", title="About", author_user_id=editor.id))

        response = client.get(url(page), headers=auth_headers(editor))

        assert response.status_code == 404

    def test_unknown_post_forbidden_without_permission(
        self, client: TestClient, user_repo: SQLiteUserRepo
    ) -> None:
        author = make_user(user_repo, "author")

        response = client.get(
            f"/api/posts/{uuid4()}/publicize-connections", headers=auth_headers(author)
        )

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "invalid_user_permission_publicize"

    def test_unsupported_post_type_forbidden_without_permission(
        self,
        client: TestClient,
        post_repo: SQLitePostRepo,
        user_repo: SQLiteUserRepo,
        editor: User,
    ) -> None:
        page = post_repo.save(Post(type="page", title="About", author_user_id=editor.id))
        contributor = make_user(user_repo, "contributor")

        response = client.get(url(page), headers=auth_headers(contributor))

        assert response.status_code == 403


# --- POST ---


class TestUpdateConnections:
    def test_id_overrides_service(
        self,
        client: TestClient,
        post: Post,
        editor: User,
        publicize_repo: SQLitePublicizeRepo,
    ) -> None:
        response = client.post(
            url(post),
            json=[{"id": "11", "enabled": True}, {"service_name": "twitter", "enabled": False}],
            headers=auth_headers(editor),
        )

        assert response.status_code == 200
        assert {c["id"]: c["enabled"] for c in response.json()} == {
            "11": True,
            "12": False,
            "21": True,
        }
        assert publicize_repo.get_post_meta(post.id) == {"_wpas_skip_12": "1"}

    def test_done_connection_unchanged(
        self,
        client: TestClient,
        post: Post,
        editor: User,
        publicize_repo: SQLitePublicizeRepo,
    ) -> None:
        publicize_repo.mark_done(post.id, "21")

        response = client.post(
            url(post),
            json=[{"service_name": "facebook", "enabled": False}],
            headers=auth_headers(editor),
        )

        assert response.status_code == 200
        facebook = next(c for c in response.json() if c["id"] == "21")
        assert facebook["enabled"] is True
        assert facebook["done"] is True
        assert facebook["toggleable"] is False

    def test_malformed_items_ignored(self, client: TestClient, post: Post, editor: User) -> None:
        response = client.post(
            url(post),
            json=[{"enabled": False}, {"service_name": "twitter"}, {"id": "999", "enabled": False}],
            headers=auth_headers(editor),
        )

        assert response.status_code == 200
        assert all(c["enabled"] for c in response.json())

    @pytest.mark.parametrize(
        "junk",
        [
            "junk",
            42,
            None,
            {"service_name": 5, "enabled": False},
            {"id": {"x": 1}, "enabled": False},
            {"id": "11", "enabled": "maybe"},
        ],
    )
    def test_junk_item_does_not_reject_batch(
        self,
        client: TestClient,
        post: Post,
        editor: User,
        publicize_repo: SQLitePublicizeRepo,
        junk: object,
    ) -> None:
        response = client.post(
            url(post),
            json=[{"service_name": "facebook", "enabled": False}, junk],
            headers=auth_headers(editor),
        )

        assert response.status_code == 200
        assert {c["id"]: c["enabled"] for c in response.json()} == {
            "11": True,
            "12": True,
            "21": False,
        }
        assert publicize_repo.get_post_meta(post.id) == {"_wpas_skip_21": "1"}

    def test_numeric_id_accepted(self, client: TestClient, post: Post, editor: User) -> None:
        response = client.post(
            url(post), json=[{"id": 12, "enabled": False}], headers=auth_headers(editor)
        )

        assert response.status_code == 200
        assert {c["id"]: c["enabled"] for c in response.json()}["12"] is False

    def test_reenable_clears_skip(
        self,
        client: TestClient,
        post: Post,
        editor: User,
        publicize_repo: SQLitePublicizeRepo,
    ) -> None:
        client.post(
            url(post), json=[{"service_name": "twitter", "enabled": False}], headers=auth_headers(editor)
        )
        client.post(
            url(post), json=[{"service_name": "twitter", "enabled": True}], headers=auth_headers(editor)
        )

        assert publicize_repo.get_post_meta(post.id) == {}

    def test_forbidden_writes_nothing(
        self,
        client: TestClient,
        post: Post,
        user_repo: SQLiteUserRepo,
        publicize_repo: SQLitePublicizeRepo,
    ) -> None:
        contributor = make_user(user_repo, "contributor")

        response = client.post(
            url(post),
            json=[{"service_name": "twitter", "enabled": False}],
            headers=auth_headers(contributor),
        )

        assert response.status_code == 403
        assert publicize_repo.get_post_meta(post.id) == {}

    def test_body_must_be_list(self, client: TestClient, post: Post, editor: User) -> None:
        response = client.post(
            url(post), json={"service_name": "twitter", "enabled": False}, headers=auth_headers(editor)
        )
        assert response.status_code == 422


# --- Schema ---


def test_schema_endpoint(client: TestClient) -> None:
    response = client.get("/api/publicize/schema")

    assert response.status_code == 200
    schema = response.json()
    assert schema["type"] == "array"
    assert set(schema["items"]["properties"]) == {
        "id",
        "service_name",
        "display_name",
        "enabled",
        "done",
        "toggleable",
    }
