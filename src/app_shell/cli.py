import argparse
import logging
import sys
from pathlib import Path
from typing import Any
from uuid import UUID

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import SQLitePublicizeRepo
from src.api.auth_utils import create_access_token
from src.components.publicize import (
    GetPostConnectionsInput,
    UpdatePostConnectionsInput,
    run_get,
    run_update,
)
from src.domain.entities import PublicizeConnectionRecord
from src.rules.loader import load_rules
from src.rules.models import Rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")

DB_PATH = "data/publicize.db"
RULES_PATH = "rules.yaml"
MIGRATIONS_DIR = "migrations"


class OperatorGate:
    """Operators running the CLI may access every post."""

    def can_access_connections(self, post_id: UUID) -> bool:
        return True


def get_rules() -> Rules:
    if not Path(RULES_PATH).exists():
        logger.error(f"Rules file {RULES_PATH} not found.")
        sys.exit(1)
    return load_rules(Path(RULES_PATH))


def parse_toggle(value: str) -> dict[str, Any]:
    """
    Parse `service:<name>=on|off` or `id:<unique_id>=on|off` into a request item.
    """
    target, _, state = value.partition("=")
    kind, _, name = target.partition(":")
    if state not in ("on", "off") or kind not in ("service", "id") or not name:
        raise argparse.ArgumentTypeError(
            f"Invalid toggle '{value}', expected service:<name>=on|off or id:<id>=on|off"
        )
    key = "service_name" if kind == "service" else "id"
    return {key: name, "enabled": state == "on"}


def handle_migrate(args: argparse.Namespace) -> None:
    applied = SQLiteMigrator(args.db, MIGRATIONS_DIR).run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_add_connection(repo: SQLitePublicizeRepo, args: argparse.Namespace) -> None:
    record = PublicizeConnectionRecord(
        unique_id=args.unique_id,
        service_name=args.service,
        display_name=args.display_name or "",
        owner_user_id=UUID(args.owner) if args.owner else None,
    )
    repo.save_connection(record)
    print(f"Connection {record.unique_id} ({record.service_name}) saved.")


def _print_connections(connections: list[dict[str, Any]]) -> None:
    for c in connections:
        flags = []
        if c.get("done"):
            flags.append("done")
        if not c.get("toggleable", True):
            flags.append("locked")
        state = "on" if c.get("enabled") else "off"
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f" - {c['id']} {c['service_name']} ({c['display_name']}): {state}{suffix}")


def handle_list(repo: SQLitePublicizeRepo, args: argparse.Namespace) -> None:
    result = run_get(GetPostConnectionsInput(post_id=UUID(args.post_id)), reader=repo, gate=OperatorGate())
    _print_connections(result.connections)


def handle_toggle(repo: SQLitePublicizeRepo, args: argparse.Namespace) -> None:
    inp = UpdatePostConnectionsInput(post_id=UUID(args.post_id), items=list(args.toggles))
    result = run_update(inp, reader=repo, writer=repo, gate=OperatorGate())
    _print_connections(result.connections)
    print(f"Changed: {', '.join(result.changed_ids) or 'nothing'}")


def handle_token(args: argparse.Namespace) -> None:
    print(create_access_token(UUID(args.user_id)))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Publicize connections CLI")
    parser.add_argument("--db", default=DB_PATH, help="SQLite database path")
    parser.add_argument("--actor", help="Act as this user id (owned connections become toggleable)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending migrations")

    # add-connection
    add_parser = subparsers.add_parser("add-connection", help="Store a sharing connection")
    add_parser.add_argument("unique_id")
    add_parser.add_argument("service", help="Service slug, e.g. twitter")
    add_parser.add_argument("--display-name")
    add_parser.add_argument("--owner", help="Owning user id (omit for a site-wide connection)")

    # list
    list_parser = subparsers.add_parser("list", help="List a post's connections")
    list_parser.add_argument("post_id")

    # toggle
    toggle_parser = subparsers.add_parser("toggle", help="Toggle a post's connections")
    toggle_parser.add_argument("post_id")
    toggle_parser.add_argument(
        "toggles", nargs="+", type=parse_toggle, help="service:<name>=on|off or id:<id>=on|off"
    )

    # token
    token_parser = subparsers.add_parser("token", help="Issue an API access token")
    token_parser.add_argument("user_id")

    args = parser.parse_args(argv)

    if args.command == "migrate":
        handle_migrate(args)
        return
    if args.command == "token":
        handle_token(args)
        return

    actor_id = UUID(args.actor) if args.actor else None
    repo = SQLitePublicizeRepo(args.db, rules=get_rules().publicize, actor_id=actor_id)

    if args.command == "add-connection":
        handle_add_connection(repo, args)
    elif args.command == "list":
        handle_list(repo, args)
    elif args.command == "toggle":
        handle_toggle(repo, args)


if __name__ == "__main__":
    main()
