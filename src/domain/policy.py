from collections.abc import Sequence
from typing import Any

from src.domain.entities import User
from src.rules.models import Rules


class PolicyEngine:
    def __init__(self, rules: Rules):
        self.rules = rules

    def check_permission(
        self,
        user: User | None,
        user_roles: Sequence[str],
        action: str,
        resource: Any = None,
        context: dict[str, Any] | None = None
    ) -> bool:
        """
        Check if the user/role is allowed to perform the action on the resource.

        Order of precedence:
        1. Public Permissions (Global)
        2. Role-Based Access Control (RBAC)
        3. Attribute-Based Access Control (ABAC)
        """
        context = context or {}

        # 1. Public Permissions
        if action in self.rules.rbac.public_permissions:
            return True

        # If not public, we need a user
        if not user:
            return False

        if user.status != "active":
            return False

        # 2. RBAC
        for role in user_roles:
            allowed_actions = self.rules.rbac.roles.get(role, [])
            if "*" in allowed_actions:
                return True
            if action in allowed_actions:
                return True

            # Scoped wildcards (e.g. "publicize:*" matches "publicize:access")
            if ":" in action:
                scope = action.split(":")[0]
                if f"{scope}:*" in allowed_actions:
                    return True

        # 3. ABAC
        # Only relevant if we have a resource to check against
        if resource:
            for rule in self.rules.abac.post_rules:
                if self._evaluate_rule(rule.if_condition, user, user_roles, resource, context):
                    if action in rule.allow:
                        return True

        return False

    def _evaluate_rule(
        self,
        condition: dict[str, Any],
        user: User,
        user_roles: Sequence[str],
        resource: Any,
        context: dict[str, Any]
    ) -> bool:
        """
        Evaluate condition predicates from rules.yaml.
        Supported predicates:
        - role_in: list[str]
        - user_is_author: bool
        - status_in: list[str]
        """
        for predicate, args in condition.items():
            if predicate == "role_in":
                if not set(user_roles).intersection(set(args)):
                    return False

            elif predicate == "user_is_author":
                if args:
                    if not hasattr(resource, "author_user_id"):
                        return False
                    if str(resource.author_user_id) != str(user.id):
                        return False

            elif predicate == "status_in":
                if getattr(resource, "status", None) not in set(args):
                    return False

            else:
                # Unknown predicates never match
                return False

        return True

    def can_access_publicize(self, user: User | None, post: Any) -> bool:
        return self.check_permission(
            user,
            user.roles if user else [],
            self.rules.publicize.access_permission,
            resource=post,
        )
