from __future__ import annotations

from .results import PASS, RuleResult, fail

ROLE_RANK = {"VIEWER": 1, "STAFF": 2, "ADMIN": 3, "OWNER": 4}


def role_satisfies(actual: str | None, required: str) -> bool:
    """True when ``actual`` ranks at or above ``required`` (OWNER > ADMIN > STAFF > VIEWER)."""
    if actual not in ROLE_RANK:
        return False
    return ROLE_RANK[actual] >= ROLE_RANK[required]


def validate_role_change(actor_role: str, current_role: str, new_role: str) -> RuleResult:
    """Members may only grant or revoke roles strictly below their own, except owners."""
    if new_role not in ROLE_RANK:
        return fail(f"Unknown role {new_role}", "INVALID_ROLE")
    if actor_role == "OWNER":
        return PASS
    if not (ROLE_RANK[actor_role] > ROLE_RANK[current_role] and ROLE_RANK[actor_role] > ROLE_RANK[new_role]):
        return fail(
            "Cannot change a role at or above your own",
            "ROLE_ESCALATION",
            {"actorRole": actor_role, "currentRole": current_role, "newRole": new_role},
        )
    return PASS
