"""Actor-versus-target identity checks.

Ids reach the guard as UUIDs, strings, ints or arbitrary objects (a cached
actor id next to a freshly loaded target), so every comparison goes through
normalize_id.
"""

import uuid
from typing import Any

from .result import Result


def normalize_id(value: Any) -> str:
    """Canonical string form of an identity.

    Anything that parses as a UUID (hex, braces, urn or any case) maps to the
    hyphenated lower-case form; other values are stripped and lower-cased.
    """
    if value is None:
        return ""
    text = str(value).strip()
    try:
        return str(uuid.UUID(text))
    except ValueError:
        return text.lower()


def is_own_account(actor_id: Any, target_id: Any) -> bool:
    """Check whether target_id refers to the acting user."""
    actor = normalize_id(actor_id)
    return bool(actor) and actor == normalize_id(target_id)


def assert_not_self(actor_id: Any, target_id: Any, action: str) -> Result:
    """Refuse an action aimed at the actor's own account.

    Args:
        actor_id: Identity of the user performing the action
        target_id: Identity of the user being acted on
        action: Verb for the message, e.g. "edit" or "delete"

    Returns:
        A successful Result, or a Forbidden one when both ids match
    """
    if is_own_account(actor_id, target_id):
        return Result.forbidden(f"You cannot {action} your own account")
    return Result.success()


def split_self_from_batch(
    actor_id: Any, target_ids: list[Any]
) -> tuple[list[Any], bool]:
    """Drop the actor (and duplicates) from a batch of target ids.

    Returns:
        Tuple of (remaining ids in original order, whether self was present)
    """
    seen: set[str] = set()
    remaining = []
    self_excluded = False
    for target_id in target_ids:
        key = normalize_id(target_id)
        if is_own_account(actor_id, target_id):
            self_excluded = True
            continue
        if key in seen:
            continue
        seen.add(key)
        remaining.append(target_id)
    return remaining, self_excluded
