"""
Authorization helpers shared by every resource.

`is_owner_or_admin` is the single owner-or-admin rule; `permitted_updates`
filters a client-supplied update through the per-role allow-list in
Settings.UPDATABLE_FIELDS.
"""

from typing import Any

from ticketing.core.config import get_settings
from ticketing.core.exceptions import ForbiddenError
from ticketing.models.user import User, ROLE_ADMIN, ROLE_USER


def is_owner_or_admin(actor: User, owner_id: int) -> bool:
    return actor.role == ROLE_ADMIN or actor.user_id == owner_id


def ensure_owner_or_admin(actor: User, owner_id: int) -> None:
    if not is_owner_or_admin(actor, owner_id):
        raise ForbiddenError()


def permitted_updates(resource: str, actor: User, data: dict[str, Any]) -> dict[str, Any]:
    """Keep only the fields `actor`'s role may change on `resource`."""
    allowed = get_settings().UPDATABLE_FIELDS.get(resource, {})
    role = actor.role if actor.role in allowed else ROLE_USER
    fields = set(allowed.get(role, []))
    return {key: value for key, value in data.items() if key in fields}
