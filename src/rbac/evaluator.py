"""Pure permission-set evaluation used by the role services and the API.

Nothing here touches the database; callers pass the permission catalog and the
permissions a role currently holds, so results are always computed fresh.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from src.models.enums import PermissionAction

from .permissions import ACTION_ORDER, CRUD_ACTIONS, parse_permission_code
from .roles import DESCRIBABLE_SYSTEM_ROLE, SYSTEM_ROLE_NAMES


class PermissionLike(Protocol):
    resource: str
    action: PermissionAction
    code: str


class RoleLike(Protocol):
    name: str
    is_system: bool


def is_system_role(role: RoleLike) -> bool:
    """A role is a system role iff it was seeded as one."""
    return bool(role.is_system)


def is_reserved_role_name(name: str) -> bool:
    """Whether a name belongs to the fixed system-role name set."""
    return (name or "").strip().lower() in SYSTEM_ROLE_NAMES


def is_describable_system_role(role: RoleLike) -> bool:
    """The Admin system role keeps an editable description."""
    return is_system_role(role) and role.name.strip().lower() == DESCRIBABLE_SYSTEM_ROLE


def crud_permissions(
    catalog: Iterable[PermissionLike], resource: str
) -> list[PermissionLike]:
    """Non-``manage`` permissions of a resource, in display order."""
    perms = [
        p
        for p in catalog
        if p.resource == resource and PermissionAction(p.action) in CRUD_ACTIONS
    ]
    return sorted(perms, key=lambda p: ACTION_ORDER.index(PermissionAction(p.action)))


def _selected_crud_count(
    selected_codes: set[str], catalog: Iterable[PermissionLike], resource: str
) -> tuple[int, int]:
    crud = crud_permissions(catalog, resource)
    selected = sum(1 for p in crud if p.code in selected_codes)
    return selected, len(crud)


def is_resource_fully_selected(
    selected_codes: set[str], catalog: Iterable[PermissionLike], resource: str
) -> bool:
    """True iff every CRUD permission of the resource is selected."""
    selected, total = _selected_crud_count(selected_codes, catalog, resource)
    return total > 0 and selected == total


def is_resource_partially_selected(
    selected_codes: set[str], catalog: Iterable[PermissionLike], resource: str
) -> bool:
    """True iff some, but not all, CRUD permissions of the resource are selected."""
    selected, total = _selected_crud_count(selected_codes, catalog, resource)
    return 0 < selected < total


def toggle_resource(
    selected_codes: set[str],
    catalog: Iterable[PermissionLike],
    resource: str,
    enable: bool,
) -> set[str]:
    """Return a new code set with every CRUD permission of resource added or removed."""
    crud_codes = {p.code for p in crud_permissions(catalog, resource)}
    if enable:
        return set(selected_codes) | crud_codes
    return set(selected_codes) - crud_codes


def grants(selected_codes: set[str], catalog: Iterable[PermissionLike], code: str) -> bool:
    """Check whether a set of held codes satisfies the requested code.

    ``<resource>:manage`` is satisfied only by holding all CRUD actions of the
    resource, and only when the catalog defines that manage permission; it is
    never granted on its own.
    """
    catalog = list(catalog)
    try:
        resource, action = parse_permission_code(code)
    except ValueError:
        return False
    if action == PermissionAction.MANAGE:
        if not any(p.code == code for p in catalog):
            return False
        return is_resource_fully_selected(selected_codes, catalog, resource)
    return code in selected_codes


def group_by_resource(
    catalog: Iterable[PermissionLike],
) -> dict[str, list[PermissionLike]]:
    """Group permissions by resource, resources sorted, actions in display order."""
    grouped: dict[str, list[PermissionLike]] = {}
    for perm in catalog:
        grouped.setdefault(perm.resource, []).append(perm)
    return {
        resource: sorted(
            perms, key=lambda p: ACTION_ORDER.index(PermissionAction(p.action))
        )
        for resource, perms in sorted(grouped.items())
    }


@dataclass
class ResourceRow:
    """One row of the role/permission matrix."""

    resource: str
    actions: dict[str, bool] = field(default_factory=dict)
    fully_selected: bool = False
    partially_selected: bool = False


def build_matrix(
    selected_codes: set[str], catalog: Iterable[PermissionLike]
) -> list[ResourceRow]:
    """Build the per-resource checkbox state for a role."""
    catalog = list(catalog)
    rows = []
    for resource, perms in group_by_resource(catalog).items():
        rows.append(
            ResourceRow(
                resource=resource,
                actions={
                    PermissionAction(p.action).value: p.code in selected_codes
                    for p in perms
                    if PermissionAction(p.action) in CRUD_ACTIONS
                },
                fully_selected=is_resource_fully_selected(
                    selected_codes, catalog, resource
                ),
                partially_selected=is_resource_partially_selected(
                    selected_codes, catalog, resource
                ),
            )
        )
    return rows
