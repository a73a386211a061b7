from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PermissionDefinition:
    key: str
    label: str
    description: str
    group: str | None = None


@dataclass(frozen=True)
class RoleDefinition:
    key: str
    name: str
    description: str
    permissions: set[str]


PERMISSION_CATALOG: list[PermissionDefinition] = [
    PermissionDefinition(
        key="stores_view",
        label="View stores",
        description="Read stores, locations and store stock summaries.",
        group="stores",
    ),
    PermissionDefinition(
        key="stores_create",
        label="Create stores",
        description="Create stores and store locations.",
        group="stores",
    ),
    PermissionDefinition(
        key="stores_edit",
        label="Edit stores",
        description="Update store details.",
        group="stores",
    ),
    PermissionDefinition(
        key="inventory_view",
        label="View inventory",
        description="Read inventory items, low stock reports and ledger history.",
        group="inventory",
    ),
    PermissionDefinition(
        key="inventory_create",
        label="Create inventory items",
        description="Create inventory items with their initial stock.",
        group="inventory",
    ),
    PermissionDefinition(
        key="inventory_edit",
        label="Edit inventory",
        description="Post stock transactions and edit or deactivate items.",
        group="inventory",
    ),
    PermissionDefinition(
        key="purchases_view",
        label="View purchasing",
        description="Read suppliers and purchase orders.",
        group="purchases",
    ),
    PermissionDefinition(
        key="purchases_create",
        label="Create purchase orders",
        description="Create suppliers and purchase orders.",
        group="purchases",
    ),
    PermissionDefinition(
        key="purchases_approve",
        label="Approve and receive purchase orders",
        description="Change purchase order status and receive goods into stock.",
        group="purchases",
    ),
    PermissionDefinition(
        key="audit_view",
        label="View audit log",
        description="Read the append-only audit trail.",
        group="audit",
    ),
]

ALL_PERMISSIONS: set[str] = {permission.key for permission in PERMISSION_CATALOG}
_VIEW_PERMISSIONS: set[str] = {"stores_view", "inventory_view", "purchases_view"}

BUILTIN_ROLES: dict[str, RoleDefinition] = {
    "admin": RoleDefinition(
        key="admin",
        name="Administrator",
        description="Full access to every module.",
        permissions=set(ALL_PERMISSIONS),
    ),
    "store_manager": RoleDefinition(
        key="store_manager",
        name="Store manager",
        description="Runs stores and stock; reads purchasing and audit.",
        permissions={
            "stores_view",
            "stores_create",
            "stores_edit",
            "inventory_view",
            "inventory_create",
            "inventory_edit",
            "purchases_view",
            "audit_view",
        },
    ),
    "purchaser": RoleDefinition(
        key="purchaser",
        name="Purchaser",
        description="Manages suppliers and purchase orders.",
        permissions={
            "stores_view",
            "inventory_view",
            "purchases_view",
            "purchases_create",
            "purchases_approve",
        },
    ),
    "operator": RoleDefinition(
        key="operator",
        name="Stores operator",
        description="Posts stock movements.",
        permissions={"stores_view", "inventory_view", "inventory_edit"},
    ),
    "viewer": RoleDefinition(
        key="viewer",
        name="Viewer",
        description="Read-only access.",
        permissions=set(_VIEW_PERMISSIONS),
    ),
}


def permissions_for_role(role_key: str | None) -> set[str]:
    if not role_key:
        return set()
    role = BUILTIN_ROLES.get(role_key)
    if role is None:
        return set()
    return set(role.permissions)
