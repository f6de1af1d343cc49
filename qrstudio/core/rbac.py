"""Static role table, permission catalog, and permission checks."""

from typing import Any, Dict, List

WILDCARD = "*"

ROLES: Dict[str, Dict[str, Any]] = {
    "superAdmin": {
        "name": "Super Admin",
        "level": 100,
        "permissions": [WILDCARD],
        "description": "Full system access and configuration",
    },
    "admin": {
        "name": "Admin",
        "level": 80,
        "permissions": [
            "user.manage",
            "qr.manage_all",
            "analytics.view_all",
            "team.manage",
            "settings.manage",
            "export.data",
        ],
        "description": "Administrative access with user management",
    },
    "editor": {
        "name": "Editor",
        "level": 60,
        "permissions": [
            "qr.create",
            "qr.edit",
            "qr.delete",
            "analytics.view_own",
            "templates.use",
            "bulk.generate",
        ],
        "description": "Can create and manage QR codes",
    },
    "viewer": {
        "name": "Viewer",
        "level": 40,
        "permissions": ["qr.view", "analytics.view_own"],
        "description": "Read-only access to QR codes and analytics",
    },
    "guest": {
        "name": "Guest",
        "level": 20,
        "permissions": ["qr.scan"],
        "description": "Limited access for temporary users",
    },
}

PROTECTED_ROLES = frozenset({"superAdmin"})

PERMISSION_CATALOG: List[Dict[str, Any]] = [
    {
        "category": "QR Codes",
        "permissions": [
            {"key": "qr.create", "name": "Create QR Codes", "description": "Can create new QR codes"},
            {"key": "qr.edit", "name": "Edit QR Codes", "description": "Can edit existing QR codes"},
            {"key": "qr.delete", "name": "Delete QR Codes", "description": "Can delete QR codes"},
            {"key": "qr.view", "name": "View QR Codes", "description": "Can view QR codes"},
            {"key": "qr.manage_all", "name": "Manage All QR Codes", "description": "Can manage all users' QR codes"},
        ],
    },
    {
        "category": "Analytics",
        "permissions": [
            {"key": "analytics.view_own", "name": "View Own Analytics", "description": "Can view own analytics"},
            {"key": "analytics.view_all", "name": "View All Analytics", "description": "Can view all analytics"},
            {"key": "analytics.export", "name": "Export Analytics", "description": "Can export analytics data"},
        ],
    },
    {
        "category": "Users",
        "permissions": [
            {"key": "user.manage", "name": "Manage Users", "description": "Can manage user accounts"},
            {"key": "user.invite", "name": "Invite Users", "description": "Can invite new users"},
            {"key": "user.delete", "name": "Delete Users", "description": "Can delete user accounts"},
        ],
    },
    {
        "category": "Team",
        "permissions": [
            {"key": "team.manage", "name": "Manage Teams", "description": "Can manage team settings"},
            {"key": "team.invite", "name": "Invite Team Members", "description": "Can invite team members"},
            {"key": "team.remove", "name": "Remove Team Members", "description": "Can remove team members"},
        ],
    },
    {
        "category": "Settings",
        "permissions": [
            {"key": "settings.manage", "name": "Manage Settings", "description": "Can manage system settings"},
            {"key": "settings.smtp", "name": "Configure SMTP", "description": "Can configure email settings"},
            {"key": "settings.branding", "name": "Manage Branding", "description": "Can manage site branding"},
        ],
    },
]


def is_valid_role(role: str) -> bool:
    return role in ROLES


def role_level(role: str) -> int:
    """Authority level of a role key; unknown roles rank below every real role."""
    entry = ROLES.get(role)
    return entry["level"] if entry else 0


def has_permission(role: str, permission: str) -> bool:
    """Return True iff the role holds the permission literally or via wildcard.

    No prefix matching is performed: ``qr`` does not grant ``qr.create``.
    """
    entry = ROLES.get(role)
    if not entry:
        return False
    permissions = entry["permissions"]
    if WILDCARD in permissions:
        return True
    return permission in permissions


def can_manage_user(manager: Any, target: Any) -> bool:
    """Check whether ``manager`` may change ``target``'s role, status or account.

    Both arguments only need ``id`` and ``role`` attributes. Nobody manages
    their own account, and a manager must strictly outrank the target.
    """
    if manager.id == target.id:
        return False
    return role_level(manager.role) > role_level(target.role)


def can_assign_role(manager_role: str, new_role: str) -> bool:
    """A manager cannot hand out a role above their own level."""
    return role_level(new_role) <= role_level(manager_role)


def get_role_hierarchy() -> List[Dict[str, Any]]:
    """All roles, highest authority first."""
    ordered = sorted(ROLES.items(), key=lambda item: item[1]["level"], reverse=True)
    return [
        {
            "key": key,
            "name": role["name"],
            "level": role["level"],
            "permissions": list(role["permissions"]),
            "description": role["description"],
        }
        for key, role in ordered
    ]


def get_permissions_list() -> List[Dict[str, Any]]:
    """The permission catalog grouped by category."""
    return [
        {
            "category": group["category"],
            "permissions": [dict(p) for p in group["permissions"]],
        }
        for group in PERMISSION_CATALOG
    ]
