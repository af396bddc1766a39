"""
Role-based edit authority for the PI dashboards.

Role Hierarchy:
1. SUPER_ADMIN - Full system control (structure edits, any unit's values)
2. SUB_ADMIN - Regional management (consolidated read-only views)
3. CHQ - Regional headquarters unit (edits its own values)
4. STATION - Police station / company (edits its own values)
"""

# Role Constants
ROLE_SUPER_ADMIN = 'SUPER_ADMIN'
ROLE_SUB_ADMIN = 'SUB_ADMIN'
ROLE_REGIONAL_HQ = 'CHQ'
ROLE_STATION = 'STATION'

# All roles in hierarchy order (highest to lowest)
ALL_ROLES = [
    ROLE_SUPER_ADMIN,
    ROLE_SUB_ADMIN,
    ROLE_REGIONAL_HQ,
    ROLE_STATION,
]

ADMIN_ROLES = (ROLE_SUPER_ADMIN, ROLE_SUB_ADMIN)

# Role display names
ROLE_NAMES = {
    ROLE_SUPER_ADMIN: 'Super Admin',
    ROLE_SUB_ADMIN: 'Sub Admin',
    ROLE_REGIONAL_HQ: 'CHQ User',
    ROLE_STATION: 'Station User',
}

# Permissions
PERM_EDIT_STRUCTURE = 'edit_structure'
PERM_EDIT_ANY_VALUES = 'edit_any_values'
PERM_EDIT_OWN_VALUES = 'edit_own_values'
PERM_VIEW_CONSOLIDATED = 'view_consolidated'
PERM_ACCESS_ALL_FILES = 'access_all_files'

# Role-Permission Mapping
ROLE_PERMISSIONS = {
    ROLE_SUPER_ADMIN: [
        PERM_EDIT_STRUCTURE,
        PERM_EDIT_ANY_VALUES,
        PERM_VIEW_CONSOLIDATED,
        PERM_ACCESS_ALL_FILES,
    ],
    ROLE_SUB_ADMIN: [
        PERM_VIEW_CONSOLIDATED,
        PERM_ACCESS_ALL_FILES,
    ],
    ROLE_REGIONAL_HQ: [
        PERM_EDIT_OWN_VALUES,
    ],
    ROLE_STATION: [
        PERM_EDIT_OWN_VALUES,
    ],
}

# Mutation classes checked by authorize()
ACTION_EDIT_VALUES = 'edit_values'
ACTION_EDIT_STRUCTURE = 'edit_structure'


class UnauthorizedMutation(PermissionError):
    """Raised when a unit tries to write outside its edit authority."""

    def __init__(self, actor, action, subject=None):
        self.actor = actor
        self.action = action
        self.subject = subject
        target = f" on {subject.id}" if subject is not None else ""
        super().__init__(f"{actor.id} ({actor.role}) may not {action}{target}")


def has_permission(role: str, permission: str) -> bool:
    """Check if a role carries a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, [])


def is_admin(unit) -> bool:
    """Check if unit has an administrative role."""
    return unit is not None and unit.role in ADMIN_ROLES


def get_role_display_name(role: str) -> str:
    return ROLE_NAMES.get(role, role)


def can_edit_structure(actor) -> bool:
    """Rename/add/remove templates or rows, reorder and hide."""
    return has_permission(actor.role, PERM_EDIT_STRUCTURE)


def can_edit_values(actor, subject, consolidated: bool = False) -> bool:
    """
    Check if actor may write accomplishment values and files for subject.
    Consolidated views are never editable.
    """
    if consolidated:
        return False
    if has_permission(actor.role, PERM_EDIT_ANY_VALUES):
        return True
    return has_permission(actor.role, PERM_EDIT_OWN_VALUES) and actor.id == subject.id


def can_access_files(actor, subject) -> bool:
    """Only admins or the owning unit can open attached MOVs."""
    return has_permission(actor.role, PERM_ACCESS_ALL_FILES) or actor.id == subject.id


def authorize(actor, subject, action: str, consolidated: bool = False):
    """
    Enforce edit authority before a mutation.
    Raises UnauthorizedMutation when the actor lacks it.
    """
    if action == ACTION_EDIT_STRUCTURE:
        allowed = can_edit_structure(actor)
    elif action == ACTION_EDIT_VALUES:
        allowed = subject is not None and can_edit_values(actor, subject, consolidated)
    else:
        raise ValueError(f"Unknown action: {action}")

    if not allowed:
        raise UnauthorizedMutation(actor, action, subject)
