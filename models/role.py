"""
Roles and capabilities.

Roles form a closed set. Each role maps to a fixed set of capability codes;
routes and model functions ask "does this role grant capability X?" instead
of comparing role names.
"""

from enum import Enum

from utils.errors import PermissionDenied, ValidationError


class Role(str, Enum):
    """Closed set of account roles."""

    SUPER_ADMIN = 'super_admin'
    ADMIN = 'admin'
    MANAGER = 'manager'
    RECEPTIONIST = 'receptionist'
    CLIENT = 'client'

    @property
    def is_staff(self) -> bool:
        return self in (Role.ADMIN, Role.MANAGER, Role.RECEPTIONIST)

    @property
    def is_system_wide(self) -> bool:
        """Whether the role operates across all hotels."""
        return self is Role.SUPER_ADMIN


class Capability(str, Enum):
    """Permission codes checked at every operation boundary."""

    HOTELS_VIEW = 'hotels.view'
    HOTELS_MANAGE = 'hotels.manage'
    ROOMS_VIEW = 'rooms.view'
    ROOMS_MANAGE = 'rooms.manage'
    RESERVATIONS_VIEW = 'reservations.view'
    RESERVATIONS_CREATE = 'reservations.create'
    RESERVATIONS_EDIT = 'reservations.edit'
    RESERVATIONS_DELETE = 'reservations.delete'
    RESERVATIONS_IMPORT = 'reservations.import'
    RESERVATIONS_CONFIRM = 'reservations.confirm'
    RESERVATIONS_CANCEL = 'reservations.cancel'
    RESERVATIONS_CHECK_IN = 'reservations.check_in'
    RESERVATIONS_CHECK_OUT = 'reservations.check_out'
    AUDIT_VIEW = 'audit.view'
    AUDIT_VIEW_ALL = 'audit.view_all'
    BACKUPS_MANAGE = 'backups.manage'
    USERS_VIEW = 'users.view'
    USERS_MANAGE = 'users.manage'
    SETTINGS_VIEW = 'settings.view'
    SETTINGS_MANAGE = 'settings.manage'


_RECEPTIONIST = frozenset({
    Capability.ROOMS_VIEW,
    Capability.RESERVATIONS_VIEW,
    Capability.RESERVATIONS_CREATE,
    Capability.RESERVATIONS_EDIT,
    Capability.RESERVATIONS_CONFIRM,
    Capability.RESERVATIONS_CANCEL,
    Capability.RESERVATIONS_CHECK_IN,
    Capability.RESERVATIONS_CHECK_OUT,
    Capability.SETTINGS_VIEW,
})

_MANAGER = _RECEPTIONIST | {
    Capability.ROOMS_MANAGE,
    Capability.RESERVATIONS_DELETE,
    Capability.RESERVATIONS_IMPORT,
    Capability.USERS_VIEW,
    Capability.AUDIT_VIEW,
}

_ADMIN = _MANAGER | {
    Capability.HOTELS_VIEW,
    Capability.USERS_MANAGE,
    Capability.SETTINGS_MANAGE,
}

ROLE_CAPABILITIES = {
    Role.SUPER_ADMIN: frozenset(Capability),
    Role.ADMIN: frozenset(_ADMIN),
    Role.MANAGER: frozenset(_MANAGER),
    Role.RECEPTIONIST: _RECEPTIONIST,
    Role.CLIENT: frozenset(),
}

# Capability needed to move a reservation into each target status
TRANSITION_CAPABILITIES = {
    'confirmed': Capability.RESERVATIONS_CONFIRM,
    'cancelled': Capability.RESERVATIONS_CANCEL,
    'checked_in': Capability.RESERVATIONS_CHECK_IN,
    'checked_out': Capability.RESERVATIONS_CHECK_OUT,
}


def parse_role(value) -> Role:
    """
    Parse a role name.

    Raises:
        ValidationError: Unknown role
    """
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        allowed = ', '.join(role.value for role in Role)
        raise ValidationError(f"Unknown role '{value}'. Expected one of: {allowed}", field='role')


def get_capabilities(role) -> frozenset:
    """Get the capability set granted to a role."""
    return ROLE_CAPABILITIES[parse_role(role)]


def has_capability(role, capability: Capability) -> bool:
    """Check whether a role grants a capability."""
    if role is None:
        return False
    return Capability(capability) in get_capabilities(role)


def require_capability(role, capability: Capability) -> None:
    """
    Raise PermissionDenied unless the role grants the capability.

    Args:
        role: Role or role name (None for anonymous/system callers is refused)
        capability: Capability code
    """
    if not has_capability(role, capability):
        raise PermissionDenied(
            f"Role '{getattr(role, 'value', role)}' is not allowed to perform "
            f"'{Capability(capability).value}'",
            capability=Capability(capability).value
        )
