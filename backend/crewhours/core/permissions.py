"""Capabilities derived from a user's role.

Every permission check goes through ``has_capability`` or the
``require_capability`` dependency instead of comparing role strings.
"""

import enum

from crewhours.auth.models import Role


class Capability(str, enum.Enum):
    LOG_OWN_HOURS = "log_own_hours"
    APPROVE_WEEKS = "approve_weeks"
    LOCK_WEEKS = "lock_weeks"
    VIEW_ALL_RECORDS = "view_all_records"
    MANAGE_RECORDS = "manage_records"
    MANAGE_INVOICES = "manage_invoices"
    MANAGE_ADVANCES = "manage_advances"
    MANAGE_PROJECTS = "manage_projects"
    MANAGE_USERS = "manage_users"
    MANAGE_SANCTIONS = "manage_sanctions"
    MANAGE_ACCOMMODATIONS = "manage_accommodations"
    EXPORT_BACKUP = "export_backup"
    MANAGE_COMPANY = "manage_company"


_ADMIN = frozenset(Capability)

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.MONTER: frozenset({Capability.LOG_OWN_HOURS}),
    Role.MANAGER: frozenset({
        Capability.LOG_OWN_HOURS,
        Capability.APPROVE_WEEKS,
        Capability.VIEW_ALL_RECORDS,
    }),
    Role.ACCOUNTANT: frozenset({
        Capability.LOG_OWN_HOURS,
        Capability.VIEW_ALL_RECORDS,
        Capability.MANAGE_INVOICES,
        Capability.MANAGE_ADVANCES,
    }),
    Role.ADMIN: _ADMIN,
    Role.DIRECTOR: _ADMIN,
}


def capabilities_for(role: Role) -> frozenset[Capability]:
    return ROLE_CAPABILITIES.get(role, frozenset())


def has_capability(user, capability: Capability) -> bool:
    return capability in capabilities_for(user.role)
