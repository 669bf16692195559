"""Roles and the capabilities each role is granted.

Every permission decision in the API goes through ``has_capability``.
"""
import enum


class Role(str, enum.Enum):
    DONOR = "donor"
    CAMPAIGN_OWNER = "campaign_owner"
    ADMIN = "admin"


class Capability(str, enum.Enum):
    CREATE_CAMPAIGN = "create_campaign"
    MANAGE_USERS = "manage_users"
    VERIFY_CAMPAIGNS = "verify_campaigns"
    MANAGE_COMPLAINTS = "manage_complaints"
    MODERATE_COMMENTS = "moderate_comments"
    VIEW_REPORTS = "view_reports"


ROLE_CAPABILITIES = {
    Role.DONOR: frozenset(),
    Role.CAMPAIGN_OWNER: frozenset({Capability.CREATE_CAMPAIGN}),
    Role.ADMIN: frozenset(Capability),
}

# roles a user may pick for themselves at registration
SELF_ASSIGNABLE_ROLES = (Role.DONOR, Role.CAMPAIGN_OWNER)


def has_capability(user, capability: Capability) -> bool:
    if user is None:
        return False
    try:
        role = Role(user.role)
    except ValueError:
        return False
    return capability in ROLE_CAPABILITIES[role]
