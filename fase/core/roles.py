"""
Closed role enumeration and the role → policy table.

Every authorisation decision in the services reads ``ROLE_POLICIES``;
adding a role means adding a row here, nothing else branches on role
names.
"""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    USER = "USER"
    SUPERVISOR = "SUPERVISOR"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"


class Visibility(str, Enum):
    """Which users' records a role may read."""

    ALL = "all"
    TEAM = "team"        # self + direct supervisees
    SELF = "self"


@dataclass(frozen=True)
class RolePolicy:
    visibility: Visibility
    can_manage_users: bool = False
    can_manage_companies: bool = False
    can_modify_others: bool = False
    can_unconfirm_planning: bool = False


ROLE_POLICIES: dict[Role, RolePolicy] = {
    Role.SUPERADMIN: RolePolicy(
        visibility=Visibility.ALL,
        can_manage_users=True,
        can_manage_companies=True,
        can_modify_others=True,
        can_unconfirm_planning=True,
    ),
    Role.ADMIN: RolePolicy(
        visibility=Visibility.ALL,
        can_manage_users=True,
        can_modify_others=True,
        can_unconfirm_planning=True,
    ),
    Role.SUPERVISOR: RolePolicy(visibility=Visibility.TEAM),
    Role.USER: RolePolicy(visibility=Visibility.SELF),
}

VALID_ROLES = frozenset(r.value for r in Role)


def policy_for(role: Role) -> RolePolicy:
    return ROLE_POLICIES[Role(role)]
