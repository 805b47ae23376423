"""
Request context passed explicitly into every service call.

Built once per request by ``fase.middleware.auth_required.require_auth``
from the bearer token and the user row; services never read ``flask.g``.
"""

from dataclasses import dataclass

from fase.core.roles import Role, RolePolicy, policy_for


@dataclass(frozen=True)
class RequestContext:
    user_id: int
    role: Role
    company_id: int | None = None

    @property
    def policy(self) -> RolePolicy:
        return policy_for(self.role)

    @property
    def is_admin(self) -> bool:
        return self.policy.can_modify_others
