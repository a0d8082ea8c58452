from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional

from fastapi import Request

from offerdesk.core.errors import ForbiddenError, UnauthorizedError


class Role(str, Enum):
    ACCOUNT_MANAGER = "Account-Manager"
    DEVELOPER = "Developer"
    USER = "User"


ALL_ROLES: FrozenSet[Role] = frozenset(Role)
EDITORS: FrozenSet[Role] = frozenset({Role.ACCOUNT_MANAGER, Role.DEVELOPER})
MANAGERS: FrozenSet[Role] = frozenset({Role.ACCOUNT_MANAGER})
STATUS_EDITORS: FrozenSet[Role] = frozenset({Role.ACCOUNT_MANAGER, Role.USER})


class CredentialRegistry:
    """
    Maps an opaque credential (the Authorization header value) to a role.
    Coarse and non-cryptographic: anyone who knows a credential holds its role.
    """

    def __init__(self, table: Mapping[str, str]):
        self._roles: Dict[str, Role] = {}
        for credential, role_name in table.items():
            # unknown role names in config are a startup error, not a 403
            self._roles[credential.strip()] = Role(role_name)

    def resolve(self, credential: Optional[str]) -> Optional[Role]:
        if credential is None:
            return None
        return self._roles.get(credential.strip())


def authorize(*allowed: Role):
    """
    Build a dependency guarding an operation:
    401 without a credential, 403 for an unknown credential or a role
    outside `allowed`; otherwise the resolved Role is injected.
    """
    allowed_set = frozenset(r for group in allowed for r in ((group,) if isinstance(group, Role) else group))

    async def guard(request: Request) -> Role:
        credential = (request.headers.get("authorization") or "").strip()
        if not credential:
            raise UnauthorizedError("Unauthorized: missing credential")
        registry: CredentialRegistry = request.app.state.credentials
        role = registry.resolve(credential)
        if role is None:
            raise ForbiddenError("Forbidden: unknown credential")
        if role not in allowed_set:
            raise ForbiddenError("Forbidden: insufficient permissions")
        request.state.role = role
        return role

    return guard
