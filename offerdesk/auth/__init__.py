"""Authorization gate exposed at the package level."""

from .auth import (
    ALL_ROLES,
    EDITORS,
    MANAGERS,
    STATUS_EDITORS,
    CredentialRegistry,
    Role,
    authorize,
)

__all__ = [
    "ALL_ROLES",
    "EDITORS",
    "MANAGERS",
    "STATUS_EDITORS",
    "CredentialRegistry",
    "Role",
    "authorize",
]
