"""Capability descriptor for the user behind a request."""

from dataclasses import dataclass, field
from enum import Enum


class UserRoleKind(str, Enum):
    """How a role grants capabilities."""

    PRIVILEGED = "privileged"
    SCOPED = "scoped"
    NORMAL = "normal"


@dataclass(frozen=True)
class UserRole:
    """Capabilities granted to a user.

    Privileged users hold every capability, scoped users hold the named ones,
    normal users hold none.

    Attributes:
        kind: How capabilities are granted.
        scopes: Capability names, only meaningful for scoped roles.
    """

    kind: UserRoleKind
    scopes: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def privileged(cls) -> "UserRole":
        """Role holding every capability."""
        return cls(UserRoleKind.PRIVILEGED)

    @classmethod
    def normal(cls) -> "UserRole":
        """Role holding no capability."""
        return cls(UserRoleKind.NORMAL)

    @classmethod
    def scoped(cls, *scopes: str) -> "UserRole":
        """Role holding exactly the given capabilities."""
        return cls(UserRoleKind.SCOPED, frozenset(scopes))

    def accepts(self, scope: str) -> bool:
        """Check whether the role grants ``scope``."""
        if self.kind is UserRoleKind.PRIVILEGED:
            return True
        if self.kind is UserRoleKind.SCOPED:
            return scope in self.scopes
        return False
