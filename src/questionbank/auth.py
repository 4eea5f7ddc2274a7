"""Caller identity supplied by the upstream authentication collaborator.

Token issuance and verification happen upstream; by the time a request
reaches this service the gateway has resolved the caller and forwards
``X-User-Id``, ``X-User-Role`` and ``X-Company-Id`` headers.
"""

from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, Header, Request

from questionbank.exceptions import ForbiddenError, UnauthorizedError
from questionbank.models.user import Role

ADMIN_ROLES = frozenset({Role.ADMIN, Role.COMPANY_ADMIN})
AUTHOR_ROLES = frozenset({Role.QUESTION_WRITER, Role.COMPANY_ADMIN, Role.ADMIN})
REVIEWER_ROLES = frozenset({Role.REVIEWER, Role.COMPANY_ADMIN, Role.ADMIN})


@dataclass(frozen=True)
class Identity:
    """An authenticated caller."""

    id: int
    role: Role
    company_id: int

    @property
    def is_admin(self) -> bool:
        """Check if the caller holds an admin capability."""
        return self.role in ADMIN_ROLES

    def can_modify(self, author_id: int) -> bool:
        """Check if the caller may edit or delete a question by ``author_id``."""
        return self.id == author_id or self.is_admin


def _parse_int_header(name: str, value: str | None) -> int:
    if value is None or not value.strip():
        raise UnauthorizedError(f"Missing {name} header")
    try:
        return int(value)
    except ValueError:
        raise UnauthorizedError(f"Malformed {name} header") from None


async def get_current_identity(
    request: Request,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_company_id: str | None = Header(default=None),
) -> Identity:
    """Resolve the caller identity forwarded by the auth gateway."""
    user_id = _parse_int_header("X-User-Id", x_user_id)
    company_id = _parse_int_header("X-Company-Id", x_company_id)
    try:
        role = Role((x_user_role or "").strip())
    except ValueError:
        raise UnauthorizedError("Missing or unknown X-User-Role header") from None

    identity = Identity(id=user_id, role=role, company_id=company_id)
    request.state.identity = identity
    return identity


def require_roles(
    roles: frozenset[Role],
) -> Callable[..., Coroutine[Any, Any, Identity]]:
    """Build a dependency that only admits callers holding one of ``roles``."""

    async def _require(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in roles:
            raise ForbiddenError()
        return identity

    return _require
