from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Optional

from tenancy.rbac import is_privileged_role


@dataclass(frozen=True, slots=True)
class TenantAccess:
    tenant_id: int
    role: str


@dataclass(frozen=True, slots=True)
class SecurityContext:
    """Resolved authorization view for a single request.

    Built once per request and discarded at request end. Never cache it across
    requests: memberships can change between them.
    """

    user_id: int
    global_role: str
    active_tenant_id: Optional[int]
    effective_role: str
    all_tenants: tuple[TenantAccess, ...] = ()

    @property
    def is_privileged(self) -> bool:
        return is_privileged_role(self.global_role)

    @property
    def tenant_ids(self) -> tuple[int, ...]:
        return tuple(access.tenant_id for access in self.all_tenants)

    def can_switch_to(self, tenant_id: int) -> bool:
        return tenant_id in self.tenant_ids

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "global_role": self.global_role,
            "active_tenant_id": self.active_tenant_id,
            "effective_role": self.effective_role,
            "all_tenants": [
                {"tenant_id": access.tenant_id, "role": access.role}
                for access in self.all_tenants
            ],
        }


_current_context: ContextVar[Optional[SecurityContext]] = ContextVar(
    "current_security_context", default=None
)


def get_current_context() -> Optional[SecurityContext]:
    return _current_context.get()


def get_current_tenant_id() -> Optional[int]:
    context = _current_context.get()
    if context is None:
        return None
    return context.active_tenant_id


def set_current_context(context: Optional[SecurityContext]) -> Token:
    return _current_context.set(context)


def reset_current_context(token: Token) -> None:
    _current_context.reset(token)
