from __future__ import annotations

from typing import Any, Optional

from tenancy.context import SecurityContext, TenantAccess
from tenancy.rbac import effective_role, is_privileged_role
from tenancy.stores import DjangoMembershipStore, MembershipStore


class AuthorizationError(Exception):
    """Request-rejection error. Never retried."""

    code = "not_authorized"


class UserNotFound(AuthorizationError):
    code = "user_not_found"


class UserInactive(AuthorizationError):
    code = "user_inactive"


class NoTenantAccess(AuthorizationError):
    code = "no_tenant_access"


class TenantNotAuthorized(AuthorizationError):
    code = "tenant_not_authorized"


def _coerce_tenant_id(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise TenantNotAuthorized("Invalid tenant identifier.")
    if isinstance(value, int):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    if not raw.isdigit():
        raise TenantNotAuthorized("Invalid tenant identifier.")
    return int(raw)


class AuthorizationContextResolver:
    """Turns a user id and an optional tenant hint into one SecurityContext.

    Resolution:
    1. Load active memberships. None and no privileged global role -> NoTenantAccess.
    2. A requested tenant must match an active membership (TenantNotAuthorized otherwise).
       Without a request the active tenant is the membership with the lowest tenant id.
    3. Effective role = higher rank of {tenant role, global role}.

    Holds no mutable state; one instance can serve concurrent requests.
    """

    def __init__(self, store: MembershipStore | None = None):
        self.store = store or DjangoMembershipStore()

    def resolve(self, user_id: int, requested_tenant_id: Any = None) -> SecurityContext:
        user = self.store.get_user(user_id)
        if user is None:
            raise UserNotFound(f"User {user_id} not found.")
        if not user.is_active:
            raise UserInactive(f"User {user_id} is inactive.")

        memberships = sorted(
            self.store.active_memberships(user.id),
            key=lambda membership: membership.tenant_id,
        )
        all_tenants = tuple(
            TenantAccess(tenant_id=membership.tenant_id, role=membership.role)
            for membership in memberships
        )

        if not all_tenants and not is_privileged_role(user.global_role):
            raise NoTenantAccess("User has no active tenant membership.")

        requested = _coerce_tenant_id(requested_tenant_id)
        if requested is not None:
            selected = next(
                (access for access in all_tenants if access.tenant_id == requested),
                None,
            )
            if selected is None:
                raise TenantNotAuthorized(
                    f"User {user.id} is not an active member of tenant {requested}."
                )
        elif all_tenants:
            selected = all_tenants[0]
        else:
            # Privileged user without memberships: platform-wide mode.
            selected = None

        return SecurityContext(
            user_id=user.id,
            global_role=user.global_role,
            active_tenant_id=selected.tenant_id if selected else None,
            effective_role=effective_role(selected.role if selected else None, user.global_role),
            all_tenants=all_tenants,
        )


def resolve_context(
    user_id: int,
    requested_tenant_id: Any = None,
    *,
    store: MembershipStore | None = None,
) -> SecurityContext:
    return AuthorizationContextResolver(store=store).resolve(user_id, requested_tenant_id)
