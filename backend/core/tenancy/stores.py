from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol


@dataclass(frozen=True, slots=True)
class UserRecord:
    id: int
    global_role: str
    is_active: bool


@dataclass(frozen=True, slots=True)
class MembershipRecord:
    tenant_id: int
    role: str


class MembershipStore(Protocol):
    def get_user(self, user_id: int) -> Optional[UserRecord]: ...

    def active_memberships(self, user_id: int) -> Iterable[MembershipRecord]: ...


class DjangoMembershipStore:
    """Reads users and memberships through the ORM.

    Memberships of deactivated companies are treated as inactive.
    """

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        from django.contrib.auth import get_user_model

        row = (
            get_user_model()
            .objects.filter(pk=user_id)
            .values("id", "role", "is_active")
            .first()
        )
        if row is None:
            return None
        return UserRecord(id=row["id"], global_role=row["role"], is_active=row["is_active"])

    def active_memberships(self, user_id: int) -> list[MembershipRecord]:
        from accounts.models import CompanyMembership

        rows = (
            CompanyMembership.objects.filter(
                user_id=user_id,
                is_active=True,
                company__is_active=True,
            )
            .order_by("company_id")
            .values_list("company_id", "role")
        )
        return [MembershipRecord(tenant_id=company_id, role=role) for company_id, role in rows]
