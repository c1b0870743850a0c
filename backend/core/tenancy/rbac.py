import logging
from copy import deepcopy
from typing import Iterable

from django.conf import settings
from django.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

ROLE_SUPER_ADMIN = "SUPER_ADMIN"
ROLE_ADMIN = "ADMIN"
ROLE_ACCOUNTING = "ACCOUNTING"
ROLE_EXECUTIVE = "EXECUTIVE"
ROLE_READ_ONLY = "READ_ONLY"
ROLE_CLIENT = "CLIENT"

# Higher rank outranks lower. Global privileged roles sit above every tenant role.
ROLE_RANKS = {
    ROLE_SUPER_ADMIN: 100,
    ROLE_ADMIN: 80,
    ROLE_ACCOUNTING: 60,
    ROLE_EXECUTIVE: 40,
    ROLE_READ_ONLY: 20,
    ROLE_CLIENT: 10,
}

GLOBAL_ROLE_CHOICES = [
    (ROLE_SUPER_ADMIN, "Super admin"),
    (ROLE_ADMIN, "Admin"),
    (ROLE_ACCOUNTING, "Accounting"),
    (ROLE_EXECUTIVE, "Executive"),
    (ROLE_READ_ONLY, "Read only"),
    (ROLE_CLIENT, "Client"),
]
TENANT_ROLE_CHOICES = [choice for choice in GLOBAL_ROLE_CHOICES if choice[0] != ROLE_SUPER_ADMIN]

VALID_ROLES = frozenset(ROLE_RANKS)
PRIVILEGED_GLOBAL_ROLES = frozenset((ROLE_SUPER_ADMIN,))
VALID_METHODS = frozenset(("GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE", "*"))


def role_rank(role) -> int:
    return ROLE_RANKS.get(str(role or "").upper(), 0)


def is_privileged_role(role) -> bool:
    return str(role or "").upper() in PRIVILEGED_GLOBAL_ROLES


def effective_role(tenant_role, global_role) -> str:
    """Pick the role that governs a request inside one tenant.

    The global role only wins when it strictly outranks the tenant role.
    """

    if tenant_role is None:
        return global_role
    if role_rank(global_role) > role_rank(tenant_role):
        return global_role
    return tenant_role


STAFF_ROLES = frozenset((ROLE_ADMIN, ROLE_ACCOUNTING, ROLE_EXECUTIVE, ROLE_READ_ONLY))
FINANCE_WRITE_ROLES = frozenset((ROLE_ADMIN, ROLE_ACCOUNTING))
ADMIN_ROLES = frozenset((ROLE_ADMIN,))
NO_ROLES = frozenset()


def build_role_matrix(
    *,
    read_roles=STAFF_ROLES,
    post_roles=FINANCE_WRITE_ROLES,
    put_roles=FINANCE_WRITE_ROLES,
    patch_roles=FINANCE_WRITE_ROLES,
    delete_roles=ADMIN_ROLES,
):
    return {
        "GET": frozenset(read_roles),
        "HEAD": frozenset(read_roles),
        "OPTIONS": frozenset(read_roles),
        "POST": frozenset(post_roles),
        "PUT": frozenset(put_roles),
        "PATCH": frozenset(patch_roles),
        "DELETE": frozenset(delete_roles),
    }


DEFAULT_RESOURCE_ROLE_MATRICES = {
    "commission_rules": build_role_matrix(),
    "commission_rates": build_role_matrix(
        post_roles=NO_ROLES,
        put_roles=NO_ROLES,
        patch_roles=NO_ROLES,
        delete_roles=NO_ROLES,
    ),
    "audit_log": build_role_matrix(
        read_roles=ADMIN_ROLES,
        post_roles=NO_ROLES,
        put_roles=NO_ROLES,
        patch_roles=NO_ROLES,
        delete_roles=NO_ROLES,
    ),
}

DEFAULT_TENANT_ROLE_MATRIX = build_role_matrix(
    post_roles=NO_ROLES,
    put_roles=NO_ROLES,
    patch_roles=NO_ROLES,
    delete_roles=NO_ROLES,
)
KNOWN_RBAC_RESOURCES = frozenset(DEFAULT_RESOURCE_ROLE_MATRICES.keys())


def _normalize_roles(raw_roles: Iterable[str]) -> frozenset[str]:
    if not isinstance(raw_roles, (list, tuple, set, frozenset)):
        return frozenset()
    normalized = {str(role).upper() for role in raw_roles}
    return frozenset(role for role in normalized if role in VALID_ROLES)


def validate_rbac_overrides_schema(overrides) -> None:
    if overrides in (None, {}):
        return

    if not isinstance(overrides, dict):
        raise ValidationError("rbac overrides must be a JSON object (dictionary).")

    errors = {}
    for resource_key, method_map in overrides.items():
        resource_name = str(resource_key)
        resource_errors = []

        if resource_name not in KNOWN_RBAC_RESOURCES:
            resource_errors.append(
                f"Unknown resource '{resource_name}'. Allowed: {sorted(KNOWN_RBAC_RESOURCES)}"
            )

        if not isinstance(method_map, dict):
            resource_errors.append("Resource value must be an object of HTTP methods to role lists.")
            errors[resource_name] = resource_errors
            continue

        for method, raw_roles in method_map.items():
            method_name = str(method).upper()
            if method_name not in VALID_METHODS:
                resource_errors.append(
                    f"Method '{method_name}' is invalid. Allowed: {sorted(VALID_METHODS)}"
                )
                continue

            if not isinstance(raw_roles, list) or not raw_roles:
                resource_errors.append(
                    f"Method '{method_name}' must contain a non-empty role list."
                )
                continue

            normalized_roles = _normalize_roles(raw_roles)
            if len(normalized_roles) != len(set(str(r).upper() for r in raw_roles)):
                resource_errors.append(
                    f"Method '{method_name}' contains invalid roles. "
                    f"Allowed roles: {sorted(VALID_ROLES)}"
                )

        if resource_errors:
            errors[resource_name] = resource_errors

    if errors:
        raise ValidationError(errors)


def _apply_overrides(matrices: dict, overrides: dict) -> dict:
    for resource_key, method_map in overrides.items():
        resource_matrix = matrices.setdefault(str(resource_key), {})
        for method, raw_roles in method_map.items():
            resource_matrix[str(method).upper()] = _normalize_roles(raw_roles)
    return matrices


def get_resource_role_matrices() -> dict:
    matrices = deepcopy(DEFAULT_RESOURCE_ROLE_MATRICES)

    overrides = getattr(settings, "TENANT_ROLE_MATRICES", {})
    try:
        validate_rbac_overrides_schema(overrides)
    except ValidationError as exc:
        logger.warning("tenancy.rbac.overrides_ignored errors=%s", exc.messages)
        return matrices

    if overrides:
        _apply_overrides(matrices, overrides)
    return matrices


def get_role_matrix_for_resource(resource_key: str) -> dict:
    matrices = get_resource_role_matrices()
    return matrices.get(resource_key, DEFAULT_TENANT_ROLE_MATRIX)


def role_can(role_matrix, role, method):
    if is_privileged_role(role):
        return True
    allowed_roles = role_matrix.get(method, role_matrix.get("*", frozenset()))
    return role in allowed_roles
