from django.test import SimpleTestCase, override_settings

from tenancy.rbac import (
    ROLE_ACCOUNTING,
    ROLE_ADMIN,
    ROLE_CLIENT,
    ROLE_EXECUTIVE,
    ROLE_READ_ONLY,
    ROLE_SUPER_ADMIN,
    effective_role,
    get_role_matrix_for_resource,
    role_can,
    role_rank,
)


class RoleRankTests(SimpleTestCase):
    def test_rank_order_is_total(self):
        ordered = [ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_ACCOUNTING, ROLE_EXECUTIVE, ROLE_READ_ONLY, ROLE_CLIENT]
        ranks = [role_rank(role) for role in ordered]
        self.assertEqual(ranks, sorted(ranks, reverse=True))
        self.assertEqual(len(set(ranks)), len(ranks))

    def test_unknown_role_ranks_lowest(self):
        self.assertEqual(role_rank("AUDITOR"), 0)
        self.assertEqual(role_rank(None), 0)

    def test_effective_role(self):
        self.assertEqual(effective_role(ROLE_EXECUTIVE, ROLE_SUPER_ADMIN), ROLE_SUPER_ADMIN)
        self.assertEqual(effective_role(ROLE_ADMIN, ROLE_EXECUTIVE), ROLE_ADMIN)
        self.assertEqual(effective_role(ROLE_ADMIN, ROLE_ADMIN), ROLE_ADMIN)
        self.assertEqual(effective_role(None, ROLE_SUPER_ADMIN), ROLE_SUPER_ADMIN)


class RoleMatrixTests(SimpleTestCase):
    def test_commission_rules_defaults(self):
        matrix = get_role_matrix_for_resource("commission_rules")

        self.assertTrue(role_can(matrix, ROLE_READ_ONLY, "GET"))
        self.assertTrue(role_can(matrix, ROLE_ACCOUNTING, "POST"))
        self.assertFalse(role_can(matrix, ROLE_EXECUTIVE, "POST"))
        self.assertFalse(role_can(matrix, ROLE_ACCOUNTING, "DELETE"))
        self.assertTrue(role_can(matrix, ROLE_ADMIN, "DELETE"))
        self.assertFalse(role_can(matrix, ROLE_CLIENT, "GET"))

    def test_super_admin_is_always_allowed(self):
        matrix = get_role_matrix_for_resource("audit_log")
        self.assertTrue(role_can(matrix, ROLE_SUPER_ADMIN, "DELETE"))

    def test_unknown_resource_is_read_only(self):
        matrix = get_role_matrix_for_resource("unknown")
        self.assertTrue(role_can(matrix, ROLE_EXECUTIVE, "GET"))
        self.assertFalse(role_can(matrix, ROLE_ADMIN, "POST"))

    @override_settings(TENANT_ROLE_MATRICES={"commission_rules": {"POST": ["EXECUTIVE"]}})
    def test_settings_override(self):
        matrix = get_role_matrix_for_resource("commission_rules")
        self.assertTrue(role_can(matrix, ROLE_EXECUTIVE, "POST"))
        self.assertFalse(role_can(matrix, ROLE_ACCOUNTING, "POST"))

    @override_settings(TENANT_ROLE_MATRICES={"commission_rules": {"POST": ["NOT_A_ROLE"]}})
    def test_invalid_override_is_ignored(self):
        with self.assertLogs("tenancy.rbac", level="WARNING"):
            matrix = get_role_matrix_for_resource("commission_rules")
        self.assertTrue(role_can(matrix, ROLE_ACCOUNTING, "POST"))
