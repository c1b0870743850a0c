from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from accounts.models import Company, CompanyMembership
from commission.models import CommissionRule
from tenancy.rbac import ROLE_ACCOUNTING, ROLE_ADMIN, ROLE_CLIENT, ROLE_EXECUTIVE, ROLE_READ_ONLY

User = get_user_model()

RULES_URL = "/api/commission/rules/"
RESOLVE_URL = "/api/commission/rates/resolve/"


class CommissionAPITestCase(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Corredora A", slug="corredora-a")
        self.other_company = Company.objects.create(name="Corredora B", slug="corredora-b")
        self.headers = {"HTTP_X_TENANT_ID": str(self.company.id)}

    def client_for(self, role, username=None):
        user = User.objects.create_user(
            username=username or f"user-{role.lower()}",
            password="testpass123",
            role=ROLE_EXECUTIVE,
        )
        CompanyMembership.objects.create(company=self.company, user=user, role=role)
        client = APIClient()
        client.force_authenticate(user)
        return client

    def create_rule(self, company=None, **kwargs):
        values = {
            "insurer_id": 10,
            "insurance_type_id": None,
            "rate_percentage": "15.00",
            "effective_from": date(2024, 1, 1),
        }
        values.update(kwargs)
        return CommissionRule.all_objects.create(company=company or self.company, **values)


class CommissionRuleAPITests(CommissionAPITestCase):
    def test_accounting_can_create_rule(self):
        client = self.client_for(ROLE_ACCOUNTING)

        response = client.post(
            RULES_URL,
            {"insurer_id": 10, "insurance_type_id": 7, "rate_percentage": "20.00", "effective_from": "2024-06-01"},
            format="json",
            **self.headers,
        )

        self.assertEqual(response.status_code, 201)
        rule = CommissionRule.all_objects.get(pk=response.json()["id"])
        self.assertEqual(rule.company_id, self.company.id)
        self.assertEqual(rule.insurance_type_id, 7)

    def test_rejects_inverted_effective_range(self):
        client = self.client_for(ROLE_ADMIN)

        response = client.post(
            RULES_URL,
            {
                "insurer_id": 10,
                "rate_percentage": "20.00",
                "effective_from": "2024-06-01",
                "effective_to": "2024-05-01",
            },
            format="json",
            **self.headers,
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("effective_to", response.json())

    def test_rejects_rate_above_one_hundred(self):
        client = self.client_for(ROLE_ADMIN)

        response = client.post(
            RULES_URL,
            {"insurer_id": 10, "rate_percentage": "150.00", "effective_from": "2024-06-01"},
            format="json",
            **self.headers,
        )

        self.assertEqual(response.status_code, 400)

    def test_patch_validates_against_stored_dates(self):
        rule = self.create_rule(effective_from=date(2024, 6, 1))
        client = self.client_for(ROLE_ADMIN)

        response = client.patch(
            f"{RULES_URL}{rule.id}/",
            {"effective_to": "2024-01-01"},
            format="json",
            **self.headers,
        )

        self.assertEqual(response.status_code, 400)

    def test_executive_can_read_but_not_write(self):
        self.create_rule()
        client = self.client_for(ROLE_EXECUTIVE)

        listing = client.get(RULES_URL, **self.headers)
        created = client.post(
            RULES_URL,
            {"insurer_id": 10, "rate_percentage": "20.00"},
            format="json",
            **self.headers,
        )

        self.assertEqual(listing.status_code, 200)
        self.assertEqual(len(listing.json()), 1)
        self.assertEqual(created.status_code, 403)

    def test_only_admin_can_delete(self):
        rule = self.create_rule()

        denied = self.client_for(ROLE_ACCOUNTING).delete(f"{RULES_URL}{rule.id}/", **self.headers)
        allowed = self.client_for(ROLE_ADMIN).delete(f"{RULES_URL}{rule.id}/", **self.headers)

        self.assertEqual(denied.status_code, 403)
        self.assertEqual(allowed.status_code, 204)
        self.assertFalse(CommissionRule.all_objects.filter(pk=rule.id).exists())

    def test_client_role_has_no_access(self):
        response = self.client_for(ROLE_CLIENT).get(RULES_URL, **self.headers)
        self.assertEqual(response.status_code, 403)

    def test_filter_by_insurer(self):
        self.create_rule(insurer_id=10)
        other = self.create_rule(insurer_id=11)

        response = self.client_for(ROLE_EXECUTIVE).get(RULES_URL, {"insurer_id": 11}, **self.headers)

        self.assertEqual([row["id"] for row in response.json()], [other.id])


class CommissionRateResolveAPITests(CommissionAPITestCase):
    def setUp(self):
        super().setUp()
        self.general = self.create_rule(rate_percentage="15.00", effective_from=date(2024, 1, 1))
        self.specific = self.create_rule(
            rate_percentage="20.00",
            insurance_type_id=7,
            effective_from=date(2024, 6, 1),
        )
        self.client = self.client_for(ROLE_READ_ONLY)

    def resolve(self, **params):
        return self.client.get(RESOLVE_URL, params, **self.headers)

    def test_specific_rule(self):
        response = self.resolve(insurer_id=10, insurance_type_id=7, on_date="2024-07-01")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["outcome"], "RESOLVED")
        self.assertEqual(payload["rate_percentage"], "20.00")
        self.assertEqual(payload["rule_id"], self.specific.id)

    def test_general_rule_for_other_type(self):
        response = self.resolve(insurer_id=10, insurance_type_id=8, on_date="2024-07-01")
        self.assertEqual(response.json()["rule_id"], self.general.id)

    def test_specific_rule_not_yet_effective(self):
        response = self.resolve(insurer_id=10, insurance_type_id=7, on_date="2024-03-01")
        self.assertEqual(response.json()["rate_percentage"], "15.00")

    def test_commission_amount(self):
        response = self.resolve(insurer_id=10, insurance_type_id=7, on_date="2024-07-01", base_amount="1000.00")

        self.assertEqual(response.json()["commission_amount"], "200.00")

    def test_no_applicable_rate(self):
        response = self.resolve(insurer_id=99, on_date="2024-07-01")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["outcome"], "NO_APPLICABLE_RATE")
        self.assertNotIn("rate_percentage", response.json())

    def test_other_tenant_rules_are_invisible(self):
        self.create_rule(company=self.other_company, insurer_id=55)

        response = self.resolve(insurer_id=55, on_date="2024-07-01")

        self.assertEqual(response.json()["outcome"], "NO_APPLICABLE_RATE")

    def test_ambiguous_rules_conflict(self):
        twin = self.create_rule(rate_percentage="18.00", effective_from=date(2024, 1, 1))

        with self.assertLogs("commission.services.rule_resolver", level="ERROR"):
            response = self.resolve(insurer_id=10, insurance_type_id=8, on_date="2024-07-01")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["rule_ids"], sorted([self.general.id, twin.id]))

    def test_invalid_parameters(self):
        response = self.resolve(insurer_id="abc")
        self.assertEqual(response.status_code, 400)

    def test_rate_lookup_is_read_only(self):
        response = self.client.post(RESOLVE_URL, {"insurer_id": 10}, format="json", **self.headers)
        self.assertEqual(response.status_code, 403)
