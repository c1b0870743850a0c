from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models

from tenancy.rbac import GLOBAL_ROLE_CHOICES, ROLE_EXECUTIVE, TENANT_ROLE_CHOICES


class User(AbstractUser):
    """Platform identity. `role` is the global role, independent of any tenant."""

    role = models.CharField(
        max_length=20,
        choices=GLOBAL_ROLE_CHOICES,
        default=ROLE_EXECUTIVE,
        db_index=True,
    )


class Company(models.Model):
    """A brokerage organization (tenant)."""

    name = models.CharField(max_length=150)
    slug = models.SlugField(max_length=63, unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name",)
        verbose_name = "Company"
        verbose_name_plural = "Companies"

    def __str__(self):
        return f"{self.name} ({self.slug})"


class CompanyMembership(models.Model):
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="company_memberships",
    )
    role = models.CharField(max_length=20, choices=TENANT_ROLE_CHOICES, default=ROLE_EXECUTIVE)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("company_id", "user_id")
        constraints = [
            models.UniqueConstraint(
                fields=("company", "user"),
                name="uq_company_membership_company_user",
            ),
        ]
        verbose_name = "Company Membership"
        verbose_name_plural = "Company Memberships"

    def __str__(self):
        return f"{self.user} @ {self.company} ({self.role})"
