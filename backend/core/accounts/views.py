from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import CompanyMembership
from tenancy.permissions import HasTenantContext


class AuthenticatedUserAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        memberships = (
            CompanyMembership.objects.filter(
                user=request.user,
                is_active=True,
                company__is_active=True,
            )
            .select_related("company")
            .order_by("company_id")
        )

        return Response(
            {
                "id": request.user.id,
                "username": request.user.username,
                "email": request.user.email,
                "global_role": request.user.role,
                "memberships": [
                    {
                        "company_id": membership.company_id,
                        "company_name": membership.company.name,
                        "slug": membership.company.slug,
                        "role": membership.role,
                    }
                    for membership in memberships
                ],
            }
        )


class SecurityContextAPIView(APIView):
    """Returns the context the current request resolves to (honors X-Tenant-ID)."""

    permission_classes = [IsAuthenticated, HasTenantContext]

    def get(self, request):
        return Response(request.security_context.as_dict())
