from django.urls import path

from commission.views import (
    CommissionRateResolveAPIView,
    CommissionRuleDetailAPIView,
    CommissionRuleListCreateAPIView,
)

urlpatterns = [
    path(
        "rules/",
        CommissionRuleListCreateAPIView.as_view(),
        name="commission-rules-list",
    ),
    path(
        "rules/<int:pk>/",
        CommissionRuleDetailAPIView.as_view(),
        name="commission-rules-detail",
    ),
    path(
        "rates/resolve/",
        CommissionRateResolveAPIView.as_view(),
        name="commission-rates-resolve",
    ),
]
