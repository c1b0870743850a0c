from django.urls import path

from audit.views import AuditChainVerifyAPIView, AuditLogEntryListAPIView

urlpatterns = [
    path("entries/", AuditLogEntryListAPIView.as_view(), name="audit-entries-list"),
    path("verify/", AuditChainVerifyAPIView.as_view(), name="audit-chain-verify"),
]
