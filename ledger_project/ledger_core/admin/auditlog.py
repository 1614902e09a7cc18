from django.contrib import admin

from ledger_core.models import AuditLog, Document

from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin


# Register `AuditLog` model
@admin.register(AuditLog)
class AuditLogAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = (
        "id",
        "business",
        "user",
        "action",
        "target_kind",
        "target_id",
        "created_at",
    )
    search_fields = ("target_kind", "target_id", "user__username")

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business", "user")


@admin.register(Document)
class DocumentAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "business", "name", "target_kind", "target_id",
                    "file_name", "file_size", "uploaded_by", "created_at")
    list_filter = ("business", "target_kind")
    search_fields = ("name", "file_name")
    # documents are attached through attach_document, which owns the storage key
    readonly_fields = ("target_kind", "target_id", "storage_key", "file_name",
                       "file_type", "file_size", "uploaded_by")

    def has_add_permission(self, request):
        return False
