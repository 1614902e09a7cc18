from django.contrib import admin
from ledger_core.models import FinancialYear
from .actions import lock_years, unlock_years
from .mixins import TenantAdminMixin


# Register `FinancialYear` model
@admin.register(FinancialYear)
class FinancialYearAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "business", "name", "start_date", "end_date",
                    "is_current", "is_locked")
    list_filter = ("business", "is_current", "is_locked")
    ordering = ("business", "-start_date")
    # locking goes through the actions so the rules and audit trail apply
    readonly_fields = ("is_locked",)
    actions = [lock_years, unlock_years]

    def get_readonly_fields(self, request, obj=None):
        if obj and obj.is_locked:
            return ("name", "start_date", "end_date", "is_current", "is_locked")
        return self.readonly_fields
