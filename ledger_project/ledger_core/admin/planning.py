from django.contrib import admin
from ledger_core.models import Budget, RecurringTransaction
from .actions import generate_due_vouchers
from .inlines import BudgetItemInline
from .mixins import TenantAdminMixin


@admin.register(Budget)
class BudgetAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "business", "name", "financial_year", "is_active")
    list_filter = ("business", "financial_year", "is_active")
    search_fields = ("name",)
    inlines = [BudgetItemInline]


@admin.register(RecurringTransaction)
class RecurringTransactionAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "business", "name", "voucher_type", "amount", "frequency",
                    "start_date", "end_date", "last_generated_date",
                    "occurrences_generated", "is_active")
    list_filter = ("business", "frequency", "is_active")
    search_fields = ("name", "narration")
    readonly_fields = ("last_generated_date", "occurrences_generated")
    actions = [generate_due_vouchers]
