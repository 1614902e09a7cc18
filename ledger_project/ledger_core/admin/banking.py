from django.contrib import admin
from ledger_core.models import AccountReconciliation
from .actions import complete_reconciliations
from .inlines import ReconciliationItemInline
from .mixins import TenantAdminMixin


# Register `AccountReconciliation` model
@admin.register(AccountReconciliation)
class AccountReconciliationAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "business", "ledger_account", "statement_date",
                    "statement_balance", "reconciled_balance", "difference",
                    "is_completed")
    list_filter = ("business", "is_completed", "statement_date")
    # balances are maintained by the reconciliation services
    readonly_fields = ("account_balance", "reconciled_balance", "is_completed",
                       "completed_by", "completed_at")
    inlines = [ReconciliationItemInline]
    actions = [complete_reconciliations]

    # a completed reconciliation keeps the statement it was checked against
    def get_readonly_fields(self, request, obj=None):
        fields = super().get_readonly_fields(request, obj)
        if obj is not None and obj.is_completed:
            return (*fields, "ledger_account", "statement_date", "statement_balance")
        return fields

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business", "ledger_account").prefetch_related(
            "items__journal_entry")
