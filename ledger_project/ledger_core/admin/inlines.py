from django.contrib import admin

from ledger_core.models import MONTHS, BudgetItem, ReconciliationItem, VoucherItem

from .forms import BudgetItemFormSet, BudgetItemInlineForm
from .mixins import TenantAdminMixin

# ---------- Helpful inline admin classes ----------


class VoucherItemInline(TenantAdminMixin, admin.TabularInline):
    """Show the debit/credit lines on the Voucher page.
    Lines are written by the voucher services, here they are read-only."""

    model = VoucherItem
    extra = 0
    fields = ("sequence", "ledger_account", "cost_center",
              "debit_amount", "credit_amount", "narration")
    readonly_fields = fields
    ordering = ("sequence", "id")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("ledger_account", "cost_center")

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class BudgetItemInline(admin.TabularInline):
    model = BudgetItem
    form = BudgetItemInlineForm
    formset = BudgetItemFormSet
    extra = 0
    fields = ("ledger_account", "cost_center", "annual_amount", "distribute_evenly",
              *MONTHS, "notes")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("ledger_account", "cost_center")


class ReconciliationItemInline(admin.TabularInline):
    """Entries ticked off against the statement."""

    model = ReconciliationItem
    extra = 0
    fields = ("journal_entry", "is_reconciled", "created_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False
