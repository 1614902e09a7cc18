from decimal import Decimal
from django.contrib import admin
from django.utils.html import format_html
from ledger_core.models import JournalEntry, Voucher, VoucherType
from ledger_core.services.validation import ensure_year_unlocked
from ledger_core.services.vouchers import delete_voucher
from .actions import post_vouchers, unpost_vouchers
from .forms import VoucherAdminForm
from .inlines import VoucherItemInline
from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin


@admin.register(VoucherType)
class VoucherTypeAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "business", "code", "name", "nature", "prefix",
                    "auto_increment", "starting_number", "is_system", "is_active")
    list_filter = ("business", "nature", "is_active")
    search_fields = ("code", "name")

    def has_delete_permission(self, request, obj=None):
        if obj and obj.is_system:
            return False
        return super().has_delete_permission(request, obj)


# Register `Voucher` model
@admin.register(Voucher)
class VoucherAdmin(TenantAdminMixin, admin.ModelAdmin):
    """Vouchers are created by the voucher services; admin can review, post and unpost."""

    list_display = (
        "id",
        "business",
        "voucher_number",
        "voucher_type",
        "date",
        "party",
        "is_posted",
        "total_amount",
        "balanced",
    )
    list_filter = ("business", "is_posted", "voucher_type", "date")
    search_fields = ("voucher_number", "narration", "reference")
    readonly_fields = (
        "business", "voucher_type", "financial_year", "voucher_number", "date",
        "party", "is_posted", "total_amount", "created_by", "updated_by",
        "posting_fingerprint", "created_at", "updated_at",
    )
    form = VoucherAdminForm
    inlines = [VoucherItemInline]
    actions = [post_vouchers, unpost_vouchers]

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business", "voucher_type", "financial_year", "party")

    # nothing in a locked year is editable, narration included
    def get_readonly_fields(self, request, obj=None):
        fields = super().get_readonly_fields(request, obj)
        if obj is not None and obj.financial_year.is_locked:
            return (*fields, "narration", "reference")
        return fields

    def save_model(self, request, obj, form, change):
        ensure_year_unlocked(obj.financial_year)
        obj.updated_by = request.user
        super().save_model(request, obj, form, change)

    """ Computed column for balance check """
    def balanced(self, obj):
        d, c = obj.compute_totals()
        return format_html(
            "<b>{}</b> / <small>{}</small>",
            d or Decimal("0.00"),
            c or Decimal("0.00"),
        )

    balanced.short_description = "Debits / Credits"

    def has_add_permission(self, request):
        return False

    # deletion goes through delete_voucher: lock check, journal cleanup, audit row
    def delete_model(self, request, obj):
        delete_voucher(obj, user=request.user)

    def delete_queryset(self, request, queryset):
        for voucher in queryset:
            delete_voucher(voucher, user=request.user)


# Journal rows are generated from posted vouchers and never edited by hand
@admin.register(JournalEntry)
class JournalEntryAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = (
        "id", "business", "date", "voucher", "ledger_account",
        "cost_center", "debit_amount", "credit_amount",
    )
    search_fields = ("narration", "voucher__voucher_number")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business", "voucher", "ledger_account", "cost_center")
