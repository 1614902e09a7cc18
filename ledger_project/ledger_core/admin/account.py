from django.contrib import admin
from ledger_core.models import AccountGroup, CostCenter, LedgerAccount, Party
from ledger_core.services.tree import move_cost_center, update_group
from .mixins import TenantAdminMixin

# fields update_group accepts from the change form
GROUP_FIELDS = ("name", "parent", "nature", "sequence", "affects_gross_profit", "description")


# Register `AccountGroup` model
@admin.register(AccountGroup)
class AccountGroupAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id", "business", "name", "nature", "parent",
        "sequence", "affects_gross_profit", "is_system",
    )
    list_filter = ("business", "nature", "is_system")
    search_fields = ("name",)
    # groups listed by business, then in report order
    ordering = ("business", "sequence", "name")
    readonly_fields = ("is_system",)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business", "parent")

    # seeded groups are read-only
    def has_change_permission(self, request, obj=None):
        if obj and obj.is_system:
            return False
        return super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj and obj.is_system:
            return False
        return super().has_delete_permission(request, obj)

    # a group never changes tenant once created
    def get_readonly_fields(self, request, obj=None):
        fields = super().get_readonly_fields(request, obj)
        if obj is not None:
            return (*fields, "business")
        return fields

    # moves and nature changes go through update_group so the subtree follows
    def save_model(self, request, obj, form, change):
        if change and {"nature", "parent"} & set(form.changed_data):
            changes = {field: form.cleaned_data[field]
                       for field in form.changed_data if field in GROUP_FIELDS}
            update_group(obj, user=request.user, **changes)
            return
        super().save_model(request, obj, form, change)


# Register `LedgerAccount` model
@admin.register(LedgerAccount)
class LedgerAccountAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id", "business", "code", "name", "account_group",
        "opening_balance", "opening_balance_type",
        "is_bank_account", "is_cash_account", "is_active",
    )
    list_filter = ("business", "is_bank_account", "is_cash_account", "is_active")
    search_fields = ("code", "name")
    ordering = ("business", "code", "name")
    fieldsets = (
        (None, {"fields": ("business", "account_group", "code", "name", "description")}),
        ("Opening balance", {"fields": ("opening_balance", "opening_balance_type")}),
        ("Bank / cash", {"fields": ("is_bank_account", "is_cash_account",
                                    "bank_name", "account_number")}),
        ("Status", {"fields": ("is_active", "is_system")}),
    )
    readonly_fields = ("is_system",)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business", "account_group")


@admin.register(CostCenter)
class CostCenterAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "business", "code", "name", "parent", "is_active")
    list_filter = ("business", "is_active")
    search_fields = ("code", "name")

    def save_model(self, request, obj, form, change):
        if change and "parent" in form.changed_data:
            move_cost_center(obj, obj.parent, user=request.user)
            return
        super().save_model(request, obj, form, change)


@admin.register(Party)
class PartyAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id", "business", "name", "type", "ledger_account",
        "credit_limit", "credit_period", "is_active",
    )
    list_filter = ("business", "type", "is_active")
    search_fields = ("name", "email", "phone", "tax_number")
    # the backing account is created together with the party
    readonly_fields = ("ledger_account",)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("business", "ledger_account")

    def has_add_permission(self, request):
        return False
