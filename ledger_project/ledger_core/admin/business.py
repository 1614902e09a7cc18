from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.utils.translation import gettext_lazy as _
from ledger_core.models import Business, Currency, User
from .forms import UserAdminChangeForm, UserAdminCreationForm


@admin.register(Currency)
class CurrencyAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "symbol")
    search_fields = ("code", "name")


# Register `Business` model in admin with this custom config
@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    """a clean admin table for browsing tenants"""

    list_display = ("id", "name", "slug", "default_currency", "owner", "created_at")
    search_fields = ("name", "slug")
    ordering = ("name",)
    readonly_fields = ("slug", "created_at")

    def get_queryset(self, request):
        qs = super().get_queryset(request).select_related("default_currency", "owner")
        if request.user.is_superuser:
            return qs
        # non-superusers only see the business they work in
        return qs.filter(pk=getattr(request.user, "default_business_id", None))


# Extend stock `DjangoUserAdmin`
@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    add_form = UserAdminCreationForm
    form = UserAdminChangeForm
    model = User

    list_display = (
        "username", "email", "get_full_name", "is_staff", "default_business")
    list_filter = ("is_staff", "is_superuser", "is_active")
    search_fields = ("username", "email", "first_name", "last_name")
    ordering = ("username",)

    # Group fields logically on edit user page
    fieldsets = (
        (None, {"fields": ("username", "password")}),
        (_("Personal info"), {"fields": ("first_name", "last_name", "email")}),
        (_("Business"), {"fields": ("default_business",)}),
        (
            _("Permissions"),
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                ),
            },
        ),
        (_("Important dates"), {"fields": ("last_login", "date_joined")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": (
                    "username",
                    "email",
                    "default_business",
                    "password1",
                    "password2",
                ),
            },
        ),
    )

    # Tenant scoping: staff only see users of their own business
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        return qs.filter(default_business_id=request.user.default_business_id)
