from django.contrib import admin, messages
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _
from ledger_core.services.periods import lock_year, unlock_year
from ledger_core.services.posting import post_voucher, unpost_voucher
from ledger_core.services.reconciliation import complete
from ledger_core.services.recurring import generate_voucher

# ---------- Admin actions ----------
# Every action goes through the service layer so admins cannot bypass
# the ledger rules; each row runs in its own transaction.


def _run_each(modeladmin, request, queryset, operation, verb):
    success = failures = 0
    for obj in queryset:
        try:
            operation(obj, user=request.user)
            success += 1
        except ValidationError as exc:
            failures += 1
            modeladmin.message_user(
                request,
                _("Could not %(verb)s %(obj)s: %(err)s") % {
                    "verb": verb, "obj": obj, "err": "; ".join(exc.messages)},
                level=messages.ERROR,
            )

    # Final summary message
    modeladmin.message_user(
        request,
        _("%(verb)s: %(success)d done, %(failures)d failed.") % {
            "verb": verb.capitalize(), "success": success, "failures": failures},
        level=messages.SUCCESS if failures == 0 else messages.WARNING,
    )
    return success


@admin.action(description="Post selected vouchers")
def post_vouchers(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset.filter(is_posted=False), post_voucher, "post")


@admin.action(description="Unpost selected vouchers")
def unpost_vouchers(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset.filter(is_posted=True), unpost_voucher, "unpost")


@admin.action(description="Lock selected financial years")
def lock_years(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset, lock_year, "lock")


@admin.action(description="Unlock selected financial years")
def unlock_years(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset, unlock_year, "unlock")


@admin.action(description="Complete selected reconciliations")
def complete_reconciliations(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset, complete, "complete")


""" generate_voucher returns None when nothing is due """


@admin.action(description="Generate next due voucher")
def generate_due_vouchers(modeladmin, request, queryset):
    def generate(recurring, user=None):
        if generate_voucher(recurring, user=user) is None:
            raise ValidationError("nothing due or template not usable")

    _run_each(modeladmin, request, queryset, generate, "generate")
