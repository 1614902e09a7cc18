from decimal import Decimal
from django.db import models
from ..exceptions import (ConflictError, CrossTenantError, ImbalancedVoucherError,
                          LockedPeriodError, NotFoundError)
from ..models import ReconciliationItem
from ..models.voucher import to_money


# ------------------------------------
# Tenant & invariant checks shared by every workflow
# ------------------------------------
def ensure_same_business(business, *objs):
    """Raise CrossTenantError unless every non-None obj belongs to ``business``."""
    for obj in objs:
        if obj is None:
            continue
        if obj.business_id != business.pk:
            raise CrossTenantError(
                f"{obj.__class__.__name__} {obj.pk} belongs to another business."
            )


def resolve_for_business(business, model, value):
    """
    Accept an instance or a primary key and return the instance,
    guaranteed to belong to ``business``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, models.Model):
        ensure_same_business(business, value)
        return value
    obj = model.objects.filter(pk=value).first()
    if obj is None:
        raise NotFoundError(f"{model.__name__} {value} does not exist.")
    ensure_same_business(business, obj)
    return obj


def ensure_year_unlocked(financial_year):
    if financial_year.is_locked:
        raise LockedPeriodError(
            f"Financial year {financial_year.name} is locked.")


def ensure_not_in_completed_reconciliation(voucher):
    """Journal rows ticked off in a completed reconciliation may not be rewritten."""
    linked = ReconciliationItem.objects.filter(
        journal_entry__voucher=voucher, reconciliation__is_completed=True)
    if linked.exists():
        raise ConflictError(
            f"Voucher {voucher.voucher_number} is part of a completed reconciliation; "
            "reopen it first.")


def _amount(row, field):
    if isinstance(row, dict):
        return to_money(row.get(field))
    return to_money(getattr(row, field))


def validate_balance(items):
    """
    Sum debit/credit over ``items`` (dicts or VoucherItem-like objects),
    rounded to 2 decimals. Raise ImbalancedVoucherError if they differ.
    Returns (total_debit, total_credit).
    """
    items = list(items)
    if not items:
        raise ImbalancedVoucherError("A voucher needs at least one debit and one credit item.")
    total_debit = sum((_amount(row, "debit_amount") for row in items), Decimal("0.00"))
    total_credit = sum((_amount(row, "credit_amount") for row in items), Decimal("0.00"))
    if to_money(total_debit) != to_money(total_credit):
        raise ImbalancedVoucherError(
            f"Voucher not balanced: debits={total_debit}, credits={total_credit}"
        )
    if total_debit == 0:
        raise ImbalancedVoucherError("Voucher total must be greater than zero.")
    return total_debit, total_credit
