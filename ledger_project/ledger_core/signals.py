import logging
from django.db.models.signals import post_delete, pre_delete
from django.dispatch import receiver

from .exceptions import ConflictError, LockedPeriodError
from .models import (AccountGroup, AccountReconciliation, CostCenter,
                     FinancialYear, LedgerAccount, ReconciliationItem,
                     VoucherItem, VoucherType)

logger = logging.getLogger(__name__)


""" Block deletion of seeded chart-of-accounts rows."""


# pre_delete auto-fires just before Django deletes a model instance,
# including the ones reached through a queryset delete or a cascade
@receiver(pre_delete, sender=AccountGroup)
def prevent_delete_system_group(sender, instance, **kwargs):
    if instance.is_system:
        raise ConflictError("System account groups cannot be deleted.")


@receiver(pre_delete, sender=LedgerAccount)
def prevent_delete_system_account(sender, instance, **kwargs):
    if instance.is_system:
        raise ConflictError("System ledger accounts cannot be deleted.")


@receiver(pre_delete, sender=VoucherType)
def prevent_delete_system_voucher_type(sender, instance, **kwargs):
    if instance.is_system:
        raise ConflictError("System voucher types cannot be deleted.")


"""
    Voucher items only SET_NULL their cost center,
    so a used center would silently vanish from history.
"""


@receiver(pre_delete, sender=CostCenter)
def prevent_delete_used_cost_center(sender, instance, **kwargs):
    if VoucherItem.objects.filter(cost_center=instance).exists():
        raise ConflictError("Cannot delete a cost center used by voucher items.")


"""Block deletion of a locked financial year."""


@receiver(pre_delete, sender=FinancialYear)
def prevent_delete_locked_year(sender, instance, **kwargs):
    if instance.is_locked:
        raise LockedPeriodError(f"Financial year {instance.name} is locked.")


"""
    Keep reconciled_balance in step when a link disappears,
    whether removed explicitly or cascaded from an unposted voucher.
"""


@receiver(post_delete, sender=ReconciliationItem)
def reconciliation_item_removed(sender, instance, **kwargs):
    reconciliation = AccountReconciliation.objects.filter(
        pk=instance.reconciliation_id).first()
    if reconciliation is None:
        return
    reconciliation.recalculate_reconciled_balance()
    if reconciliation.is_completed:
        logger.warning(
            "entry removed from a completed reconciliation",
            extra={"reconciliation": reconciliation.pk,
                   "journal_entry": instance.journal_entry_id},
        )
