from decimal import Decimal
from django.db import transaction
from ..exceptions import ConflictError
from ..models import JournalEntry, LedgerAccount, Party, VoucherItem
from .audit_helper import log_action, snapshot
from .validation import ensure_same_business

LEDGER_ACCOUNT_FIELDS = (
    "code", "name", "description", "opening_balance", "opening_balance_type",
    "is_bank_account", "is_cash_account", "bank_name", "account_number",
    "is_active",
)


@transaction.atomic
def create_ledger_account(business, account_group, name, *, code=None,
                          opening_balance=Decimal("0.00"),
                          opening_balance_type="debit", user=None, **extra):
    ensure_same_business(business, account_group)
    account = LedgerAccount(
        business=business,
        account_group=account_group,
        name=name,
        code=code or None,
        opening_balance=opening_balance,
        opening_balance_type=opening_balance_type,
        **{k: v for k, v in extra.items() if k in LEDGER_ACCOUNT_FIELDS + ("is_system",)},
    )
    account.save()
    log_action(action="create", instance=account, user=user)
    return account


@transaction.atomic
def update_ledger_account(account, user=None, **changes):
    account = LedgerAccount.objects.select_for_update().get(pk=account.pk)
    old = snapshot(account)
    if "account_group" in changes:
        ensure_same_business(account.business, changes["account_group"])
        account.account_group = changes.pop("account_group")
    for field in LEDGER_ACCOUNT_FIELDS:
        if field in changes:
            setattr(account, field, changes[field])
    account.save()
    log_action(action="update", instance=account, user=user,
               old_values=old, new_values=snapshot(account))
    return account


@transaction.atomic
def delete_ledger_account(account, user=None):
    if account.is_system:
        raise ConflictError("System ledger accounts cannot be deleted.")
    if JournalEntry.objects.filter(ledger_account=account).exists():
        raise ConflictError("Cannot delete a ledger account that has journal entries.")
    if VoucherItem.objects.filter(ledger_account=account).exists():
        raise ConflictError("Cannot delete a ledger account used by voucher items.")
    if Party.objects.filter(ledger_account=account).exists():
        raise ConflictError("Cannot delete a ledger account linked to a party.")
    log_action(action="delete", instance=account, user=user, old_values=snapshot(account))
    account.delete()
