import logging
from decimal import Decimal
from django.db import transaction
from ..exceptions import ConflictError, NotFoundError
from ..models import AccountGroup, JournalEntry, Party, Voucher
from .accounts import create_ledger_account
from .audit_helper import log_action, snapshot
from .balances import account_balance

logger = logging.getLogger(__name__)

# party type -> (control group, natural balance side)
PARTY_GROUPS = {
    "customer": ("Accounts Receivable", "debit"),
    "both": ("Accounts Receivable", "debit"),
    "supplier": ("Accounts Payable", "credit"),
}
CONTACT_FIELDS = ("contact_person", "phone", "email", "address", "tax_number")


def control_group(business, party_type):
    name, _ = PARTY_GROUPS[party_type]
    group = (
        AccountGroup.objects.filter(business=business, name=name)
        .order_by("-is_system", "id")
        .first()
    )
    if group is None:
        raise NotFoundError(f"{business} has no '{name}' account group.")
    return group


@transaction.atomic
def create_party(business, name, type="customer", *, credit_limit=None, credit_period=None,
                 opening_balance=Decimal("0.00"), opening_balance_type=None,
                 user=None, **contact):
    """
    Create a party together with the ledger account that carries its balance,
    under Accounts Receivable (customers) or Accounts Payable (suppliers).
    """
    group = control_group(business, type)
    account = create_ledger_account(
        business, group, name,
        opening_balance=opening_balance,
        opening_balance_type=opening_balance_type or PARTY_GROUPS[type][1],
        user=user,
    )
    party = Party(
        business=business,
        ledger_account=account,
        name=name,
        type=type,
        credit_limit=credit_limit,
        credit_period=credit_period,
        **{k: v for k, v in contact.items() if k in CONTACT_FIELDS},
    )
    party.save()
    log_action(action="create", instance=party, user=user, new_values=snapshot(party))
    logger.info("party created", extra={"business": business.pk, "party": party.pk})
    return party


@transaction.atomic
def update_party(party, user=None, **changes):
    party = Party.objects.select_for_update().get(pk=party.pk)
    old = snapshot(party)
    for field in ("name", "credit_limit", "credit_period", "is_active") + CONTACT_FIELDS:
        if field in changes:
            setattr(party, field, changes[field])
    party.save()
    if "name" in changes and party.ledger_account.name != party.name:
        # the backing account follows the party's name
        party.ledger_account.name = party.name
        party.ledger_account.save()
    log_action(action="update", instance=party, user=user,
               old_values=old, new_values=snapshot(party))
    return party


@transaction.atomic
def delete_party(party, user=None):
    """Remove a party and its ledger account; refused once either has been used."""
    account = party.ledger_account
    if JournalEntry.objects.filter(ledger_account=account).exists():
        raise ConflictError("Cannot delete a party whose account has journal entries.")
    if Voucher.objects.filter(party=party).exists():
        raise ConflictError("Cannot delete a party referenced by vouchers.")
    log_action(action="delete", instance=party, user=user, old_values=snapshot(party))
    party.delete()
    account.delete()


def outstanding(party, as_of=None):
    """Balance owed on the party's natural side; 0 when it sits on the other side."""
    balance = account_balance(party.ledger_account, as_of)
    side = PARTY_GROUPS[party.type][1]
    return balance.amount if balance.type == side else Decimal("0.00")


def has_exceeded_credit_limit(party, as_of=None):
    if not party.credit_limit:
        return False
    return outstanding(party, as_of) > party.credit_limit
