import logging
from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone
from ..exceptions import AlreadyReconciledError, ConflictError, NotFoundError
from ..models import AccountReconciliation, JournalEntry, ReconciliationItem
from ..models.voucher import to_money
from .audit_helper import log_action, snapshot
from .balances import signed_balance
from .validation import resolve_for_business

logger = logging.getLogger(__name__)


def tolerance():
    return Decimal(str(getattr(settings, "LEDGER_RECONCILIATION_TOLERANCE", "0.01")))


def _locked(reconciliation):
    return AccountReconciliation.objects.select_for_update().get(pk=reconciliation.pk)


def _ensure_open(reconciliation):
    if reconciliation.is_completed:
        raise ConflictError("Reconciliation is already completed.")


def _resolve_entry(reconciliation, journal_entry):
    entry = resolve_for_business(reconciliation.business, JournalEntry, journal_entry)
    if entry is None:
        raise NotFoundError("A journal entry is required.")
    if entry.ledger_account_id != reconciliation.ledger_account_id:
        raise ValidationError(
            f"Journal entry {entry.pk} does not belong to {reconciliation.ledger_account}.")
    return entry


def _ensure_not_linked(entry):
    if ReconciliationItem.objects.filter(journal_entry=entry).exists():
        raise AlreadyReconciledError(f"Journal entry {entry.pk} is already reconciled.")


# ----------------------------
# Lifecycle
# ----------------------------
@transaction.atomic
def start_reconciliation(account, statement_date, statement_balance, notes="", user=None):
    """
    Open a reconciliation of a bank account against one statement.
    The book balance on ``statement_date`` is cached on the row.
    """
    if not account.is_bank_account:
        raise ValidationError("Only bank accounts can be reconciled.")
    if AccountReconciliation.objects.filter(
            ledger_account=account, statement_date=statement_date).exists():
        raise ConflictError(
            f"{account} already has a reconciliation for {statement_date}.")

    reconciliation = AccountReconciliation(
        business_id=account.business_id,
        ledger_account=account,
        statement_date=statement_date,
        statement_balance=to_money(statement_balance),
        account_balance=signed_balance(account, statement_date),
        notes=notes,
    )
    reconciliation.save()
    log_action(action="create", instance=reconciliation, user=user,
               new_values=snapshot(reconciliation))
    logger.info(
        "reconciliation started",
        extra={"reconciliation": reconciliation.pk, "account": account.pk},
    )
    return reconciliation


def refresh_account_balance(reconciliation):
    reconciliation.account_balance = signed_balance(
        reconciliation.ledger_account, reconciliation.statement_date)
    reconciliation.save(update_fields=["account_balance"])
    return reconciliation.account_balance


@transaction.atomic
def add_item(reconciliation, journal_entry, user=None):
    """Link ``journal_entry`` to the reconciliation; an entry can only be linked once."""
    reconciliation = _locked(reconciliation)
    _ensure_open(reconciliation)
    entry = _resolve_entry(reconciliation, journal_entry)
    _ensure_not_linked(entry)

    try:
        with transaction.atomic():
            ReconciliationItem.objects.create(reconciliation=reconciliation, journal_entry=entry)
    except IntegrityError as exc:
        # another reconciliation linked the entry after the check
        raise AlreadyReconciledError(f"Journal entry {entry.pk} is already reconciled.") from exc
    reconciliation.recalculate_reconciled_balance()
    log_action(action="reconcile", instance=reconciliation, user=user,
               new_values={"journal_entry": entry.pk})
    return reconciliation


@transaction.atomic
def remove_item(reconciliation, journal_entry, user=None):
    reconciliation = _locked(reconciliation)
    _ensure_open(reconciliation)
    entry = _resolve_entry(reconciliation, journal_entry)
    item = ReconciliationItem.objects.filter(
        reconciliation=reconciliation, journal_entry=entry).first()
    if item is None:
        raise NotFoundError(
            f"Journal entry {entry.pk} is not part of this reconciliation.")

    # post_delete recomputes reconciled_balance
    item.delete()
    reconciliation.refresh_from_db(fields=["reconciled_balance"])
    log_action(action="unreconcile", instance=reconciliation, user=user,
               old_values={"journal_entry": entry.pk})
    return reconciliation


@transaction.atomic
def complete(reconciliation, user=None):
    """Close the reconciliation; the statement and linked entries must agree within tolerance."""
    reconciliation = _locked(reconciliation)
    _ensure_open(reconciliation)
    difference = abs(reconciliation.statement_balance - reconciliation.reconciled_balance)
    if difference > tolerance():
        raise ValidationError(
            f"Statement balance {reconciliation.statement_balance} and reconciled "
            f"balance {reconciliation.reconciled_balance} differ by {difference}.",
            code="unreconciled_difference",
        )
    reconciliation.is_completed = True
    reconciliation.completed_by = user
    reconciliation.completed_at = timezone.now()
    reconciliation.save(update_fields=["is_completed", "completed_by", "completed_at"])
    log_action(action="complete", instance=reconciliation, user=user)
    logger.info("reconciliation completed", extra={"reconciliation": reconciliation.pk})
    return reconciliation


@transaction.atomic
def reopen(reconciliation, user=None):
    reconciliation = _locked(reconciliation)
    if not reconciliation.is_completed:
        raise ConflictError("Only a completed reconciliation can be reopened.")
    reconciliation.is_completed = False
    reconciliation.completed_by = None
    reconciliation.completed_at = None
    reconciliation.save(update_fields=["is_completed", "completed_by", "completed_at"])
    log_action(action="reopen", instance=reconciliation, user=user)
    return reconciliation


@transaction.atomic
def delete_reconciliation(reconciliation, user=None):
    reconciliation = _locked(reconciliation)
    _ensure_open(reconciliation)
    log_action(action="delete", instance=reconciliation, user=user,
               old_values=snapshot(reconciliation))
    reconciliation.delete()


def unreconciled_entries(reconciliation):
    """Entries of the account up to the statement date not linked to any reconciliation."""
    return (
        JournalEntry.objects.for_account(reconciliation.ledger_account)
        .filter(date__lte=reconciliation.statement_date,
                reconciliation_item__isnull=True)
        .order_by("date", "id")
    )
