"""
Voucher create / update / delete workflows.

Every workflow validates first (tenant, locked year, balance, numbering)
and only then writes, inside one transaction: the voucher header, its
items and the journal rows land together or not at all.
"""
import logging
import re
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from ..exceptions import DuplicateVoucherNumberError, NotFoundError
from ..models import (CostCenter, FinancialYear, LedgerAccount, Party,
                      Voucher, VoucherItem, VoucherType)
from ..models.voucher import to_money
from .audit_helper import log_action, snapshot
from .journal import clear_journal_entries, generate_journal_entries
from .periods import resolve_financial_year
from .validation import (ensure_not_in_completed_reconciliation, ensure_year_unlocked,
                         resolve_for_business, validate_balance)

logger = logging.getLogger(__name__)


# ----------------------------
# Numbering
# ----------------------------
def next_voucher_number(voucher_type, financial_year):
    """
    Next number in the type's sequence for ``financial_year``, e.g. "PMT0007".
    None when the type does not auto-increment.
    """
    if not voucher_type.auto_increment:
        return None
    last = (
        Voucher.objects.filter(
            voucher_type=voucher_type, financial_year=financial_year)
        .order_by("-id")
        .values_list("voucher_number", flat=True)
        .first()
    )
    last_number = 0
    if last:
        tail = last[len(voucher_type.prefix):] if last.startswith(voucher_type.prefix) else last
        digits = re.sub(r"\D", "", tail)
        last_number = int(digits) if digits else 0
    number = max(last_number + 1, voucher_type.starting_number)
    padding = getattr(settings, "LEDGER_VOUCHER_NUMBER_PADDING", 4)
    return f"{voucher_type.prefix}{number:0{padding}d}"


def _ensure_number_free(business, voucher_type, financial_year, number, exclude_pk=None):
    clash = Voucher.objects.filter(
        business=business,
        voucher_type=voucher_type,
        financial_year=financial_year,
        voucher_number=number,
    )
    if exclude_pk is not None:
        clash = clash.exclude(pk=exclude_pk)
    if clash.exists():
        raise DuplicateVoucherNumberError(
            f"Voucher number {number} already exists for {voucher_type.code} "
            f"in {financial_year.name}."
        )


def _save_header(voucher):
    # the read above can race another writer; the unique constraint settles it
    try:
        with transaction.atomic():
            voucher.save()
    except IntegrityError as exc:
        raise DuplicateVoucherNumberError(
            f"Voucher number {voucher.voucher_number} already exists for "
            f"{voucher.voucher_type.code} in {voucher.financial_year.name}."
        ) from exc


# ----------------------------
# Items
# ----------------------------
def _resolve_item_rows(business, rows):
    """Normalize item dicts and check every reference belongs to ``business``."""
    resolved = []
    for row in rows:
        account = resolve_for_business(
            business, LedgerAccount,
            row.get("ledger_account", row.get("ledger_account_id")))
        if account is None:
            raise ValidationError("Every voucher item needs a ledger account.")
        cost_center = resolve_for_business(
            business, CostCenter,
            row.get("cost_center", row.get("cost_center_id")))
        resolved.append({
            "id": row.get("id"),
            "ledger_account": account,
            "cost_center": cost_center,
            "debit_amount": to_money(row.get("debit_amount")),
            "credit_amount": to_money(row.get("credit_amount")),
            "narration": row.get("narration") or "",
        })
    return resolved


def _apply_item(item, row, narration, sequence):
    item.ledger_account = row["ledger_account"]
    item.cost_center = row["cost_center"]
    item.debit_amount = row["debit_amount"]
    item.credit_amount = row["credit_amount"]
    # items without their own narration inherit the voucher's
    item.narration = row["narration"] or narration
    item.sequence = sequence
    item.save()
    return item


# ----------------------------
# Workflows
# ----------------------------
def create_voucher(business, *, voucher_type, date, items, financial_year=None,
                   voucher_number=None, party=None, narration="", reference="",
                   is_posted=True, user=None):
    """Create a voucher with its items; posted vouchers get journal rows too."""
    voucher_type = resolve_for_business(business, VoucherType, voucher_type)
    if financial_year is None:
        financial_year = resolve_financial_year(business, date)
    financial_year = resolve_for_business(business, FinancialYear, financial_year)
    party = resolve_for_business(business, Party, party)

    ensure_year_unlocked(financial_year)
    rows = _resolve_item_rows(business, items)
    total_debit, _ = validate_balance(rows)

    if not voucher_number:
        voucher_number = next_voucher_number(voucher_type, financial_year)
    if not voucher_number:
        raise ValidationError(
            f"Voucher type {voucher_type.code} needs an explicit voucher number.")
    _ensure_number_free(business, voucher_type, financial_year, voucher_number)

    with transaction.atomic():
        voucher = Voucher(
            business=business,
            voucher_type=voucher_type,
            financial_year=financial_year,
            voucher_number=voucher_number,
            date=date,
            party=party,
            narration=narration,
            reference=reference,
            is_posted=is_posted,
            total_amount=total_debit,
            created_by=user,
            updated_by=user,
        )
        _save_header(voucher)
        for index, row in enumerate(rows):
            _apply_item(
                VoucherItem(business=business, voucher=voucher),
                row, narration, index + 1,
            )
        if voucher.is_posted:
            generate_journal_entries(voucher)
        log_action(action="create", instance=voucher, user=user,
                   new_values=snapshot(voucher))

    logger.info(
        "voucher created",
        extra={"business": business.pk, "voucher": voucher.pk,
               "number": voucher_number, "posted": voucher.is_posted},
    )
    return voucher


VOUCHER_HEADER_FIELDS = ("voucher_number", "date", "narration", "reference", "is_posted")


def update_voucher(voucher, *, items, user=None, **changes):
    """
    Replace a voucher's header fields and item set.

    Items carrying an ``id`` update that row, items without one are
    inserted, and existing rows missing from ``items`` are deleted.
    Journal rows are regenerated (posted) or removed (draft).
    """
    with transaction.atomic():
        voucher = Voucher.objects.select_for_update().get(pk=voucher.pk)
        business = voucher.business
        ensure_year_unlocked(voucher.financial_year)
        ensure_not_in_completed_reconciliation(voucher)
        old = snapshot(voucher)

        if "voucher_type" in changes:
            voucher.voucher_type = resolve_for_business(
                business, VoucherType, changes.pop("voucher_type"))
        if "party" in changes:
            voucher.party = resolve_for_business(business, Party, changes.pop("party"))
        if "financial_year" in changes:
            voucher.financial_year = resolve_for_business(
                business, FinancialYear, changes.pop("financial_year"))
        elif "date" in changes and not voucher.financial_year.contains(changes["date"]):
            voucher.financial_year = resolve_financial_year(business, changes["date"])
        # the target year must be open too
        ensure_year_unlocked(voucher.financial_year)

        for field in VOUCHER_HEADER_FIELDS:
            if field in changes:
                setattr(voucher, field, changes.pop(field))
        if changes:
            raise ValidationError(f"Unknown voucher fields: {', '.join(changes)}")

        rows = _resolve_item_rows(business, items)
        total_debit, _ = validate_balance(rows)
        _ensure_number_free(business, voucher.voucher_type, voucher.financial_year,
                            voucher.voucher_number, exclude_pk=voucher.pk)

        voucher.total_amount = total_debit
        voucher.updated_by = user
        _save_header(voucher)

        existing = {item.pk: item for item in voucher.items.all()}
        kept = set()
        for index, row in enumerate(rows):
            item_id = row["id"]
            if item_id is not None:
                if item_id not in existing:
                    raise NotFoundError(
                        f"VoucherItem {item_id} does not belong to voucher {voucher.pk}.")
                item = existing[item_id]
                kept.add(item_id)
            else:
                item = VoucherItem(business=business, voucher=voucher)
            _apply_item(item, row, voucher.narration, index + 1)
        stale = [pk for pk in existing if pk not in kept]
        if stale:
            # journal rows reference items; drop them before the items go
            clear_journal_entries(voucher)
            VoucherItem.objects.filter(pk__in=stale).delete()

        # posted: full delete + recreate; draft: no rows may remain
        generate_journal_entries(voucher)
        log_action(action="update", instance=voucher, user=user,
                   old_values=old, new_values=snapshot(voucher))

    logger.info("voucher updated", extra={"voucher": voucher.pk, "posted": voucher.is_posted})
    return voucher


@transaction.atomic
def delete_voucher(voucher, user=None):
    voucher = Voucher.objects.select_for_update().get(pk=voucher.pk)
    ensure_year_unlocked(voucher.financial_year)
    ensure_not_in_completed_reconciliation(voucher)
    log_action(action="delete", instance=voucher, user=user, old_values=snapshot(voucher))
    clear_journal_entries(voucher)
    voucher.items.all().delete()
    pk = voucher.pk
    voucher.delete()
    logger.info("voucher deleted", extra={"voucher": pk})
