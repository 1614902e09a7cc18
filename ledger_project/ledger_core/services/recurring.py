"""
Recurring transaction scheduler.

Occurrences are aligned on the schedule's start date: the first one is
the first matching date on or after ``start_date``, every later one the
first matching date after ``last_generated_date``. Missed occurrences are
caught up one voucher at a time by ``process_all_due``.
"""
import calendar
import logging
from datetime import date, timedelta
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from ..exceptions import NotFoundError
from ..models import LedgerAccount, RecurringTransaction
from .periods import add_months
from .validation import resolve_for_business
from .vouchers import create_voucher

logger = logging.getLogger(__name__)

MONTH_STEPS = {"monthly": 1, "quarterly": 3}


def _clamped(year, month, day):
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def _first_on_or_after(recurring, anchor):
    start = recurring.start_date
    frequency = recurring.frequency

    if frequency == "daily":
        return anchor

    if frequency == "weekly":
        weekday = recurring.day_of_week
        if weekday is None:
            weekday = start.weekday()
        return anchor + timedelta(days=(weekday - anchor.weekday()) % 7)

    day = recurring.day_of_month or start.day
    if frequency in MONTH_STEPS:
        step = MONTH_STEPS[frequency]
        elapsed = (anchor.year - start.year) * 12 + anchor.month - start.month
        k = max(0, elapsed // step - 1)
        while True:
            month_start = add_months(start.replace(day=1), k * step)
            candidate = _clamped(month_start.year, month_start.month, day)
            if candidate >= anchor:
                return candidate
            k += 1

    # yearly
    month = recurring.month or start.month
    year = max(start.year, anchor.year - 1)
    candidate = _clamped(year, month, day)
    while candidate < anchor:
        year += 1
        candidate = _clamped(year, month, day)
    return candidate


def next_due_date(recurring):
    """Next scheduled date, or None once end_date or occurrences are exhausted."""
    if recurring.occurrences and recurring.occurrences_generated >= recurring.occurrences:
        return None
    anchor = recurring.start_date
    if recurring.last_generated_date is not None:
        anchor = max(anchor, recurring.last_generated_date + timedelta(days=1))
    due = _first_on_or_after(recurring, anchor)
    if recurring.end_date and due > recurring.end_date:
        return None
    return due


def is_due(recurring, today=None):
    if not recurring.is_active:
        return False
    due = next_due_date(recurring)
    return due is not None and due <= (today or timezone.localdate())


def _template_items(recurring):
    """Template rows as voucher item dicts, or None if an account is inactive."""
    items = []
    for row in recurring.template:
        account = resolve_for_business(
            recurring.business, LedgerAccount, row.get("ledger_account_id"))
        if account is None:
            raise NotFoundError(
                f"Recurring transaction {recurring.pk} has a line without an account.")
        if not account.is_active:
            logger.warning(
                "recurring template uses an inactive account",
                extra={"recurring": recurring.pk, "account": account.pk},
            )
            return None
        items.append({
            "ledger_account": account,
            "cost_center_id": row.get("cost_center_id"),
            "debit_amount": row.get("debit_amount"),
            "credit_amount": row.get("credit_amount"),
            "narration": row.get("narration") or "",
        })
    return items


def generate_voucher(recurring, today=None, user=None):
    """
    Materialize the next due occurrence as a posted voucher.

    Returns None when nothing is due, the template no longer balances or
    an account it references is inactive. Tenant, lock and numbering
    errors propagate.
    """
    if not is_due(recurring, today):
        return None
    if not recurring.template_is_balanced():
        debit, credit = recurring.template_totals()
        logger.warning(
            "recurring template is not balanced",
            extra={"recurring": recurring.pk, "debit": str(debit), "credit": str(credit)},
        )
        return None
    items = _template_items(recurring)
    if items is None:
        return None

    due = next_due_date(recurring)
    with transaction.atomic():
        voucher = create_voucher(
            recurring.business,
            voucher_type=recurring.voucher_type,
            date=due,
            items=items,
            narration=recurring.narration or recurring.name,
            reference=f"recurring:{recurring.pk}",
            is_posted=True,
            user=user,
        )
        recurring.last_generated_date = due
        recurring.occurrences_generated += 1
        recurring.save(update_fields=["last_generated_date", "occurrences_generated"])

    logger.info(
        "recurring voucher generated",
        extra={"recurring": recurring.pk, "voucher": voucher.pk, "date": due.isoformat()},
    )
    return voucher


def process_all_due(business, today=None, user=None):
    """
    Generate every due occurrence of every active schedule of ``business``.
    A failing schedule is logged and skipped; the rest carry on.
    Returns the generated vouchers.
    """
    today = today or timezone.localdate()
    generated = []
    schedules = RecurringTransaction.objects.active(business).select_related(
        "voucher_type").order_by("id")
    for recurring in schedules:
        try:
            while is_due(recurring, today):
                voucher = generate_voucher(recurring, today, user=user)
                if voucher is None:
                    break
                generated.append(voucher)
        except ValidationError as exc:
            logger.warning(
                "recurring transaction failed",
                extra={"recurring": recurring.pk, "error": "; ".join(exc.messages),
                       "kind": getattr(exc, "code", None)},
            )
    logger.info(
        "recurring run finished",
        extra={"business": getattr(business, "pk", business), "generated": len(generated)},
    )
    return generated
