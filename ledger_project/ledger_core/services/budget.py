import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from django.core.exceptions import ValidationError
from django.db import transaction
from ..models import (MONTHS, Budget, BudgetItem, CostCenter, FinancialYear,
                      JournalEntry, LedgerAccount)
from ..models.voucher import to_money
from .audit_helper import log_action, snapshot
from .balances import ZERO, nature_signed
from .periods import add_months
from .validation import resolve_for_business

logger = logging.getLogger(__name__)

BUDGETABLE_NATURES = ("income", "expense")


@transaction.atomic
def create_budget(business, financial_year, name, description="", user=None):
    financial_year = resolve_for_business(business, FinancialYear, financial_year)
    budget = Budget(business=business, financial_year=financial_year,
                    name=name, description=description)
    budget.save()
    log_action(action="create", instance=budget, user=user)
    return budget


@transaction.atomic
def add_or_update_item(budget, ledger_account, cost_center=None, annual_amount=None,
                       months=None, distribute_evenly=True, notes="", user=None):
    """
    Insert or replace the line for (ledger_account, cost_center).

    distribute_evenly: annual_amount / 12 overwrites all twelve months.
    Otherwise ``months`` (twelve amounts, or a {month_name: amount} dict)
    are authoritative and the annual amount is their sum.
    """
    business = budget.business
    account = resolve_for_business(business, LedgerAccount, ledger_account)
    cost_center = resolve_for_business(business, CostCenter, cost_center)
    if account is None:
        raise ValidationError("A budget line needs a ledger account.")
    if account.nature not in BUDGETABLE_NATURES:
        raise ValidationError(
            f"Only income and expense accounts can be budgeted, not {account.nature}.")

    item = BudgetItem.objects.filter(
        budget=budget, ledger_account=account, cost_center=cost_center).first()
    old = snapshot(item) if item else None
    if item is None:
        item = BudgetItem(budget=budget, ledger_account=account, cost_center=cost_center)

    if distribute_evenly:
        annual = to_money(annual_amount)
        # cents that do not divide evenly are dropped, not redistributed
        monthly = (annual / 12).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        for month in MONTHS:
            setattr(item, month, monthly)
        item.annual_amount = annual
    else:
        if isinstance(months, dict):
            values = [to_money(months.get(month)) for month in MONTHS]
        else:
            values = [to_money(value) for value in (months or [])]
        if len(values) != 12:
            raise ValidationError("Manual budget lines need twelve monthly amounts.")
        for month, value in zip(MONTHS, values):
            setattr(item, month, value)
        item.annual_amount = sum(values, ZERO)

    item.distribute_evenly = distribute_evenly
    item.notes = notes
    item.save()
    log_action(action="update" if old else "create", instance=budget, user=user,
               old_values=old, new_values=snapshot(item))
    return item


# ----------------------------
# Variance
# ----------------------------
def _actual(item, from_date, to_date, financial_year):
    qs = JournalEntry.objects.for_account(item.ledger_account).filter(
        financial_year=financial_year, date__gte=from_date, date__lte=to_date)
    if item.cost_center_id:
        qs = qs.filter(cost_center_id=item.cost_center_id)
    debit, credit = qs.totals()
    return nature_signed(item.ledger_account.nature, debit, credit)


def _percentage(variance, budgeted):
    if not budgeted:
        return ZERO
    return (variance / budgeted * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def variance_report(budget, as_of=None):
    """
    Budget vs actual per line over the financial year to ``as_of``.
    variance = budget - actual; the percentage is 0 for an unbudgeted line.
    """
    year = budget.financial_year
    to_date = min(as_of or year.end_date, year.end_date)
    rows = []
    total_budget = total_actual = ZERO
    items = budget.items.select_related("ledger_account__account_group", "cost_center")
    for item in items.order_by("ledger_account__name", "id"):
        actual = _actual(item, year.start_date, to_date, year)
        variance = item.annual_amount - actual
        rows.append({
            "item": item,
            "budget": item.annual_amount,
            "actual": actual,
            "variance": variance,
            "variance_percentage": _percentage(variance, item.annual_amount),
        })
        total_budget += item.annual_amount
        total_actual += actual

    total_variance = total_budget - total_actual
    return {
        "budget": budget,
        "to_date": to_date,
        "rows": rows,
        "total_budget": total_budget,
        "total_actual": total_actual,
        "total_variance": total_variance,
        "total_variance_percentage": _percentage(total_variance, total_budget),
    }


def _fiscal_months(financial_year):
    """(month_name, start, end) for each calendar month the year touches, in order."""
    cursor = financial_year.start_date.replace(day=1)
    while cursor <= financial_year.end_date:
        end = add_months(cursor, 1).replace(day=1)
        yield (
            MONTHS[cursor.month - 1],
            max(cursor, financial_year.start_date),
            min(end - timedelta(days=1), financial_year.end_date),
        )
        cursor = end


def monthly_comparison(budget):
    """Budgeted vs actual per calendar month, summed over every line."""
    year = budget.financial_year
    items = list(budget.items.select_related("ledger_account__account_group"))
    rows = []
    for month, start, end in _fiscal_months(year):
        budgeted = sum((getattr(item, month) for item in items), ZERO)
        actual = sum((_actual(item, start, end, year) for item in items), ZERO)
        rows.append({
            "month": month,
            "start": start,
            "end": end,
            "budget": budgeted,
            "actual": actual,
            "variance": budgeted - actual,
        })
    return rows
