"""
Financial statements built on the balance engine.

Every report is a read-only aggregation returning plain dicts; none of
them write, lock or cache anything.
"""
import calendar
from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db.models import Q
from django.utils import timezone
from ..models import AccountGroup, JournalEntry, LedgerAccount, Party, Voucher
from .balances import (ZERO, account_balance, group_balance, nature_total,
                       nature_tree, opening_balance_as_of)
from .periods import add_months, current_financial_year, previous_financial_year

COMPARATIVE_PERIODS = {
    "previous_year": "Previous Year",
    "previous_quarter": "Previous Quarter",
    "previous_month": "Previous Month",
}


# ----------------------------
# Helpers
# ----------------------------
def _year_and_window(business, financial_year, from_date, to_date):
    if financial_year is None:
        financial_year = current_financial_year(business)
    return (
        financial_year,
        from_date or financial_year.start_date,
        to_date or financial_year.end_date,
    )


def comparative_period(financial_year, from_date, to_date, period="previous_year"):
    """
    Shift a reporting window back by a year, a quarter or a month.
    Returns (from_date, to_date, financial_year); the year is only
    resolved for "previous_year", the shorter shifts stay in the same year.
    """
    if period == "previous_year":
        return (add_months(from_date, -12), add_months(to_date, -12),
                previous_financial_year(financial_year))
    if period == "previous_quarter":
        return add_months(from_date, -3), add_months(to_date, -3), None
    if period == "previous_month":
        return add_months(from_date, -1), add_months(to_date, -1), None
    raise ValidationError(f"Unknown comparative period '{period}'.")


def _cash_and_bank_accounts(business):
    return (
        LedgerAccount.objects.active(business)
        .filter(Q(is_cash_account=True) | Q(is_bank_account=True))
        .select_related("account_group")
        .order_by("name")
    )


# ----------------------------
# Profit & loss
# ----------------------------
def _profit_and_loss(business, financial_year, from_date, to_date, include_zero):
    def total(nature, gross_only=False):
        return nature_total(business, nature, to_date, financial_year,
                            from_date=from_date, affects_gross_profit_only=gross_only)

    income = total("income")
    expense = total("expense")
    gross_income = total("income", gross_only=True)
    gross_expense = total("expense", gross_only=True)
    return {
        "from_date": from_date,
        "to_date": to_date,
        "income_groups": nature_tree(business, "income", to_date, financial_year,
                                     from_date=from_date, include_zero=include_zero),
        "expense_groups": nature_tree(business, "expense", to_date, financial_year,
                                      from_date=from_date, include_zero=include_zero),
        "income_total": income["total"],
        "expense_total": expense["total"],
        "gross_profit": gross_income["total"] - gross_expense["total"],
        "net_profit": income["total"] - expense["total"],
    }


def profit_and_loss(business, financial_year=None, from_date=None, to_date=None,
                    include_zero=False, compare=None):
    """Income and expense over a window; opening balances never count here."""
    financial_year, from_date, to_date = _year_and_window(
        business, financial_year, from_date, to_date)
    report = _profit_and_loss(business, financial_year, from_date, to_date, include_zero)
    report["financial_year"] = financial_year
    if compare:
        c_from, c_to, c_year = comparative_period(financial_year, from_date, to_date, compare)
        report["comparative"] = _profit_and_loss(business, c_year, c_from, c_to, include_zero)
    return report


# ----------------------------
# Balance sheet
# ----------------------------
def _balance_sheet(business, as_of, include_zero):
    sections = {}
    for nature in ("assets", "liabilities", "equity"):
        sections[nature] = {
            "groups": nature_tree(business, nature, as_of, include_zero=include_zero),
            "total": nature_total(business, nature, as_of)["total"],
        }
    # profit not yet closed into equity is carried as its own line
    net_profit = (nature_total(business, "income", as_of)["total"]
                  - nature_total(business, "expense", as_of)["total"])
    equity_total = sections["equity"]["total"] + net_profit
    liabilities_and_equity = sections["liabilities"]["total"] + equity_total
    return {
        "as_of": as_of,
        "asset_groups": sections["assets"]["groups"],
        "liability_groups": sections["liabilities"]["groups"],
        "equity_groups": sections["equity"]["groups"],
        "asset_total": sections["assets"]["total"],
        "liability_total": sections["liabilities"]["total"],
        "equity_total": equity_total,
        "net_profit": net_profit,
        "difference": sections["assets"]["total"] - liabilities_and_equity,
    }


def balance_sheet(business, as_of=None, financial_year=None, include_zero=False,
                  compare=None):
    """
    Cumulative position on ``as_of`` (default: end of the year).
    Net profit to date is folded into equity.
    """
    if financial_year is None:
        financial_year = current_financial_year(business)
    as_of = as_of or financial_year.end_date
    report = _balance_sheet(business, as_of, include_zero)
    report["financial_year"] = financial_year
    if compare:
        _, c_as_of, _ = comparative_period(financial_year, as_of, as_of, compare)
        report["comparative"] = _balance_sheet(business, c_as_of, include_zero)
    return report


# ----------------------------
# Cash flow
# ----------------------------
def _cash_flow(business, financial_year, from_date, to_date):
    opening = closing = ZERO
    accounts = []
    for account in _cash_and_bank_accounts(business):
        start = opening_balance_as_of(account, from_date).signed
        end = account_balance(account, to_date).signed
        opening += start
        closing += end
        accounts.append({"account": account, "opening": start, "closing": end})
    net_profit = (
        nature_total(business, "income", to_date, financial_year, from_date=from_date)["total"]
        - nature_total(business, "expense", to_date, financial_year, from_date=from_date)["total"]
    )
    return {
        "from_date": from_date,
        "to_date": to_date,
        "accounts": accounts,
        "opening_balance": opening,
        "closing_balance": closing,
        "net_change": closing - opening,
        "net_profit": net_profit,
    }


def cash_flow(business, financial_year=None, from_date=None, to_date=None, compare=None):
    """Cash and bank movement over a window, next to the window's net profit."""
    financial_year, from_date, to_date = _year_and_window(
        business, financial_year, from_date, to_date)
    report = _cash_flow(business, financial_year, from_date, to_date)
    report["financial_year"] = financial_year
    if compare:
        c_from, c_to, c_year = comparative_period(financial_year, from_date, to_date, compare)
        report["comparative"] = _cash_flow(business, c_year, c_from, c_to)
    return report


# ----------------------------
# Statements
# ----------------------------
def ledger_statement(account, from_date=None, to_date=None, financial_year=None):
    """
    Journal rows of ``account`` with a running balance.

    The running balance starts from the balance carried into ``from_date``
    (or the account's opening balance) and flips between debit and credit
    whenever it crosses zero.
    """
    to_date = to_date or timezone.localdate()
    if from_date is not None:
        opening = opening_balance_as_of(account, from_date)
        running, kind = opening.amount, opening.type
    else:
        running = account.opening_balance or ZERO
        kind = account.opening_balance_type
    opening_amount, opening_type = running, kind

    entries = (
        JournalEntry.objects.for_account(account)
        .up_to(to_date, financial_year)
        .select_related("voucher__voucher_type")
        .order_by("date", "id")
    )
    if from_date is not None:
        entries = entries.filter(date__gte=from_date)

    lines = []
    total_debit = total_credit = ZERO
    for entry in entries:
        total_debit += entry.debit_amount
        total_credit += entry.credit_amount
        if kind == "debit":
            running = running + entry.debit_amount - entry.credit_amount
        else:
            running = running + entry.credit_amount - entry.debit_amount
        if running < 0:
            running = -running
            kind = "credit" if kind == "debit" else "debit"
        lines.append({"entry": entry, "running_balance": running, "running_type": kind})

    return {
        "account": account,
        "from_date": from_date,
        "to_date": to_date,
        "opening_balance": opening_amount,
        "opening_balance_type": opening_type,
        "lines": lines,
        "total_debit": total_debit,
        "total_credit": total_credit,
        "closing_balance": running,
        "closing_balance_type": kind,
    }


def party_statement(party, from_date=None, to_date=None):
    report = ledger_statement(party.ledger_account, from_date, to_date)
    report["party"] = party
    return report


# ----------------------------
# Dashboards
# ----------------------------
def monthly_series(financial_year):
    """
    Income, expense and net per calendar month of the year. Months cut by
    the year's start or end only count the days inside the year.
    """
    business = financial_year.business_id
    series = []
    cursor = financial_year.start_date.replace(day=1)
    while cursor <= financial_year.end_date:
        last_day = calendar.monthrange(cursor.year, cursor.month)[1]
        start = max(cursor, financial_year.start_date)
        end = min(cursor.replace(day=last_day), financial_year.end_date)
        income = nature_total(business, "income", end, financial_year, from_date=start)["total"]
        expense = nature_total(business, "expense", end, financial_year, from_date=start)["total"]
        series.append({
            "month": cursor.strftime("%Y-%m"),
            "label": cursor.strftime("%b"),
            "start": start,
            "end": end,
            "income": income,
            "expense": expense,
            "net": income - expense,
        })
        cursor = add_months(cursor, 1)
    return series


def _party_total(business, types, financial_year):
    total = ZERO
    parties = Party.objects.for_business(business).filter(
        type__in=types).select_related("ledger_account__account_group")
    for party in parties:
        total += account_balance(party.ledger_account, financial_year=financial_year).signed
    return total


def dashboard_summary(business, financial_year=None):
    if financial_year is None:
        financial_year = current_financial_year(business)

    def total(nature):
        return nature_total(business, nature, financial_year=financial_year)["total"]

    income, expense = total("income"), total("expense")
    accounts = []
    for account in _cash_and_bank_accounts(business):
        balance = account_balance(account, financial_year=financial_year)
        accounts.append({
            "account": account,
            "kind": "cash" if account.is_cash_account else "bank",
            "balance": balance.amount,
            "balance_type": balance.type,
        })
    return {
        "financial_year": financial_year,
        "total_assets": total("assets"),
        "total_liabilities": total("liabilities"),
        "total_income": income,
        "total_expense": expense,
        "net_profit": income - expense,
        # customers carry debit balances, suppliers credit balances
        "receivables": _party_total(business, ("customer", "both"), financial_year),
        "payables": -_party_total(business, ("supplier", "both"), financial_year),
        "cash_and_bank": accounts,
        "recent_vouchers": list(
            Voucher.objects.for_business(business)
            .select_related("voucher_type", "party")
            .order_by("-date", "-id")[:5]
        ),
        "monthly": monthly_series(financial_year),
    }


# ----------------------------
# Ratios
# ----------------------------
def _ratio(numerator, denominator, scale=Decimal("1")):
    if not denominator:
        return None
    return (numerator / denominator * scale).quantize(Decimal("0.00001"))


def _named_group_total(business, name, as_of, from_date=None):
    group = AccountGroup.objects.filter(business=business, name=name).first()
    if group is None:
        return ZERO
    return group_balance(group, as_of, from_date=from_date)["balance"]


def financial_ratios(business, as_of=None, financial_year=None):
    """
    Liquidity, profitability, efficiency and leverage ratios.

    Position figures are cumulative on ``as_of``; flow figures (revenue,
    cost of sales, net income) cover the financial year up to ``as_of``.
    A ratio with a zero denominator is None.
    """
    if financial_year is None:
        financial_year = current_financial_year(business)
    as_of = as_of or min(financial_year.end_date, timezone.localdate())
    start = financial_year.start_date

    current_assets = _named_group_total(business, "Current Assets", as_of)
    current_liabilities = _named_group_total(business, "Current Liabilities", as_of)
    receivable = _named_group_total(business, "Accounts Receivable", as_of)
    payable = _named_group_total(business, "Accounts Payable", as_of)
    cost_of_sales = _named_group_total(business, "Direct Expense", as_of, from_date=start)
    cash = sum(
        (account_balance(a, as_of).signed for a in _cash_and_bank_accounts(business)), ZERO)

    total_assets = nature_total(business, "assets", as_of)["total"]
    total_liabilities = nature_total(business, "liabilities", as_of)["total"]
    equity = nature_total(business, "equity", as_of)["total"]
    revenue = nature_total(business, "income", as_of, from_date=start)["total"]
    expenses = nature_total(business, "expense", as_of, from_date=start)["total"]
    gross_revenue = nature_total(business, "income", as_of, from_date=start,
                                 affects_gross_profit_only=True)["total"]
    net_income = revenue - expenses
    days = Decimal((as_of - start).days + 1)

    return {
        "as_of": as_of,
        "financial_year": financial_year,
        "current_ratio": _ratio(current_assets, current_liabilities),
        "cash_ratio": _ratio(cash, current_liabilities),
        "gross_profit_margin": _ratio(gross_revenue - cost_of_sales, revenue, Decimal("100")),
        "net_profit_margin": _ratio(net_income, revenue, Decimal("100")),
        "return_on_assets": _ratio(net_income, total_assets, Decimal("100")),
        "return_on_equity": _ratio(net_income, equity, Decimal("100")),
        "asset_turnover": _ratio(revenue, total_assets),
        "days_sales_outstanding": _ratio(receivable * days, revenue),
        "days_payables_outstanding": _ratio(payable * days, cost_of_sales),
        "debt_ratio": _ratio(total_liabilities, total_assets),
        "debt_to_equity": _ratio(total_liabilities, equity),
    }
