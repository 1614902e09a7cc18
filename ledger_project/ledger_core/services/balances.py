"""
Balance & aggregation engine.

Sign convention: accounts whose group nature is assets or expense carry
debit - credit, every other nature carries credit - debit. A negative
result flips sign and is reported as the other balance type. Opening
balances are folded into the totals before the sign is resolved, as if
they were a journal row dated before any query window.
"""
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from django.db.models import Sum
from ..models import DEBIT_NATURES, AccountGroup, JournalEntry, LedgerAccount

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class Balance:
    amount: Decimal
    type: str  # "debit" | "credit"
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO

    @property
    def signed(self):
        """Positive for a debit balance, negative for a credit balance."""
        return self.amount if self.type == "debit" else -self.amount

    def as_dict(self):
        return {
            "amount": self.amount,
            "type": self.type,
            "total_debit": self.total_debit,
            "total_credit": self.total_credit,
        }


# ----------------------------
# Primitives
# ----------------------------
def resolve_balance(nature, debit, credit):
    if nature in DEBIT_NATURES:
        net = debit - credit
        kind = "debit" if net >= 0 else "credit"
    else:
        net = credit - debit
        kind = "credit" if net >= 0 else "debit"
    return Balance(amount=abs(net), type=kind, total_debit=debit, total_credit=credit)


def nature_signed(nature, debit, credit):
    """Net amount in the nature's own direction; may be negative."""
    if nature in DEBIT_NATURES:
        return debit - credit
    return credit - debit


def fold_opening(account, debit, credit):
    if account.opening_balance:
        if account.opening_balance_type == "debit":
            debit += account.opening_balance
        else:
            credit += account.opening_balance
    return debit, credit


def account_totals(business, as_of=None, financial_year=None, from_date=None):
    """{ledger_account_id: (debit, credit)} from one grouped query."""
    qs = JournalEntry.objects.for_business(business).up_to(as_of, financial_year)
    if from_date is not None:
        qs = qs.filter(date__gte=from_date)
    rows = qs.values("ledger_account").annotate(
        debit=Sum("debit_amount"), credit=Sum("credit_amount"))
    return {
        row["ledger_account"]: (row["debit"] or ZERO, row["credit"] or ZERO)
        for row in rows
    }


# ----------------------------
# Single account
# ----------------------------
def account_balance(account, as_of=None, financial_year=None):
    """Balance of ``account`` on ``as_of`` (inclusive), opening balance included."""
    debit, credit = (
        JournalEntry.objects.for_account(account)
        .up_to(as_of, financial_year)
        .totals()
    )
    debit, credit = fold_opening(account, debit, credit)
    return resolve_balance(account.nature, debit, credit)


def opening_balance_as_of(account, from_date):
    """Balance carried into ``from_date``: every row strictly before it."""
    debit, credit = (
        JournalEntry.objects.for_account(account)
        .filter(date__lt=from_date)
        .totals()
    )
    debit, credit = fold_opening(account, debit, credit)
    return resolve_balance(account.nature, debit, credit)


def signed_balance(account, as_of=None, financial_year=None):
    return account_balance(account, as_of, financial_year).signed


# ----------------------------
# Trial balance
# ----------------------------
def trial_balance(business, as_of=None, financial_year=None, include_zero=False,
                  group_by_account_group=False, include_opening_balances=False):
    """
    Debit/credit totals per ledger account up to ``as_of``.

    Accounts whose debits equal their credits are dropped unless
    ``include_zero``. Grand totals always cover every row returned, and
    since each posted voucher balances they agree whenever every account
    is included.
    """
    totals = account_totals(business, as_of, financial_year)
    accounts = (
        LedgerAccount.objects.for_business(business)
        .select_related("account_group")
        .order_by("account_group__sequence", "account_group__name", "code", "name")
    )

    rows = []
    for account in accounts:
        debit, credit = totals.get(account.pk, (ZERO, ZERO))
        if include_opening_balances:
            debit, credit = fold_opening(account, debit, credit)
        if not include_zero and debit == credit:
            continue
        balance = resolve_balance(account.nature, debit, credit)
        rows.append({
            "account": account,
            "total_debit": debit,
            "total_credit": credit,
            "balance": balance.amount,
            "balance_type": balance.type,
        })

    grand_debit = sum((r["total_debit"] for r in rows), ZERO)
    grand_credit = sum((r["total_credit"] for r in rows), ZERO)
    report = {
        "as_of": as_of,
        "financial_year": financial_year,
        "rows": rows,
        "total_debit": grand_debit,
        "total_credit": grand_credit,
        "is_balanced": grand_debit == grand_credit,
    }

    if group_by_account_group:
        grouped = defaultdict(list)
        for row in rows:
            grouped[row["account"].account_group].append(row)
        report["groups"] = [
            {
                "group": group,
                "rows": group_rows,
                "total_debit": sum((r["total_debit"] for r in group_rows), ZERO),
                "total_credit": sum((r["total_credit"] for r in group_rows), ZERO),
            }
            for group, group_rows in grouped.items()
        ]
    return report


# ----------------------------
# Nature totals & group roll-ups
# ----------------------------
def nature_total(business, nature, to_date=None, financial_year=None, from_date=None,
                 affects_gross_profit_only=False):
    """
    Debit, credit and nature-signed total over every account of ``nature``.

    Point-in-time totals (no ``from_date``) include opening balances;
    windowed totals such as profit and loss do not.
    """
    qs = JournalEntry.objects.for_business(business).up_to(to_date, financial_year)
    qs = qs.filter(ledger_account__account_group__nature=nature)
    accounts = LedgerAccount.objects.for_business(business).filter(
        account_group__nature=nature)
    if from_date is not None:
        qs = qs.filter(date__gte=from_date)
    if affects_gross_profit_only:
        qs = qs.filter(ledger_account__account_group__affects_gross_profit=True)
        accounts = accounts.filter(account_group__affects_gross_profit=True)

    debit, credit = qs.totals()
    if from_date is None:
        for account in accounts.filter(opening_balance__gt=0):
            debit, credit = fold_opening(account, debit, credit)
    return {
        "total_debit": debit,
        "total_credit": credit,
        "total": nature_signed(nature, debit, credit),
    }


def _roll_up(group, children, accounts_by_group, totals, include_openings, include_zero):
    accounts = []
    for account in accounts_by_group.get(group.pk, []):
        debit, credit = totals.get(account.pk, (ZERO, ZERO))
        if include_openings:
            debit, credit = fold_opening(account, debit, credit)
        amount = nature_signed(group.nature, debit, credit)
        if include_zero or abs(amount) >= Decimal("0.01"):
            accounts.append({"account": account, "balance": amount})

    child_nodes = [
        _roll_up(child, children, accounts_by_group, totals, include_openings, include_zero)
        for child in children.get(group.pk, [])
    ]
    direct = sum((a["balance"] for a in accounts), ZERO)
    nested = sum((c["balance"] for c in child_nodes), ZERO)
    return {
        "group": group,
        "accounts": accounts,
        "children": child_nodes,
        "balance": direct + nested,
    }


def _group_context(business, as_of, financial_year, from_date):
    groups = AccountGroup.objects.filter(business=business)
    children = defaultdict(list)
    for g in groups:
        children[g.parent_id].append(g)
    for siblings in children.values():
        siblings.sort(key=lambda g: (g.sequence, g.name))

    accounts_by_group = defaultdict(list)
    for account in LedgerAccount.objects.for_business(business).order_by("name"):
        accounts_by_group[account.account_group_id].append(account)

    totals = account_totals(business, as_of, financial_year, from_date)
    return children, accounts_by_group, totals


def group_balance(group, as_of=None, financial_year=None, from_date=None, include_zero=True):
    """
    Recursive roll-up: the group's direct accounts plus every child group.
    Amounts are signed in the group's nature direction.
    """
    children, accounts_by_group, totals = _group_context(
        group.business_id, as_of, financial_year, from_date)
    return _roll_up(group, children, accounts_by_group, totals,
                    from_date is None, include_zero)


def nature_tree(business, nature, as_of=None, financial_year=None, from_date=None,
                include_zero=False):
    """Roll-ups of every root group of ``nature``; one query per table."""
    children, accounts_by_group, totals = _group_context(
        business, as_of, financial_year, from_date)
    return [
        _roll_up(root, children, accounts_by_group, totals, from_date is None, include_zero)
        for root in children.get(None, [])
        if root.nature == nature
    ]
