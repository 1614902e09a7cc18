"""
Receivable / payable aging.

``aging_buckets`` is pure: it takes a party's outstanding balance and its
(date, amount) movements and spreads the balance over age buckets. The
two report helpers feed it from the ledger.
"""
from decimal import Decimal
from django.conf import settings
from django.db.models import Q, Sum
from ..models import JournalEntry, Party, Voucher
from .balances import ZERO, account_balance

DEFAULT_PERIODS = (30, 60, 90, 120)

# voucher nature -> direction of the party balance it moves
RECEIVABLE_SIGNS = {"sales": 1, "debit_note": 1, "receipt": -1, "credit_note": -1}
PAYABLE_SIGNS = {"purchase": 1, "credit_note": 1, "payment": -1, "debit_note": -1}


def aging_periods():
    return list(getattr(settings, "LEDGER_AGING_PERIODS", DEFAULT_PERIODS))


def empty_buckets(periods):
    buckets = {"current": ZERO}
    for period in periods:
        buckets[period] = ZERO
    buckets["older"] = ZERO
    return buckets


def bucket_for(age, periods):
    """
    "current" while age <= first period, then the largest period strictly
    exceeded, and "older" past the last one.
    """
    if age > periods[-1]:
        return "older"
    bucket = "current"
    for period in periods:
        if age > period:
            bucket = period
    return bucket


def aging_buckets(party_balance, vouchers, as_of, periods=None):
    """
    Allocate ``party_balance`` over ``vouchers`` oldest first.

    ``vouchers`` is an iterable of (date, amount) pairs where amount is
    already signed in the balance's direction. Non-positive amounts are
    skipped; allocation stops once the balance is used up. Whatever is
    left after the last voucher predates them all and lands in "older",
    so the buckets always add up to the balance.
    """
    periods = sorted(periods or DEFAULT_PERIODS)
    buckets = empty_buckets(periods)
    details = []
    remaining = Decimal(party_balance)
    if remaining <= 0:
        return {"buckets": buckets, "details": details, "total": ZERO}

    for voucher_date, amount in sorted(vouchers, key=lambda v: v[0]):
        if remaining <= 0:
            break
        if amount <= 0:
            continue
        age = (as_of - voucher_date).days
        bucket = bucket_for(age, periods)
        allocated = min(amount, remaining)
        remaining -= allocated
        buckets[bucket] += allocated
        details.append({"date": voucher_date, "amount": allocated,
                        "age": age, "bucket": bucket})

    if remaining > 0:
        buckets["older"] += remaining

    return {
        "buckets": buckets,
        "details": details,
        "total": sum(buckets.values(), ZERO),
    }


def _party_movements(party, as_of, signs, journal_debit_positive):
    """(date, signed amount) for each of the party's posted vouchers up to ``as_of``."""
    account = party.ledger_account
    vouchers = (
        Voucher.objects.for_business(party.business_id)
        .filter(party=party, is_posted=True, date__lte=as_of)
        .filter(Q(voucher_type__nature__in=signs) | Q(voucher_type__nature="journal"))
        .select_related("voucher_type")
        .order_by("date", "id")
    )
    movements = []
    for voucher in vouchers:
        nature = voucher.voucher_type.nature
        if nature == "journal":
            # journal vouchers: only the lines that hit the party account count
            aggs = JournalEntry.objects.filter(
                voucher=voucher, ledger_account=account,
            ).aggregate(debit=Sum("debit_amount"), credit=Sum("credit_amount"))
            debit = aggs["debit"] or ZERO
            credit = aggs["credit"] or ZERO
            amount = debit - credit if journal_debit_positive else credit - debit
        else:
            amount = signs[nature] * voucher.total_amount
        movements.append((voucher.date, amount))
    return movements


def _aging_report(business, as_of, periods, party_types, balance_type, signs):
    periods = sorted(periods or aging_periods())
    parties = (
        Party.objects.active(business)
        .filter(type__in=party_types)
        .select_related("ledger_account__account_group")
        .order_by("name")
    )
    totals = {"balance": ZERO, "buckets": empty_buckets(periods)}
    rows = []
    for party in parties:
        balance = account_balance(party.ledger_account, as_of)
        if balance.type != balance_type or balance.amount <= 0:
            continue
        movements = _party_movements(
            party, as_of, signs, journal_debit_positive=(balance_type == "debit"))
        aging = aging_buckets(balance.amount, movements, as_of, periods)
        rows.append({"party": party, "balance": balance.amount, **aging})
        totals["balance"] += balance.amount
        for bucket, amount in aging["buckets"].items():
            totals["buckets"][bucket] += amount
    return {"as_of": as_of, "periods": periods, "parties": rows, "totals": totals}


def receivables_aging(business, as_of, periods=None):
    """Customers carrying a debit balance, bucketed by age."""
    return _aging_report(business, as_of, periods, ("customer", "both"),
                         "debit", RECEIVABLE_SIGNS)


def payables_aging(business, as_of, periods=None):
    """Suppliers carrying a credit balance, bucketed by age."""
    return _aging_report(business, as_of, periods, ("supplier", "both"),
                         "credit", PAYABLE_SIGNS)
