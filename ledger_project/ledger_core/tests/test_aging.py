import datetime
from decimal import Decimal
import pytest
from ..services.aging import aging_buckets, bucket_for, payables_aging, receivables_aging
from ..services.parties import create_party
from .helpers import LedgerTestCase, line

AS_OF = datetime.date(2025, 6, 30)
PERIODS = [30, 60, 90, 120]


def days_ago(n):
    return AS_OF - datetime.timedelta(days=n)


def test_two_invoices_split_between_current_and_thirty():
    result = aging_buckets(
        Decimal("1000"),
        [(days_ago(45), Decimal("700")), (days_ago(10), Decimal("300"))],
        AS_OF,
        PERIODS,
    )

    assert result["buckets"]["current"] == Decimal("300")
    assert result["buckets"][30] == Decimal("700")
    assert result["buckets"][60] == Decimal("0")
    assert result["total"] == Decimal("1000")


@pytest.mark.parametrize(
    "age, expected",
    [
        (0, "current"),
        (30, "current"),
        (31, 30),
        (60, 30),
        (61, 60),
        (120, 90),
        (121, "older"),
    ],
)
def test_boundaries_are_strict(age, expected):
    assert bucket_for(age, PERIODS) == expected


def test_allocation_stops_once_balance_is_used_up():
    # only 500 is still owed: the oldest voucher absorbs it first
    result = aging_buckets(
        Decimal("500"),
        [(days_ago(5), Decimal("400")), (days_ago(70), Decimal("400"))],
        AS_OF,
        PERIODS,
    )

    assert result["buckets"][60] == Decimal("400")
    assert result["buckets"]["current"] == Decimal("100")
    assert [d["amount"] for d in result["details"]] == [Decimal("400"), Decimal("100")]
    assert result["total"] == Decimal("500")


def test_unexplained_remainder_lands_in_older():
    result = aging_buckets(Decimal("900"), [(days_ago(3), Decimal("250"))], AS_OF, PERIODS)

    assert result["buckets"]["current"] == Decimal("250")
    assert result["buckets"]["older"] == Decimal("650")
    assert result["total"] == Decimal("900")


def test_non_positive_movements_and_balances_are_skipped():
    result = aging_buckets(
        Decimal("200"),
        [(days_ago(40), Decimal("-50")), (days_ago(20), Decimal("200"))],
        AS_OF,
        PERIODS,
    )
    assert result["buckets"]["current"] == Decimal("200")
    assert len(result["details"]) == 1

    nothing_owed = aging_buckets(Decimal("0"), [(days_ago(20), Decimal("200"))], AS_OF)
    assert nothing_owed["total"] == Decimal("0")
    assert nothing_owed["details"] == []


class AgingReportTests(LedgerTestCase):

    def setUp(self):
        super().setUp()
        self.acme = create_party(self.business, "Acme Ltd", "customer", user=self.user)
        self.supplier = create_party(self.business, "Paper Mill", "supplier")
        receivable = self.acme.ledger_account
        self.voucher([line(receivable, debit=700), line(self.sales, credit=700)],
                     date=days_ago(45), code="SLS", party=self.acme)
        self.voucher([line(receivable, debit=300), line(self.sales, credit=300)],
                     date=days_ago(10), code="SLS", party=self.acme)

    def test_receivables_report_buckets_each_customer(self):
        report = receivables_aging(self.business, AS_OF)

        self.assertEqual([row["party"] for row in report["parties"]], [self.acme])
        row = report["parties"][0]
        self.assertEqual(row["balance"], Decimal("1000.00"))
        self.assertEqual(row["buckets"]["current"], Decimal("300.00"))
        self.assertEqual(row["buckets"][30], Decimal("700.00"))
        self.assertEqual(report["totals"]["balance"], Decimal("1000.00"))

    def test_receipts_reduce_the_oldest_debt_first(self):
        self.voucher([line(self.cash, debit=400), line(self.acme.ledger_account, credit=400)],
                     date=days_ago(2), code="RCT", party=self.acme)

        row = receivables_aging(self.business, AS_OF)["parties"][0]
        self.assertEqual(row["balance"], Decimal("600.00"))
        self.assertEqual(sum(row["buckets"].values()), Decimal("600.00"))
        self.assertEqual(row["buckets"][30], Decimal("600.00"))

    def test_drafts_and_later_vouchers_are_ignored(self):
        self.voucher([line(self.acme.ledger_account, debit=50), line(self.sales, credit=50)],
                     date=days_ago(1), code="SLS", party=self.acme, is_posted=False)
        self.voucher([line(self.acme.ledger_account, debit=80), line(self.sales, credit=80)],
                     date=AS_OF + datetime.timedelta(days=5), code="SLS", party=self.acme)

        row = receivables_aging(self.business, AS_OF)["parties"][0]
        self.assertEqual(row["total"], Decimal("1000.00"))

    def test_payables_mirror_receivables(self):
        self.voucher([line(self.rent, debit=250), line(self.supplier.ledger_account, credit=250)],
                     date=days_ago(95), code="PUR", party=self.supplier)

        report = payables_aging(self.business, AS_OF)
        self.assertEqual([row["party"] for row in report["parties"]], [self.supplier])
        self.assertEqual(report["parties"][0]["buckets"][90], Decimal("250.00"))
        self.assertEqual(receivables_aging(self.business, AS_OF)["totals"]["balance"],
                         Decimal("1000.00"))
